"""Tests for the filter expression compiler."""

from __future__ import annotations

import pandas as pd
import pytest
from quoteprofile.errors import FilterCompileError, FilterEvaluationError
from quoteprofile.filter.compiler import compile_filter


class TestCompile:
    """Tests for parsing and validation."""

    def test_simple_comparison(self) -> None:
        expression = compile_filter("price > 10")
        assert expression.text == "price > 10"
        assert expression.variables == frozenset({"price"})

    def test_incomplete_expression_rejected(self) -> None:
        with pytest.raises(FilterCompileError, match="Invalid filter"):
            compile_filter("price >")

    def test_empty_rejected(self) -> None:
        with pytest.raises(FilterCompileError, match="empty"):
            compile_filter("   ")

    @pytest.mark.parametrize(
        "text",
        [
            "__import__('os')",
            "price.real > 1",
            "prices[0] > 1",
            "abs(change) > 1",
            "lambda: 1",
            "price in (1, 2)",
            "price & 1",
            "price ** 2 > 1",
            "price if active else 0",
        ],
    )
    def test_unsupported_syntax_rejected(self, text: str) -> None:
        with pytest.raises(FilterCompileError):
            compile_filter(text)

    def test_c_style_operators(self) -> None:
        expression = compile_filter("last > 10 && !(change < 0) || volume >= 1e6")
        assert expression.variables == frozenset({"last", "change", "volume"})

    def test_true_false_are_not_variables(self) -> None:
        assert compile_filter("grouped == true || false").variables == frozenset({"grouped"})

    def test_operators_inside_strings_untouched(self) -> None:
        expression = compile_filter("name == 'A&&B'")
        assert expression.evaluate({"name": "A&&B"}) is True

    def test_field_names_are_reported_as_typed(self) -> None:
        expression = compile_filter("yield > 2 && _x > 1 && [52w high] > 0")
        assert expression.variables == frozenset({"yield", "_x", "52w high"})


class TestEvaluate:
    """Tests for evaluating a single quote row."""

    def test_comparison(self) -> None:
        expression = compile_filter("price > 10")
        assert expression.evaluate({"price": 12.5}) is True
        assert expression.evaluate({"price": 9}) is False

    def test_boolean_logic(self) -> None:
        expression = compile_filter("last > 10 && !(change < 0)")
        assert expression.evaluate({"last": 11, "change": 0.5}) is True
        assert expression.evaluate({"last": 11, "change": -0.5}) is False
        assert expression.evaluate({"last": 9, "change": 0.5}) is False

    def test_python_keywords(self) -> None:
        expression = compile_filter("last < 5 or not volume")
        assert expression.evaluate({"last": 10, "volume": 0}) is True

    def test_chained_comparison(self) -> None:
        expression = compile_filter("1 < changePercent <= 5")
        assert expression.evaluate({"changePercent": 3}) is True
        assert expression.evaluate({"changePercent": 6}) is False

    def test_arithmetic(self) -> None:
        expression = compile_filter("(high - low) / low * 100 > 5")
        assert expression.evaluate({"high": 110.0, "low": 100.0}) is True

    def test_not_equal_kept(self) -> None:
        expression = compile_filter("currency != 'EUR'")
        assert expression.evaluate({"currency": "USD"}) is True
        assert expression.evaluate({"currency": "EUR"}) is False

    def test_division_by_zero_field(self) -> None:
        expression = compile_filter("change / volume > 1")
        assert expression.evaluate({"change": 1.0, "volume": 0.0}) is True

    def test_missing_field(self) -> None:
        expression = compile_filter("price > 10 && volume > 0")
        with pytest.raises(FilterEvaluationError, match="volume"):
            expression.evaluate({"price": 11})

    def test_incompatible_types(self) -> None:
        expression = compile_filter("ticker > 10")
        with pytest.raises(FilterEvaluationError):
            expression.evaluate({"ticker": "AAPL"})

    def test_non_boolean_result(self) -> None:
        expression = compile_filter("price + 1")
        with pytest.raises(FilterEvaluationError, match="boolean"):
            expression.evaluate({"price": 1})

    @pytest.mark.parametrize(
        ("text", "row"),
        [
            ("yield > 2", {"yield": 3}),
            ("in > 1", {"in": 2}),
            ("class == 'A' && from < is", {"class": "A", "from": 1, "is": 2}),
            ("None > 0", {"None": 1}),
        ],
    )
    def test_python_keywords_as_field_names(self, text: str, row: dict) -> None:
        assert compile_filter(text).evaluate(row) is True

    def test_underscore_field_names(self) -> None:
        expression = compile_filter("_x > 1 && my_field > 1")
        assert expression.evaluate({"_x": 2, "my_field": 2}) is True
        assert expression.evaluate({"_x": 0, "my_field": 2}) is False

    def test_bracketed_field_name(self) -> None:
        expression = compile_filter("[52w high] - last > 10")
        assert expression.evaluate({"52w high": 120.0, "last": 100.0}) is True

    def test_multi_line_filter(self) -> None:
        expression = compile_filter("price > 10 &&\n    volume > 5\n")
        assert expression.evaluate({"price": 11, "volume": 6}) is True
        assert expression.evaluate({"price": 11, "volume": 4}) is False

    def test_newline_inside_string_literal(self) -> None:
        expression = compile_filter("name == 'a\nb'")
        assert expression.evaluate({"name": "a\nb"}) is True


class TestMask:
    """Tests for evaluating a whole quote table."""

    def test_mask_aligned_with_index(self) -> None:
        frame = pd.DataFrame(
            {"ticker": ["AAPL", "MSFT", "TSLA"], "last": [190.0, 5.0, 250.0]},
            index=[10, 20, 30],
        )
        mask = compile_filter("last > 100 && ticker != 'TSLA'").mask(frame)
        assert mask.tolist() == [True, False, False]
        assert mask.index.tolist() == [10, 20, 30]
        assert mask.dtype == bool

    def test_constant_filter_broadcasts(self) -> None:
        frame = pd.DataFrame({"last": [1.0, 2.0]})
        assert compile_filter("true").mask(frame).tolist() == [True, True]

    def test_missing_column(self) -> None:
        frame = pd.DataFrame({"last": [1.0]})
        with pytest.raises(FilterEvaluationError, match="volume"):
            compile_filter("volume > 0").mask(frame)

    def test_selects_rows(self) -> None:
        frame = pd.DataFrame({"change": [-1.0, 0.5, 2.0]})
        visible = frame[compile_filter("change >= 0").mask(frame)]
        assert visible["change"].tolist() == [0.5, 2.0]
