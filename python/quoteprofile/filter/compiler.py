"""Filter expression compiler.

Turns the filter a user types into the quote viewer (for example
``last > 10 && changePercent < -2``) into a ``FilterExpression`` that can
decide row visibility, either one quote at a time or across a whole
pandas DataFrame of quotes.

Supported syntax:
    - field names: any ``[A-Za-z_][A-Za-z0-9_]*`` word, or ``[any text]``
      in brackets for names with spaces or punctuation
    - integer/float literals, quoted strings, true/false
    - arithmetic: ``+ - * / %`` and unary ``-`` / ``+``
    - comparisons: ``== != < <= > >=`` (chainable, ``1 < x < 5``)
    - boolean logic: ``&&`` / ``and``, ``||`` / ``or``, ``!`` / ``not``
    - parentheses; line breaks count as plain whitespace

Field names are replaced by internal placeholders before parsing, so a
field may be called ``yield`` or ``in``. The parsed tree is checked
against a fixed set of node types and evaluated node by node with NumPy
ufuncs; calls, attribute access, indexing and the like are rejected at
compile time.

"""

from __future__ import annotations

import ast
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from functools import reduce
from typing import Any

import numpy as np
import pandas as pd

from quoteprofile.errors import FilterCompileError, FilterEvaluationError

_LEXEME_RE = re.compile(
    r"""
    (?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
    | (?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)
    | \[(?P<bracketed>[^\]]+)\]
    | (?P<word>[A-Za-z_][A-Za-z0-9_]*)
    | (?P<and>&&)
    | (?P<or>\|\|)
    | (?P<not>!(?!=))
    | (?P<space>\s+)
    """,
    re.VERBOSE,
)

_OPERATOR_WORDS = {"and": " and ", "or": " or ", "not": " not "}

_BOOLEAN_WORDS = {"true": "True", "false": "False", "True": "True", "False": "False"}

_PLACEHOLDER = "_f{}"

_BINARY_OPS: dict[type[ast.operator], Callable[..., Any]] = {
    ast.Add: np.add,
    ast.Sub: np.subtract,
    ast.Mult: np.multiply,
    ast.Div: np.true_divide,
    ast.Mod: np.mod,
}

_UNARY_OPS: dict[type[ast.unaryop], Callable[..., Any]] = {
    ast.Not: np.logical_not,
    ast.USub: np.negative,
    ast.UAdd: np.positive,
}

_COMPARE_OPS: dict[type[ast.cmpop], Callable[..., Any]] = {
    ast.Eq: np.equal,
    ast.NotEq: np.not_equal,
    ast.Lt: np.less,
    ast.LtE: np.less_equal,
    ast.Gt: np.greater,
    ast.GtE: np.greater_equal,
}

_BOOL_OPS: dict[type[ast.boolop], Callable[..., Any]] = {
    ast.And: np.logical_and,
    ast.Or: np.logical_or,
}

_ALLOWED_NODES: tuple[type[ast.AST], ...] = (
    ast.Expression,
    ast.BoolOp,
    ast.UnaryOp,
    ast.BinOp,
    ast.Compare,
    ast.Name,
    ast.Load,
    ast.Constant,
    *_BINARY_OPS,
    *_UNARY_OPS,
    *_COMPARE_OPS,
    *_BOOL_OPS,
)

_ALLOWED_CONSTANTS = (bool, int, float, str)


class _Evaluator(ast.NodeVisitor):
    """Evaluate a checked filter tree over scalars or whole columns."""

    def __init__(self, namespace: Mapping[str, Any]) -> None:
        self._namespace = namespace

    def visit_Expression(self, node: ast.Expression) -> Any:
        return self.visit(node.body)

    def visit_Constant(self, node: ast.Constant) -> Any:
        return node.value

    def visit_Name(self, node: ast.Name) -> Any:
        return self._namespace[node.id]

    def visit_BoolOp(self, node: ast.BoolOp) -> Any:
        combine = _BOOL_OPS[type(node.op)]
        return reduce(combine, (self.visit(value) for value in node.values))

    def visit_UnaryOp(self, node: ast.UnaryOp) -> Any:
        return _UNARY_OPS[type(node.op)](self.visit(node.operand))

    def visit_BinOp(self, node: ast.BinOp) -> Any:
        return _BINARY_OPS[type(node.op)](self.visit(node.left), self.visit(node.right))

    def visit_Compare(self, node: ast.Compare) -> Any:
        # 1 < x < 5 means (1 < x) and (x < 5)
        operands = [self.visit(node.left), *(self.visit(c) for c in node.comparators)]
        results = [
            _COMPARE_OPS[type(op)](operands[i], operands[i + 1])
            for i, op in enumerate(node.ops)
        ]
        return reduce(np.logical_and, results)

    def generic_visit(self, node: ast.AST) -> Any:
        msg = f"Unsupported filter node: {type(node).__name__}"
        raise TypeError(msg)


def _to_python_syntax(text: str) -> tuple[str, dict[str, str]]:
    """Rewrite filter text into parseable Python.

    Returns:
        Tuple of (rewritten text, placeholder -> field name).

    """
    fields: dict[str, str] = {}
    placeholders: dict[str, str] = {}

    def placeholder_for(name: str) -> str:
        if name not in placeholders:
            placeholders[name] = _PLACEHOLDER.format(len(placeholders))
            fields[placeholders[name]] = name
        return placeholders[name]

    def replace(match: re.Match[str]) -> str:
        kind = match.lastgroup or ""
        lexeme = match.group(kind)
        if kind == "string":
            return lexeme.replace("\n", "\\n").replace("\r", "\\r")
        if kind == "number":
            return lexeme
        if kind == "space":
            return " "
        if kind == "bracketed":
            return placeholder_for(lexeme.strip())
        if kind == "word":
            if lexeme in _OPERATOR_WORDS:
                return _OPERATOR_WORDS[lexeme]
            if lexeme in _BOOLEAN_WORDS:
                return _BOOLEAN_WORDS[lexeme]
            return placeholder_for(lexeme)
        return _OPERATOR_WORDS[kind]

    return _LEXEME_RE.sub(replace, text), fields


def _check_nodes(tree: ast.AST, text: str) -> None:
    for node in ast.walk(tree):
        if not isinstance(node, _ALLOWED_NODES):
            msg = f"Unsupported syntax in filter {text!r}: {type(node).__name__}"
            raise FilterCompileError(msg)
        if isinstance(node, ast.Constant) and not isinstance(node.value, _ALLOWED_CONSTANTS):
            msg = f"Unsupported literal in filter {text!r}: {node.value!r}"
            raise FilterCompileError(msg)


@dataclass(frozen=True)
class FilterExpression:
    """A compiled, evaluable filter.

    Attributes:
        text: The filter as the user typed it.
        variables: Quote-row field names the filter reads.

    """

    text: str
    variables: frozenset[str]
    _tree: ast.Expression = field(repr=False, compare=False)
    _fields: Mapping[str, str] = field(repr=False, compare=False)

    def _run(self, lookup: Callable[[str], Any]) -> np.ndarray:
        namespace = {placeholder: lookup(name) for placeholder, name in self._fields.items()}
        try:
            with np.errstate(divide="ignore", invalid="ignore"):
                result = np.asarray(_Evaluator(namespace).visit(self._tree))
        except (TypeError, ValueError, ArithmeticError) as exc:
            msg = f"Cannot evaluate filter {self.text!r}: {exc}"
            raise FilterEvaluationError(msg) from exc

        if result.dtype != np.bool_:
            msg = f"Filter {self.text!r} does not produce a boolean (got {result.dtype})"
            raise FilterEvaluationError(msg)
        return result

    def _check_fields(self, available: Any) -> None:
        missing = sorted(name for name in self.variables if name not in available)
        if missing:
            msg = f"Filter {self.text!r} references unknown fields: {', '.join(missing)}"
            raise FilterEvaluationError(msg)

    def evaluate(self, row: Mapping[str, Any]) -> bool:
        """Decide whether a single quote row is visible.

        Args:
            row: Quote attributes keyed by field name.

        Returns:
            True if the row passes the filter.

        Raises:
            FilterEvaluationError: If a referenced field is missing or the
                values cannot be combined as the filter requires.

        """
        self._check_fields(row)
        result = self._run(lambda name: np.asarray(row[name]))
        if result.ndim != 0:
            msg = f"Filter {self.text!r} produced {result.size} values for a single row"
            raise FilterEvaluationError(msg)
        return bool(result)

    def mask(self, frame: pd.DataFrame) -> pd.Series:
        """Evaluate the filter against every row of a quote table.

        Args:
            frame: One quote per row, one field per column.

        Returns:
            Boolean Series aligned with ``frame.index``.

        Raises:
            FilterEvaluationError: If a referenced column is missing or the
                column values cannot be combined as the filter requires.

        """
        self._check_fields(frame.columns)
        result = self._run(lambda name: frame[name].to_numpy())
        result = np.array(np.broadcast_to(result, (len(frame),)))
        return pd.Series(result, index=frame.index, dtype=bool)


def compile_filter(text: str) -> FilterExpression:
    """Compile filter text into an evaluable expression.

    Args:
        text: Filter in human form, e.g. ``"price > 10 && volume > 1e6"``.

    Returns:
        The compiled filter.

    Raises:
        FilterCompileError: If the text is empty, is not valid syntax or
            uses constructs outside the filter language.

    """
    if not text.strip():
        msg = "Filter expression is empty"
        raise FilterCompileError(msg)

    source, fields = _to_python_syntax(text)
    try:
        tree = ast.parse(source.strip(), mode="eval")
    except (SyntaxError, ValueError, RecursionError) as exc:
        msg = f"Invalid filter {text!r}: {exc.args[0] if exc.args else exc}"
        raise FilterCompileError(msg) from exc

    _check_nodes(tree, text)
    return FilterExpression(
        text=text,
        variables=frozenset(fields.values()),
        _tree=tree,
        _fields=fields,
    )
