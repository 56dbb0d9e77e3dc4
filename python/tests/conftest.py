"""Shared pytest fixtures for quoteprofile tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from quoteprofile.profile.defaults import default_payload


@pytest.fixture
def settings_path(tmp_path: Path) -> Path:
    """Provide a settings file location that does not exist yet."""
    return tmp_path / "quoteprofilerc"


@pytest.fixture
def sample_payload() -> dict[str, Any]:
    """Provide a small, valid settings payload."""
    payload = default_payload()
    payload.update(
        {
            "tickers": ["AAPL", "MSFT", "TSLA"],
            "shares": {
                "MSFT": {"tradePrice": 310.5, "count": 10},
                "NVDA": {"tradePrice": 450.0, "count": 5},
            },
            "sortColumn": 2,
            "ascending": False,
            "grouped": True,
            "filterText": "last > 10",
        }
    )
    return payload


@pytest.fixture
def written_settings(settings_path: Path, sample_payload: dict[str, Any]) -> Path:
    """Write ``sample_payload`` to ``settings_path`` and return the path."""
    settings_path.write_text(json.dumps(sample_payload), encoding="utf-8")
    return settings_path
