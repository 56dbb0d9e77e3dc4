"""quoteprofile sidecar entry point.

Lets the terminal UI and the refresh scheduler drive a profile from
another process via stdin/stdout using newline-delimited JSON messages.
The settings path is always supplied by the caller through
``profile.open``.

Protocol:
    Request:  {"id": "uuid", "method": "string", "params": {}}
    Response: {"id": "uuid", "result": {}}
    Error:    {"id": "uuid", "error": {"message": "string"}}
"""

from __future__ import annotations

import json
import logging
import sys
import traceback
from dataclasses import dataclass
from typing import Any

import pandas as pd

from quoteprofile import log_config
from quoteprofile.filter.compiler import compile_filter
from quoteprofile.profile.model import Profile
from quoteprofile.store.json_store import dumps

logger = logging.getLogger(__name__)


@dataclass
class SidecarState:
    """The profile opened by this sidecar process, if any."""

    profile: Profile | None = None

    def require_profile(self) -> Profile:
        """Return the open profile.

        Raises:
            ValueError: If ``profile.open`` has not been called yet.

        """
        if self.profile is None:
            msg = "No profile is open; call profile.open first"
            raise ValueError(msg)
        return self.profile


def _handle_open(state: SidecarState, path: str, region: str = "") -> dict[str, Any]:
    state.profile = Profile.load(path, region=region)
    return state.profile.snapshot()


def _handle_get(state: SidecarState) -> dict[str, Any]:
    return state.require_profile().snapshot()


def _handle_save(state: SidecarState) -> dict[str, Any]:
    profile = state.require_profile()
    profile.save()
    return profile.snapshot()


def _handle_add_tickers(state: SidecarState, symbols: list[str]) -> dict[str, Any]:
    added = state.require_profile().add_tickers(symbols)
    return {"added": added}


def _handle_remove_tickers(state: SidecarState, symbols: list[str]) -> dict[str, Any]:
    removed = state.require_profile().remove_tickers(symbols)
    return {"removed": removed}


def _handle_select_column(state: SidecarState, column: int) -> dict[str, Any]:
    profile = state.require_profile()
    profile.selected_column = column
    return {"selectedColumn": profile.selected_column}


def _handle_reorder(state: SidecarState) -> dict[str, Any]:
    profile = state.require_profile()
    profile.reorder()
    return {"sortColumn": profile.sort_column, "ascending": profile.ascending}


def _handle_regroup(state: SidecarState) -> dict[str, Any]:
    profile = state.require_profile()
    profile.regroup()
    return {"grouped": profile.grouped}


def _handle_set_filter(state: SidecarState, text: str) -> dict[str, Any]:
    profile = state.require_profile()
    profile.set_filter(text)
    return {"filterText": profile.filter_text, "active": profile.compiled_filter is not None}


def _handle_validate_filter(state: SidecarState, text: str) -> dict[str, Any]:  # noqa: ARG001
    expression = compile_filter(text)
    return {"valid": True, "variables": sorted(expression.variables)}


def _handle_evaluate_filter(
    state: SidecarState,
    rows: list[dict[str, Any]],
) -> dict[str, Any]:
    """Evaluate the open profile's filter against quote rows.

    Args:
        state: Sidecar state holding the open profile.
        rows: Quote rows keyed by field name.

    Returns:
        Dict with one visibility flag per row. Every row is visible when
        no filter is set. Rows are evaluated together as one table, so a
        field absent from some rows reads as NaN there.

    """
    expression = state.require_profile().compiled_filter
    if expression is None:
        return {"visible": [True] * len(rows)}
    if not rows:
        return {"visible": []}
    frame = pd.DataFrame.from_records(rows)
    return {"visible": expression.mask(frame).tolist()}


_HANDLERS: dict[str, Any] = {
    # Profile lifecycle
    "profile.open": _handle_open,
    "profile.get": _handle_get,
    "profile.save": _handle_save,
    # Watch-list
    "profile.add_tickers": _handle_add_tickers,
    "profile.remove_tickers": _handle_remove_tickers,
    # Sorting
    "profile.select_column": _handle_select_column,
    "profile.reorder": _handle_reorder,
    "profile.regroup": _handle_regroup,
    # Filter
    "profile.set_filter": _handle_set_filter,
    "filter.validate": _handle_validate_filter,
    "filter.evaluate": _handle_evaluate_filter,
}


def dispatch(method: str, params: dict[str, Any], state: SidecarState) -> Any:
    """Route a method call to the appropriate handler.

    Args:
        method: The method name (e.g., "profile.add_tickers").
        params: The parameters for the method.
        state: Sidecar state shared across requests.

    Returns:
        The result of the method call.

    Raises:
        ValueError: If the method is not recognized.

    """
    if method not in _HANDLERS:
        msg = f"Unknown method: {method}"
        raise ValueError(msg)
    return _HANDLERS[method](state, **params)


def main() -> None:
    """Run the sidecar message loop.

    Reads newline-delimited JSON from stdin, dispatches to handlers,
    and writes JSON responses to stdout. Runs until stdin is closed.
    """
    log_config.setup()
    state = SidecarState()
    for raw_line in sys.stdin:
        stripped = raw_line.strip()
        if not stripped:
            continue

        request: dict[str, Any] = {}
        try:
            request = json.loads(stripped)
            request_id = request.get("id", "unknown")
            method = request["method"]
            params = request.get("params", {})
            result = dispatch(method, params, state)
            response: dict[str, Any] = {"id": request_id, "result": result}
        except Exception as exc:  # noqa: BLE001
            logger.debug("Request failed: %s", exc)
            request_id = (
                request.get("id", "unknown") if isinstance(request, dict) else "unknown"
            )
            response = {
                "id": request_id,
                "error": {
                    "type": type(exc).__name__,
                    "message": str(exc),
                    "traceback": traceback.format_exc(),
                },
            }
        sys.stdout.write(dumps(response) + "\n")
        sys.stdout.flush()


if __name__ == "__main__":
    main()
