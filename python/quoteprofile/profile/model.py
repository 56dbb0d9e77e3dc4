"""The quote viewer profile.

``Profile`` holds everything the viewer persists between runs: the
watch-list, held share positions, refresh intervals, sort preferences,
the row filter and the quote-service URL. Every mutating method writes
the new snapshot to the settings file before returning.

Typical use::

    profile = Profile.load(Path.home() / ".quoteprofilerc")
    profile.add_tickers(["SAP.F", "BMW.F"])
    profile.set_filter("last > 10 && changePercent < -2")

"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from quoteprofile.errors import (
    DecodeError,
    FilterCompileError,
    ResourceUnreadable,
    WriteError,
)
from quoteprofile.filter.compiler import FilterExpression, compile_filter
from quoteprofile.profile.defaults import (
    MARKET_REFRESH_SECONDS,
    QUOTES_REFRESH_SECONDS,
    default_payload,
)
from quoteprofile.profile.sorting import NO_COLUMN, SortState
from quoteprofile.profile.tickers import drop_tickers, merge_tickers, tracked_symbols
from quoteprofile.store.json_store import read_settings, write_settings

logger = logging.getLogger(__name__)


@dataclass
class Share:
    """A held position.

    Attributes:
        trade_price: Price paid per share.
        count: Number of shares held.

    """

    trade_price: float
    count: int

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the on-disk key layout."""
        return {"tradePrice": float(self.trade_price), "count": int(self.count)}

    @classmethod
    def from_dict(cls, symbol: str, data: Any) -> Share:
        """Build a Share from its on-disk form.

        Raises:
            DecodeError: If ``data`` is not a ``{tradePrice, count}`` object.

        """
        if not isinstance(data, dict):
            msg = f"Share {symbol!r} must be an object, got {type(data).__name__}"
            raise DecodeError(msg)
        price = data.get("tradePrice", 0.0)
        count = data.get("count", 0)
        if isinstance(price, bool) or not isinstance(price, (int, float)):
            msg = f"Share {symbol!r} has non-numeric tradePrice: {price!r}"
            raise DecodeError(msg)
        if isinstance(count, bool) or not isinstance(count, int):
            msg = f"Share {symbol!r} has non-integer count: {count!r}"
            raise DecodeError(msg)
        return cls(trade_price=float(price), count=count)


# ── payload validation ────────────────────────────────────────────


def _require(payload: dict[str, Any], key: str, kind: type) -> Any:
    value = payload[key]
    # bool is an int subclass
    if not isinstance(value, kind) or (isinstance(value, bool) and kind is not bool):
        msg = (
            f"Setting {key!r} has wrong type: expected {kind.__name__}, "
            f"got {type(value).__name__}"
        )
        raise DecodeError(msg)
    return value


def _positive(payload: dict[str, Any], key: str) -> int:
    value = _require(payload, key, int)
    if value <= 0:
        msg = f"Setting {key!r} must be positive, got {value}"
        raise DecodeError(msg)
    return value


def _parse_tickers(raw: Any) -> list[str]:
    if not isinstance(raw, list) or not all(isinstance(t, str) for t in raw):
        msg = "Setting 'tickers' must be a list of strings"
        raise DecodeError(msg)
    # Hand-edited files may repeat a symbol; keep the first occurrence.
    return list(dict.fromkeys(raw))


def _parse_shares(raw: Any) -> dict[str, Share]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        msg = "Setting 'shares' must be an object"
        raise DecodeError(msg)
    return {symbol: Share.from_dict(symbol, data) for symbol, data in raw.items()}


class Profile:
    """Persisted settings of the quote viewer.

    Mutating methods are serialized by one re-entrant lock per profile,
    held across the in-memory change and the following write. A failed
    write raises ``WriteError`` but keeps the in-memory change, so
    ``save()`` can be retried.

    Attributes:
        path: Settings file this profile is saved to.
        market_refresh_seconds: Interval between market summary fetches.
        quotes_refresh_seconds: Interval between stock quote fetches.
        api_url_template: Quote service URL with a ``%s`` symbol slot.
        api_url_params: Query-string suffix for the quote service.

    """

    def __init__(  # noqa: PLR0913
        self,
        path: str | Path,
        *,
        tickers: Iterable[str] = (),
        shares: dict[str, Share] | None = None,
        market_refresh_seconds: int = MARKET_REFRESH_SECONDS,
        quotes_refresh_seconds: int = QUOTES_REFRESH_SECONDS,
        sort: SortState | None = None,
        filter_text: str = "",
        api_url_template: str = "",
        api_url_params: str = "",
    ) -> None:
        self.path = Path(path)
        self._lock = threading.RLock()
        self._tickers: list[str] = list(dict.fromkeys(tickers))
        self._shares: dict[str, Share] = dict(shares or {})
        self.market_refresh_seconds = market_refresh_seconds
        self.quotes_refresh_seconds = quotes_refresh_seconds
        self._sort = sort if sort is not None else SortState()
        self._sort.selected_column = NO_COLUMN
        self._filter_text = ""
        self._compiled_filter: FilterExpression | None = None
        if filter_text:
            self._compiled_filter = compile_filter(filter_text)
            self._filter_text = filter_text
        self.api_url_template = api_url_template
        self.api_url_params = api_url_params
        self._all_tracked: tuple[str, ...] = ()
        self._recompute()

    # ── load / save ───────────────────────────────────────────────

    @classmethod
    def load(cls, path: str | Path, *, region: str = "") -> Profile:
        """Load the profile stored at ``path``, or create the default one.

        When the file is missing or unreadable, the default profile is
        built and written immediately so it exists next time. If that
        first write fails the error is logged and the default profile is
        still returned. Scalar settings missing from an existing file are
        taken from the defaults; a missing ticker list or position table
        is empty.

        Args:
            path: Settings file location.
            region: Region code used to pick default quote-service
                parameters (``"de"`` or anything else).

        Returns:
            The loaded profile.

        Raises:
            DecodeError: If the file exists but its content is malformed,
                including a stored filter that no longer compiles.

        """
        defaults = default_payload(region)
        try:
            payload = read_settings(path)
        except ResourceUnreadable as exc:
            logger.warning("%s; using default profile", exc)
            profile = cls.from_payload(path, defaults)
            try:
                profile.save()
            except WriteError:
                logger.exception("Could not write default profile to %s", path)
            else:
                logger.info("Created default profile at %s", path)
            return profile

        merged = {**defaults, "tickers": [], "shares": {}, **payload}
        profile = cls.from_payload(path, merged)
        logger.info(
            "Loaded profile from %s (%d tickers, %d shares)",
            path,
            len(profile._tickers),
            len(profile._shares),
        )
        return profile

    @classmethod
    def from_payload(cls, path: str | Path, payload: dict[str, Any]) -> Profile:
        """Build a profile from a complete settings payload.

        Raises:
            DecodeError: If any field is missing, has the wrong type or
                holds an invalid value.

        """
        try:
            sort_column = _require(payload, "sortColumn", int)
            if sort_column < 0:
                msg = f"Setting 'sortColumn' must not be negative, got {sort_column}"
                raise DecodeError(msg)
            sort = SortState(
                column=sort_column,
                ascending=_require(payload, "ascending", bool),
                grouped=_require(payload, "grouped", bool),
            )
            filter_text = _require(payload, "filterText", str)
            kwargs: dict[str, Any] = {
                "tickers": _parse_tickers(payload["tickers"]),
                "shares": _parse_shares(payload["shares"]),
                "market_refresh_seconds": _positive(payload, "marketRefreshSeconds"),
                "quotes_refresh_seconds": _positive(payload, "quotesRefreshSeconds"),
                "api_url_template": _require(payload, "apiUrlTemplate", str),
                "api_url_params": _require(payload, "apiUrlParams", str),
            }
        except KeyError as exc:
            msg = f"Setting {exc.args[0]!r} is missing"
            raise DecodeError(msg) from exc

        try:
            return cls(path, sort=sort, filter_text=filter_text, **kwargs)
        except FilterCompileError as exc:
            msg = f"Stored filter does not compile: {exc}"
            raise DecodeError(msg) from exc

    def to_payload(self) -> dict[str, Any]:
        """Return the persisted fields in the on-disk key layout."""
        with self._lock:
            return {
                "tickers": list(self._tickers),
                "shares": {symbol: share.to_dict() for symbol, share in self._shares.items()},
                "marketRefreshSeconds": self.market_refresh_seconds,
                "quotesRefreshSeconds": self.quotes_refresh_seconds,
                "sortColumn": self._sort.column,
                "ascending": self._sort.ascending,
                "grouped": self._sort.grouped,
                "filterText": self._filter_text,
                "apiUrlTemplate": self.api_url_template,
                "apiUrlParams": self.api_url_params,
            }

    def save(self) -> None:
        """Write the profile to its settings file.

        Raises:
            WriteError: If the file cannot be written.

        """
        with self._lock:
            self._commit()

    def _recompute(self) -> None:
        self._all_tracked = tracked_symbols(self._tickers, self._shares)

    def _commit(self) -> None:
        """Refresh derived state and persist. Caller holds the lock."""
        self._recompute()
        write_settings(self.path, self.to_payload())

    # ── watch-list ────────────────────────────────────────────────

    def add_tickers(self, symbols: Iterable[str]) -> int:
        """Add symbols to the watch-list, skipping ones already present.

        The watch-list is re-sorted and saved only when something was
        added.

        Args:
            symbols: Ticker symbols to watch.

        Returns:
            Number of symbols added.

        Raises:
            WriteError: If the updated profile cannot be saved.

        """
        with self._lock:
            self._tickers, added = merge_tickers(self._tickers, symbols)
            if added:
                logger.debug("Added %d ticker(s)", added)
                self._commit()
            return added

    def remove_tickers(self, symbols: Iterable[str]) -> int:
        """Remove symbols from the watch-list.

        Args:
            symbols: Ticker symbols to stop watching. Unknown ones are
                ignored.

        Returns:
            Number of symbols removed.

        Raises:
            WriteError: If the updated profile cannot be saved.

        """
        with self._lock:
            self._tickers, removed = drop_tickers(self._tickers, symbols)
            if removed:
                logger.debug("Removed %d ticker(s)", removed)
                self._commit()
            return removed

    # ── sorting ───────────────────────────────────────────────────

    def reorder(self) -> None:
        """Reverse the sort order or sort by the selected column, then save."""
        with self._lock:
            self._sort.reorder()
            self._commit()

    def regroup(self) -> None:
        """Toggle grouping by advancing/declining issues, then save."""
        with self._lock:
            self._sort.regroup()
            self._commit()

    # ── filter ────────────────────────────────────────────────────

    def set_filter(self, text: str) -> None:
        """Replace the row filter and save.

        An empty string clears the filter. On a compile error nothing
        changes and nothing is written.

        Args:
            text: Filter expression in human form.

        Raises:
            FilterCompileError: If ``text`` is not a valid filter.
            WriteError: If the updated profile cannot be saved.

        """
        compiled = compile_filter(text) if text else None
        with self._lock:
            self._compiled_filter = compiled
            self._filter_text = text
            self._commit()

    # ── accessors ─────────────────────────────────────────────────

    @property
    def tickers(self) -> tuple[str, ...]:
        return tuple(self._tickers)

    @property
    def shares(self) -> dict[str, Share]:
        with self._lock:
            return {
                symbol: Share(share.trade_price, share.count)
                for symbol, share in self._shares.items()
            }

    @property
    def all_tracked_symbols(self) -> tuple[str, ...]:
        """Watched tickers plus symbols with a held position."""
        return self._all_tracked

    @property
    def sort_column(self) -> int:
        return self._sort.column

    @property
    def ascending(self) -> bool:
        return self._sort.ascending

    @property
    def grouped(self) -> bool:
        return self._sort.grouped

    @property
    def selected_column(self) -> int:
        return self._sort.selected_column

    @selected_column.setter
    def selected_column(self, column: int) -> None:
        with self._lock:
            self._sort.selected_column = column

    @property
    def filter_text(self) -> str:
        return self._filter_text

    @property
    def compiled_filter(self) -> FilterExpression | None:
        return self._compiled_filter

    def snapshot(self) -> dict[str, Any]:
        """Persisted fields plus derived and transient state, for display."""
        with self._lock:
            data = self.to_payload()
            data["allTrackedSymbols"] = list(self._all_tracked)
            data["selectedColumn"] = self._sort.selected_column
            data["filterVariables"] = (
                sorted(self._compiled_filter.variables) if self._compiled_filter else []
            )
            return data
