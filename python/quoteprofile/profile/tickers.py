"""Watch-list helpers.

Pure functions over ticker sequences. ``Profile`` calls these under its
lock and handles persistence.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping


def merge_tickers(existing: list[str], symbols: Iterable[str]) -> tuple[list[str], int]:
    """Add symbols that are not already watched.

    Args:
        existing: Current watch-list (duplicate-free).
        symbols: Symbols to add. Repeats in the input are added once.

    Returns:
        Tuple of (new watch-list, number added). The new list is sorted
        when anything was added; otherwise it is ``existing`` unchanged.

    """
    seen = set(existing)
    merged = list(existing)
    added = 0
    for symbol in symbols:
        if symbol not in seen:
            seen.add(symbol)
            merged.append(symbol)
            added += 1

    if added == 0:
        return existing, 0
    merged.sort()
    return merged, added


def drop_tickers(existing: list[str], symbols: Iterable[str]) -> tuple[list[str], int]:
    """Remove symbols from the watch-list.

    The retained symbols are collected into a fresh list; ``existing``
    is never modified while it is being scanned.

    Args:
        existing: Current watch-list.
        symbols: Symbols to remove. Unknown symbols are ignored and a
            symbol repeated in the input is only counted once.

    Returns:
        Tuple of (new watch-list, number removed).

    """
    targets = set(symbols)
    retained = [ticker for ticker in existing if ticker not in targets]
    return retained, len(existing) - len(retained)


def tracked_symbols(tickers: Iterable[str], shares: Mapping[str, object]) -> tuple[str, ...]:
    """Union of watched tickers and held-position symbols, sorted."""
    return tuple(sorted(set(tickers) | set(shares)))
