"""Default profile used when no settings file exists yet."""

from __future__ import annotations

from typing import Any

# Market data gets fetched every 12s (5 times per minute).
MARKET_REFRESH_SECONDS = 12
# Stock quotes get updated every 5s (12 times per minute).
QUOTES_REFRESH_SECONDS = 5

DEFAULT_TICKERS: tuple[str, ...] = (
    "AMZ.F", "GAZ.F", "FB2A.F", "ABEA.F", "VOW3.F", "AMD.F", "LHA.F", "TL0.F",
    "AHLA.F", "EBA.F", "LUK.F", "TUI1.F", "AFR.F", "MSF.F", "INL.F", "WDI.F",
    "APC.F", "5ZM.F", "SCF.F", "TU5A.F", "BMW.F", "IFX.F", "PCE1.F", "DAI.F",
    "RY4D.F", "EJT1.F", "7HP.F", "SAP.F", "LHL.F",
)  # fmt: skip

# symbol -> (trade price, share count)
DEFAULT_SHARES: dict[str, tuple[float, int]] = {
    "AFR.F": (5.35, 4000),
    "LHL.F": (0.4863, 30000),
}

API_URL_TEMPLATE = "https://query1.finance.yahoo.com/v7/finance/quote?symbols=%s"

_API_URL_PARAMS_DE = (
    "&range=1d&interval=5m&indicators=close&includeTimestamps=false"
    "&includePrePost=false&region=DE&lang=de-DE"
    "&corsDomain=de.finance.yahoo.com&.tsrc=finance"
)
_API_URL_PARAMS_INTL = (
    "&range=1d&interval=5m&indicators=close&includeTimestamps=false"
    "&includePrePost=false&corsDomain=finance.yahoo.com&.tsrc=finance"
)


def api_url_params(region: str = "") -> str:
    """Return the quote-service URL parameters for a region.

    Args:
        region: Two-letter region code. Only ``"de"`` has its own
            parameter set; everything else gets the international one.

    Returns:
        The query-string suffix appended to the API URL.

    """
    if region.lower() == "de":
        return _API_URL_PARAMS_DE
    return _API_URL_PARAMS_INTL


def default_payload(region: str = "") -> dict[str, Any]:
    """Build the settings payload of a freshly created profile.

    Args:
        region: Region code forwarded to ``api_url_params``.

    Returns:
        A settings dict in the on-disk key layout.

    """
    return {
        "tickers": list(DEFAULT_TICKERS),
        "shares": {
            symbol: {"tradePrice": price, "count": count}
            for symbol, (price, count) in DEFAULT_SHARES.items()
        },
        "marketRefreshSeconds": MARKET_REFRESH_SECONDS,
        "quotesRefreshSeconds": QUOTES_REFRESH_SECONDS,
        "sortColumn": 0,  # Sorted by ticker name.
        "ascending": True,  # A to Z.
        "grouped": False,  # Not grouped by advancing/declining.
        "filterText": "",
        "apiUrlTemplate": API_URL_TEMPLATE,
        "apiUrlParams": api_url_params(region),
    }
