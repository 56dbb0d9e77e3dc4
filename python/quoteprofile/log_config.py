"""Logging configuration for the profile sidecar.

Library code only ever calls ``logging.getLogger(__name__)``. The sidecar
calls ``setup()`` once so the ``quoteprofile`` loggers write ISO-8601
timestamped lines to stderr; stdout belongs to the JSON protocol.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

_LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"
_PACKAGE_LOGGER = "quoteprofile"


def setup(*, verbose: bool = False, stream: TextIO | None = None) -> logging.Logger:
    """Attach a stderr handler to the package logger.

    Calling this more than once replaces the previous handler instead of
    stacking duplicates.

    Args:
        verbose: If True, set level to DEBUG; otherwise INFO.
        stream: Destination stream. Defaults to ``sys.stderr``.

    Returns:
        The configured package logger.

    """
    logger = logging.getLogger(_PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        if getattr(handler, "_quoteprofile", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT))
    handler._quoteprofile = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    return logger
