"""JSON settings store for quote profiles.

Works on plain payload dicts; it knows nothing about ``Profile`` itself.
The on-disk format is a single UTF-8 JSON object::

    {
      "tickers": ["AMZ.F", ...],
      "shares": {"AFR.F": {"tradePrice": 5.35, "count": 4000}},
      "marketRefreshSeconds": 12,
      ...
    }

"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import numpy as np

from quoteprofile.errors import DecodeError, ResourceUnreadable, WriteError

logger = logging.getLogger(__name__)

# Permissions of the settings file once it has been moved into place
_FILE_MODE = 0o644


class _SettingsEncoder(json.JSONEncoder):
    """JSON encoder that handles NumPy types."""

    def default(self, o: Any) -> Any:
        """Convert NumPy types to JSON-serializable Python types."""
        if isinstance(o, np.ndarray):
            return o.tolist()
        if isinstance(o, np.integer):
            return int(o)
        if isinstance(o, np.floating):
            return float(o)
        if isinstance(o, np.bool_):
            return bool(o)
        return super().default(o)


def read_settings(path: str | Path) -> dict[str, Any]:
    """Read and decode the settings file.

    Args:
        path: Location of the settings file.

    Returns:
        The decoded settings payload.

    Raises:
        ResourceUnreadable: If the file is missing or cannot be read.
        DecodeError: If the file content is not a JSON object.

    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as exc:
        msg = f"Cannot read settings file {path}: {exc}"
        raise ResourceUnreadable(msg) from exc
    return decode_settings(data, source=str(path))


def decode_settings(data: bytes, source: str = "<bytes>") -> dict[str, Any]:
    """Decode raw settings bytes into a payload dict.

    Args:
        data: UTF-8 encoded JSON.
        source: Name used in error messages.

    Returns:
        The decoded JSON object.

    Raises:
        DecodeError: If the bytes are not UTF-8 JSON or the top-level
            value is not an object.

    """
    try:
        payload = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        msg = f"Malformed settings in {source}: {exc}"
        raise DecodeError(msg) from exc

    if not isinstance(payload, dict):
        kind = type(payload).__name__
        msg = f"Malformed settings in {source}: expected a JSON object, got {kind}"
        raise DecodeError(msg)
    return payload


def dumps(payload: Any, *, indent: int | None = None) -> str:
    """Serialize to JSON, converting NumPy values."""
    return json.dumps(payload, cls=_SettingsEncoder, indent=indent)


def encode_settings(payload: dict[str, Any]) -> bytes:
    """Serialize a settings payload to indented UTF-8 JSON."""
    return (dumps(payload, indent=2) + "\n").encode("utf-8")


def write_settings(path: str | Path, payload: dict[str, Any]) -> None:
    """Atomically write a settings payload.

    The payload is written to a temporary file in the destination
    directory, flushed to disk, then moved over ``path`` with
    ``os.replace``. The previous file stays intact if anything fails.

    Args:
        path: Destination settings file.
        payload: JSON-serializable settings dict.

    Raises:
        WriteError: If the payload cannot be serialized or written.

    """
    path = Path(path)
    try:
        data = encode_settings(payload)
    except (TypeError, ValueError) as exc:
        msg = f"Cannot serialize settings for {path}: {exc}"
        raise WriteError(msg) from exc

    tmp_name: str | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, _FILE_MODE)
        os.replace(tmp_name, path)
    except OSError as exc:
        if tmp_name is not None:
            Path(tmp_name).unlink(missing_ok=True)
        msg = f"Cannot write settings file {path}: {exc}"
        raise WriteError(msg) from exc

    logger.debug("Wrote %d bytes of settings to %s", len(data), path)
