"""Tests for the JSON settings store."""

from __future__ import annotations

import json
import os
import stat
from pathlib import Path
from unittest.mock import patch

import numpy as np
import pytest
from quoteprofile.errors import DecodeError, ResourceUnreadable, WriteError
from quoteprofile.store.json_store import (
    decode_settings,
    dumps,
    encode_settings,
    read_settings,
    write_settings,
)


class TestReadSettings:
    """Tests for reading the settings file."""

    def test_missing_file_is_unreadable(self, tmp_path: Path) -> None:
        with pytest.raises(ResourceUnreadable, match="Cannot read settings file"):
            read_settings(tmp_path / "absent")

    def test_directory_is_unreadable(self, tmp_path: Path) -> None:
        with pytest.raises(ResourceUnreadable):
            read_settings(tmp_path)

    def test_reads_object(self, tmp_path: Path) -> None:
        path = tmp_path / "rc"
        path.write_text('{"tickers": ["AAPL"]}', encoding="utf-8")
        assert read_settings(path) == {"tickers": ["AAPL"]}


class TestDecodeSettings:
    """Tests for decoding raw settings bytes."""

    def test_invalid_json(self) -> None:
        with pytest.raises(DecodeError, match="Malformed settings"):
            decode_settings(b"{not json")

    def test_invalid_utf8(self) -> None:
        with pytest.raises(DecodeError):
            decode_settings(b"\xff\xfe{}")

    def test_non_object_rejected(self) -> None:
        with pytest.raises(DecodeError, match="expected a JSON object"):
            decode_settings(b"[1, 2, 3]")

    def test_source_in_message(self) -> None:
        with pytest.raises(DecodeError, match="my.rc"):
            decode_settings(b"", source="my.rc")


class TestEncodeSettings:
    """Tests for serialization."""

    def test_numpy_values_are_converted(self) -> None:
        payload = {"count": np.int64(4000), "price": np.float64(5.35), "flag": np.bool_(True)}
        decoded = json.loads(encode_settings(payload))
        assert decoded == {"count": 4000, "price": 5.35, "flag": True}

    def test_encoded_is_indented_utf8(self) -> None:
        data = encode_settings({"a": 1})
        assert data.endswith(b"\n")
        assert b'\n  "a": 1' in data

    def test_dumps_is_single_line(self) -> None:
        assert "\n" not in dumps({"a": [1, 2], "b": {"c": np.int32(3)}})


class TestWriteSettings:
    """Tests for the atomic write path."""

    def test_write_then_read(self, tmp_path: Path) -> None:
        path = tmp_path / "rc"
        write_settings(path, {"tickers": ["SAP.F"]})
        assert read_settings(path) == {"tickers": ["SAP.F"]}

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "deep" / "rc"
        write_settings(path, {})
        assert path.exists()

    def test_no_temporary_files_left(self, tmp_path: Path) -> None:
        path = tmp_path / "rc"
        write_settings(path, {"a": 1})
        write_settings(path, {"a": 2})
        assert [p.name for p in tmp_path.iterdir()] == ["rc"]

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permissions")
    def test_file_mode(self, tmp_path: Path) -> None:
        path = tmp_path / "rc"
        write_settings(path, {})
        assert stat.S_IMODE(path.stat().st_mode) == 0o644

    def test_failed_replace_keeps_previous_file(self, tmp_path: Path) -> None:
        path = tmp_path / "rc"
        write_settings(path, {"version": 1})

        with (
            patch("quoteprofile.store.json_store.os.replace", side_effect=OSError("disk full")),
            pytest.raises(WriteError, match="disk full"),
        ):
            write_settings(path, {"version": 2})

        assert read_settings(path) == {"version": 1}
        assert [p.name for p in tmp_path.iterdir()] == ["rc"]

    def test_unserializable_payload(self, tmp_path: Path) -> None:
        with pytest.raises(WriteError, match="Cannot serialize"):
            write_settings(tmp_path / "rc", {"bad": object()})

    def test_write_error_is_os_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("x", encoding="utf-8")
        with pytest.raises(OSError):
            write_settings(blocker / "rc", {})
