import hashlib
import json
import struct
from pathlib import Path
from typing import Callable

import pytest

from ymmp.utils.asar import read_packed_file, read_raw_header
from ymmp.utils.exception import ArchiveFormatError
from ymmp.utils.integrity import fingerprint

PACKAGE_JSON = json.dumps({"name": "yandex-music", "version": "5.30.1"}).encode()


def test_read_raw_header(make_asar: Callable[..., Path]) -> None:
    archive = make_asar({"package.json": PACKAGE_JSON, "main.js": b"console.log(1)"})

    raw = read_raw_header(archive)
    header = raw.as_json()

    assert header["files"]["package.json"] == {"size": len(PACKAGE_JSON), "offset": "0"}
    assert header["files"]["main.js"]["offset"] == str(len(PACKAGE_JSON))
    assert raw.data_offset == 8 + raw.header_size
    assert raw.header_size % 4 == 0


def test_fingerprint_is_sha256_of_header_string(make_asar: Callable[..., Path]) -> None:
    archive = make_asar({"package.json": PACKAGE_JSON})
    header_string = read_raw_header(archive).header_string

    digest = fingerprint(archive)

    assert digest == hashlib.sha256(header_string.encode("utf-8")).hexdigest()
    assert len(digest) == 64


def test_fingerprint_ignores_file_contents(make_asar: Callable[..., Path], tmp_path: Path) -> None:
    """Only the header is hashed, so same-sized content changes keep the fingerprint."""
    first = make_asar({"main.js": b"aaaa"}, tmp_path / "first.asar")
    second = make_asar({"main.js": b"bbbb"}, tmp_path / "second.asar")

    assert fingerprint(first) == fingerprint(second)


def test_read_packed_file(make_asar: Callable[..., Path]) -> None:
    archive = make_asar(
        {"package.json": PACKAGE_JSON, "build/index.html": b"<html></html>"}
    )

    assert read_packed_file(archive, "package.json") == PACKAGE_JSON
    assert read_packed_file(archive, "build/index.html") == b"<html></html>"
    assert read_packed_file(archive, "/build/index.html") == b"<html></html>"


def test_read_packed_file_missing_or_directory(make_asar: Callable[..., Path]) -> None:
    archive = make_asar({"build/index.html": b"<html></html>"})

    assert read_packed_file(archive, "package.json") is None
    assert read_packed_file(archive, "build") is None
    assert read_packed_file(archive, "build/index.html/nested") is None


def test_too_short_file(tmp_path: Path) -> None:
    archive = tmp_path / "app.asar"
    archive.write_bytes(b"\x04\x00")

    with pytest.raises(ArchiveFormatError):
        read_raw_header(archive)


def test_invalid_header_size(tmp_path: Path) -> None:
    archive = tmp_path / "app.asar"
    archive.write_bytes(struct.pack("<II", 4, 0xFFFFFFFF) + b"\0" * 16)

    with pytest.raises(ArchiveFormatError):
        read_raw_header(archive)


def test_truncated_header(tmp_path: Path) -> None:
    archive = tmp_path / "app.asar"
    archive.write_bytes(struct.pack("<II", 4, 64) + b"\0" * 16)

    with pytest.raises(ArchiveFormatError):
        read_raw_header(archive)


def test_header_string_longer_than_pickle(tmp_path: Path) -> None:
    archive = tmp_path / "app.asar"
    header_pickle = struct.pack("<Ii", 12, 100) + b"{}\0\0"
    archive.write_bytes(struct.pack("<II", 4, len(header_pickle)) + header_pickle)

    with pytest.raises(ArchiveFormatError):
        read_raw_header(archive)


def test_header_not_json(tmp_path: Path) -> None:
    archive = tmp_path / "app.asar"
    header_pickle = struct.pack("<Ii", 8, 4) + b"nope"
    archive.write_bytes(struct.pack("<II", 4, len(header_pickle)) + header_pickle)

    raw = read_raw_header(archive)
    assert raw.header_string == "nope"
    with pytest.raises(ArchiveFormatError):
        raw.as_json()
