"""Minimal reader for Electron ASAR archives.

An archive starts with two Chromium pickles:

- an 8 byte size pickle: ``uint32 payload size (always 4)``, ``uint32 header size``
- the header pickle of ``header size`` bytes: ``uint32 payload size``,
  ``int32 string length``, then the UTF-8 JSON header string (padded to 4 bytes)

File contents follow, and every ``offset`` in the JSON header is relative to
``8 + header size``.
"""

import json
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from ymmp.utils.exception import ArchiveFormatError

SIZE_PICKLE_LENGTH = 8
# Headers larger than this are treated as corruption
MAX_HEADER_SIZE = 256 * 1024 * 1024


@dataclass(frozen=True)
class RawHeader:
    header_string: str
    header_size: int

    @property
    def data_offset(self) -> int:
        return SIZE_PICKLE_LENGTH + self.header_size

    def as_json(self) -> Dict[str, Any]:
        try:
            return json.loads(self.header_string)
        except json.JSONDecodeError as e:
            raise ArchiveFormatError(f"ASAR header is not valid JSON: {e}") from e


def read_raw_header(path: Path) -> RawHeader:
    """
    Read only the header of an ASAR archive.

    :param path: path to the archive
    :raises ArchiveFormatError: if the file is too short or the pickles are inconsistent
    """
    with open(path, "rb") as f:
        size_pickle = f.read(SIZE_PICKLE_LENGTH)
        if len(size_pickle) != SIZE_PICKLE_LENGTH:
            raise ArchiveFormatError(f"{path} is too short to be an ASAR archive")
        _, header_size = struct.unpack("<II", size_pickle)
        if header_size < 8 or header_size > MAX_HEADER_SIZE:
            raise ArchiveFormatError(f"{path} has an invalid header size {header_size}")

        header_pickle = f.read(header_size)
        if len(header_pickle) != header_size:
            raise ArchiveFormatError(f"{path} header is truncated")

    _, string_length = struct.unpack_from("<Ii", header_pickle, 0)
    if string_length < 0 or 8 + string_length > header_size:
        raise ArchiveFormatError(
            f"{path} header string length {string_length} exceeds header size"
        )
    try:
        header_string = header_pickle[8 : 8 + string_length].decode("utf-8")
    except UnicodeDecodeError as e:
        raise ArchiveFormatError(f"{path} header is not UTF-8: {e}") from e
    return RawHeader(header_string=header_string, header_size=header_size)


def _lookup(header: Dict[str, Any], name: str) -> Dict[str, Any] | None:
    node: Dict[str, Any] | None = header
    for part in name.strip("/").split("/"):
        if node is None or "files" not in node:
            return None
        node = node["files"].get(part)
    return node


def read_packed_file(path: Path, name: str) -> bytes | None:
    """
    Read a single file packed inside the archive.

    Returns None for missing entries, directories and unpacked entries.
    """
    raw = read_raw_header(path)
    entry = _lookup(raw.as_json(), name)
    if entry is None or "files" in entry or entry.get("unpacked"):
        return None

    try:
        offset = int(entry["offset"])
        size = int(entry["size"])
    except (KeyError, TypeError, ValueError) as e:
        raise ArchiveFormatError(f"Malformed entry for {name} in {path}: {e}") from e

    with open(path, "rb") as f:
        f.seek(raw.data_offset + offset)
        data = f.read(size)
    if len(data) != size:
        raise ArchiveFormatError(f"{name} is truncated in {path}")
    return data
