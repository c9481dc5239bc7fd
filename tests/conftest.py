import json
import struct
from pathlib import Path
from typing import Callable, Iterable, Optional
from unittest.mock import MagicMock

import pytest

from ymmp.models.release import ReleaseAsset, ReleaseMetadata
from ymmp.models.settings import Settings


def build_asar(files: dict[str, bytes]) -> bytes:
    """
    Build an in-memory ASAR archive.

    Names may contain "/" to create nested folders.
    """
    tree: dict = {"files": {}}
    offset = 0
    blobs = []
    for name, data in files.items():
        node = tree
        parts = name.split("/")
        for part in parts[:-1]:
            node = node["files"].setdefault(part, {"files": {}})
        node["files"][parts[-1]] = {"size": len(data), "offset": str(offset)}
        offset += len(data)
        blobs.append(data)

    header = json.dumps(tree).encode("utf-8")
    padding = -len(header) % 4
    header_pickle = (
        struct.pack("<Ii", 4 + len(header) + padding, len(header))
        + header
        + b"\0" * padding
    )
    return struct.pack("<II", 4, len(header_pickle)) + header_pickle + b"".join(blobs)


@pytest.fixture
def make_asar(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing an ASAR archive to disk, padded with zeros to ``size`` if given."""

    def _make(
        files: dict[str, bytes], path: Optional[Path] = None, size: Optional[int] = None
    ) -> Path:
        data = build_asar(files)
        if size is not None:
            assert len(data) <= size
            data += b"\0" * (size - len(data))
        target = path or tmp_path / "app.asar"
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        return target

    return _make


def make_response(
    status_code: int = 200,
    content: bytes = b"",
    chunks: Iterable[bytes] = (),
    headers: Optional[dict[str, str]] = None,
) -> MagicMock:
    """Mock of a ``requests.Response`` with the attributes the patcher reads."""
    response = MagicMock()
    response.status_code = status_code
    response.content = content
    response.headers = headers or {}
    response.iter_content.return_value = list(chunks)
    return response


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(tmp_path / "config" / "config.json")


@pytest.fixture
def release() -> ReleaseMetadata:
    return ReleaseMetadata(
        name="YandexMusicModClient 5.2.1",
        published_at="2026-09-30T12:00:00Z",
        tag_name="v5.2.1",
        assets=[
            ReleaseAsset(
                name="app.asar.gz",
                browser_download_url="https://example.invalid/app.asar.gz",
                size=1000,
            ),
            ReleaseAsset(
                name="appDevTools.asar",
                browser_download_url="https://example.invalid/appDevTools.asar",
                size=64,
            ),
        ],
    )


@pytest.fixture
def fake_response() -> Callable[..., MagicMock]:
    return make_response
