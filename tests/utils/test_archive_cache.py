"""
Tests for downloading, caching and decompressing release assets.
"""

import gzip
from pathlib import Path
from typing import Callable
from unittest.mock import MagicMock

import pytest
import requests

from ymmp.models.release import ReleaseAsset, ReleaseMetadata
from ymmp.utils.archive_cache import ArchiveCacheManager
from ymmp.utils.constants import PatchVariant
from ymmp.utils.exception import AssetNotFoundError, DownloadError

ARCHIVE_CONTENT = b"asar-bytes" * 50


def gzip_payload(size: int = 1000) -> bytes:
    """Gzip stream padded with zeros to exactly ``size`` bytes."""
    data = gzip.compress(ARCHIVE_CONTENT)
    assert len(data) <= size
    return data + b"\0" * (size - len(data))


def gz_asset(size: int = 1000) -> ReleaseAsset:
    return ReleaseAsset("app.asar.gz", "https://example.invalid/app.asar.gz", size)


@pytest.fixture
def github() -> MagicMock:
    return MagicMock()


@pytest.fixture
def cache(tmp_path: Path, github: MagicMock) -> ArchiveCacheManager:
    return ArchiveCacheManager(tmp_path / "cache", github)


class TestResolveAsset:
    def test_prefers_compressed_asset(self) -> None:
        release = ReleaseMetadata(
            name="r",
            assets=[
                ReleaseAsset("app.asar", "https://example.invalid/app.asar", 10),
                gz_asset(),
            ],
        )

        asset = ArchiveCacheManager.resolve_asset(release, PatchVariant.DEFAULT)

        assert asset.name == "app.asar.gz"

    def test_falls_back_to_uncompressed(self) -> None:
        release = ReleaseMetadata(
            name="r",
            assets=[ReleaseAsset("app.asar", "https://example.invalid/app.asar", 10)],
        )

        assert ArchiveCacheManager.resolve_asset(release, "default").name == "app.asar"

    def test_devtools_variant(self, release: ReleaseMetadata) -> None:
        asset = ArchiveCacheManager.resolve_asset(release, PatchVariant.DEVTOOLS_ONLY)

        assert asset.name == "appDevTools.asar"

    def test_missing_asset(self) -> None:
        release = ReleaseMetadata(
            name="r",
            assets=[ReleaseAsset("source.zip", "https://example.invalid/source.zip")],
        )

        with pytest.raises(AssetNotFoundError) as exc_info:
            ArchiveCacheManager.resolve_asset(release, PatchVariant.DEFAULT)
        assert exc_info.value.asset_name == "app.asar"


class TestEnsureLocal:
    def test_cache_hit_makes_no_network_call(
        self, cache: ArchiveCacheManager, github: MagicMock
    ) -> None:
        cache.ensure_dirs()
        (cache.temp_dir / "app.asar.gz").write_bytes(gzip_payload())

        working = cache.ensure_local(gz_asset())

        github.download_stream.assert_not_called()
        assert working == cache.working_archive
        assert working.read_bytes() == ARCHIVE_CONTENT

    def test_size_mismatch_downloads_again(
        self,
        cache: ArchiveCacheManager,
        github: MagicMock,
        fake_response: Callable[..., MagicMock],
    ) -> None:
        cache.ensure_dirs()
        (cache.temp_dir / "app.asar.gz").write_bytes(b"stale")
        payload = gzip_payload()
        github.download_stream.return_value = fake_response(
            chunks=[payload], headers={"content-length": "1000"}
        )

        working = cache.ensure_local(gz_asset(), token="ghp_override")

        github.download_stream.assert_called_once_with(
            "https://example.invalid/app.asar.gz", "ghp_override"
        )
        assert (cache.temp_dir / "app.asar.gz").read_bytes() == payload
        assert working.read_bytes() == ARCHIVE_CONTENT

    def test_no_cache_always_downloads(
        self,
        cache: ArchiveCacheManager,
        github: MagicMock,
        fake_response: Callable[..., MagicMock],
    ) -> None:
        cache.ensure_dirs()
        (cache.temp_dir / "app.asar.gz").write_bytes(gzip_payload())
        github.download_stream.return_value = fake_response(chunks=[gzip_payload()])

        cache.ensure_local(gz_asset(), use_cache=False)

        github.download_stream.assert_called_once()

    def test_uncompressed_asset_is_used_directly(
        self,
        cache: ArchiveCacheManager,
        github: MagicMock,
        fake_response: Callable[..., MagicMock],
    ) -> None:
        asset = ReleaseAsset(
            "appDevTools.asar", "https://example.invalid/appDevTools.asar", 4
        )
        github.download_stream.return_value = fake_response(chunks=[b"asar"])

        working = cache.ensure_local(asset)

        assert working == cache.temp_dir / "appDevTools.asar"
        assert working.read_bytes() == b"asar"
        assert not cache.working_archive.exists()

    def test_progress_reports_fractions(
        self,
        tmp_path: Path,
        github: MagicMock,
        fake_response: Callable[..., MagicMock],
    ) -> None:
        fractions: list[float] = []
        cache = ArchiveCacheManager(tmp_path / "cache", github, fractions.append)
        payload = gzip_payload()
        github.download_stream.return_value = fake_response(
            chunks=[payload[:400], b"", payload[400:]],
            headers={"content-length": "1000"},
        )

        cache.ensure_local(gz_asset())

        assert fractions == [0.4, 1.0]

    def test_no_content_length_disables_progress(
        self,
        tmp_path: Path,
        github: MagicMock,
        fake_response: Callable[..., MagicMock],
    ) -> None:
        fractions: list[float] = []
        cache = ArchiveCacheManager(tmp_path / "cache", github, fractions.append)
        github.download_stream.return_value = fake_response(chunks=[gzip_payload()])

        working = cache.ensure_local(gz_asset())

        assert fractions == []
        assert working.read_bytes() == ARCHIVE_CONTENT

    def test_interrupted_download(
        self,
        cache: ArchiveCacheManager,
        github: MagicMock,
        fake_response: Callable[..., MagicMock],
    ) -> None:
        """A broken stream leaves neither the asset nor a partial file behind."""
        response = fake_response()
        response.iter_content.side_effect = requests.ConnectionError("reset")
        github.download_stream.return_value = response

        with pytest.raises(DownloadError):
            cache.ensure_local(gz_asset())

        response.close.assert_called_once()
        assert list(cache.temp_dir.iterdir()) == []

    def test_corrupt_gzip_is_removed(
        self,
        cache: ArchiveCacheManager,
        github: MagicMock,
        fake_response: Callable[..., MagicMock],
    ) -> None:
        github.download_stream.return_value = fake_response(chunks=[b"x" * 1000])

        with pytest.raises(DownloadError):
            cache.ensure_local(gz_asset())

        assert not (cache.temp_dir / "app.asar.gz").exists()
        assert not cache.working_archive.exists()


class TestClearAndStats:
    def populate(self, cache: ArchiveCacheManager) -> None:
        cache.ensure_dirs()
        (cache.temp_dir / "app.asar.gz").write_bytes(b"a" * 10)
        (cache.temp_dir / "app.asar").write_bytes(b"b" * 20)
        (cache.temp_dir / "app.asar.backup").write_bytes(b"c" * 30)

    def test_clear_keeps_backups(self, cache: ArchiveCacheManager) -> None:
        self.populate(cache)

        removed = cache.clear()

        assert sorted(p.name for p in removed) == ["app.asar", "app.asar.gz"]
        assert [p.name for p in cache.temp_dir.iterdir()] == ["app.asar.backup"]

    def test_clear_all(self, cache: ArchiveCacheManager) -> None:
        self.populate(cache)

        removed = cache.clear(include_backups=True)

        assert len(removed) == 3
        assert list(cache.temp_dir.iterdir()) == []

    def test_clear_missing_folder(self, cache: ArchiveCacheManager) -> None:
        assert cache.clear(include_backups=True) == []

    def test_stats(self, cache: ArchiveCacheManager) -> None:
        self.populate(cache)

        stats = cache.stats()

        assert stats.file_count == 3
        assert stats.total_size == 60
        assert stats.human_size == "60 B"

    def test_stats_ignores_lock_file(self, cache: ArchiveCacheManager) -> None:
        cache.ensure_dirs()
        (cache.cache_dir / "ymmp.lock").write_text("")

        assert (cache.stats().file_count, cache.stats().total_size) == (0, 0)

        self.populate(cache)

        assert cache.stats().file_count == 3

    def test_stats_without_cache(self, cache: ArchiveCacheManager) -> None:
        stats = cache.stats()

        assert (stats.file_count, stats.total_size) == (0, 0)
