import gzip
import shutil
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import requests
from loguru import logger

from ymmp.models.release import ReleaseAsset, ReleaseMetadata
from ymmp.utils.constants import (
    BACKUP_SUFFIX,
    COMPRESSED_SUFFIX,
    DOWNLOAD_CHUNK_SIZE,
    LOCK_FILE_NAME,
    PARTIAL_SUFFIX,
    VARIANT_ASSET_NAMES,
    WORKING_ARCHIVE_NAME,
    PatchVariant,
)
from ymmp.utils.exception import AssetNotFoundError, DownloadError, FilesystemError
from ymmp.utils.generic import files_matching, format_file_size
from ymmp.utils.github import GitHubService

# Receives the downloaded fraction in [0.0, 1.0]
ProgressCallback = Callable[[float], None]


@dataclass(frozen=True)
class CacheStats:
    file_count: int
    total_size: int

    @property
    def human_size(self) -> str:
        return format_file_size(self.total_size)


class ArchiveCacheManager:
    """
    Downloads release assets into ``<cache>/temp`` and keeps them for reuse.

    A cached asset is trusted when its size matches the size declared in the
    release. There is no content hash to check against.
    """

    def __init__(
        self,
        cache_dir: Path,
        github: GitHubService,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        self.cache_dir = cache_dir
        self.temp_dir = cache_dir / "temp"
        self.github = github
        self.on_progress = on_progress

    @property
    def working_archive(self) -> Path:
        return self.temp_dir / WORKING_ARCHIVE_NAME

    def ensure_dirs(self) -> None:
        try:
            self.temp_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f"Cannot create cache folder {self.temp_dir}: {e}") from e

    @staticmethod
    def resolve_asset(release: ReleaseMetadata, variant: PatchVariant) -> ReleaseAsset:
        """
        Pick the asset for the patch variant, preferring the gzip-compressed one.

        :raises AssetNotFoundError: if the release has neither form
        """
        base_name = VARIANT_ASSET_NAMES[PatchVariant(variant)]
        asset = release.find_asset(base_name + COMPRESSED_SUFFIX) or release.find_asset(
            base_name
        )
        if asset is None:
            logger.warning(
                f"Release {release.name} has no {base_name} asset: {[a.name for a in release.assets]}"
            )
            raise AssetNotFoundError(base_name)
        logger.debug(f"Selected asset {asset.name} ({asset.size} bytes)")
        return asset

    def is_cached(self, asset: ReleaseAsset) -> bool:
        path = self.temp_dir / asset.name
        return path.is_file() and path.stat().st_size == asset.size

    def ensure_local(
        self, asset: ReleaseAsset, use_cache: bool = True, token: Optional[str] = None
    ) -> Path:
        """
        Make the asset available locally and return the archive to install.

        Args:
            asset: Release asset to fetch
            use_cache: Whether a size-matching cached copy may be reused
            token: GitHub token override for the download

        Returns:
            Path to the uncompressed working archive
        """
        self.ensure_dirs()
        destination = self.temp_dir / asset.name

        if use_cache and self.is_cached(asset):
            logger.info(f"Using cached {asset.name} ({format_file_size(asset.size)})")
        else:
            if use_cache and destination.exists():
                logger.info(
                    f"Cached {asset.name} has size {destination.stat().st_size}, expected {asset.size}; downloading again"
                )
            self._download(asset, destination, token)

        if asset.is_compressed:
            self._decompress(destination, self.working_archive)
            return self.working_archive
        return destination

    def _report(self, fraction: float) -> None:
        if self.on_progress is not None:
            self.on_progress(min(fraction, 1.0))

    def _download(
        self, asset: ReleaseAsset, destination: Path, token: Optional[str]
    ) -> None:
        partial = destination.with_name(destination.name + PARTIAL_SUFFIX)
        response = self.github.download_stream(asset.download_url, token)
        try:
            total_size = int(response.headers.get("content-length") or 0)
        except ValueError:
            total_size = 0
        if total_size <= 0:
            logger.debug("Server did not report content-length, progress disabled")

        received = 0
        try:
            with open(partial, "wb") as out_file:
                for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    if not chunk:
                        continue
                    out_file.write(chunk)
                    received += len(chunk)
                    if total_size > 0:
                        self._report(received / total_size)
            partial.replace(destination)
        except requests.RequestException as e:
            logger.error(f"Download of {asset.name} interrupted: {e}")
            raise DownloadError(f"Failed to download {asset.name}: {e}") from e
        except OSError as e:
            logger.error(f"Failed to write {destination}: {e}")
            raise FilesystemError(f"Failed to write {destination}: {e}") from e
        finally:
            response.close()
            partial.unlink(missing_ok=True)

        if asset.size and received != asset.size:
            logger.warning(
                f"Downloaded {received} bytes for {asset.name}, release declares {asset.size}"
            )
        logger.info(f"Downloaded {asset.name} ({format_file_size(received)})")

    def _decompress(self, source: Path, destination: Path) -> None:
        logger.debug(f"Decompressing {source} into {destination}")
        try:
            with gzip.open(source, "rb") as src, open(destination, "wb") as dst:
                shutil.copyfileobj(src, dst)
        except (gzip.BadGzipFile, EOFError, zlib.error) as e:
            # Drop the corrupt download so the next run fetches it again
            source.unlink(missing_ok=True)
            destination.unlink(missing_ok=True)
            raise DownloadError(f"{source.name} is not a valid gzip archive: {e}") from e
        except OSError as e:
            raise FilesystemError(f"Failed to decompress {source}: {e}") from e

    def clear(self, include_backups: bool = False) -> list[Path]:
        """
        Delete files in the temp folder.

        :param include_backups: also delete ``*.backup`` files
        :return: the deleted paths
        """
        removed = files_matching(
            self.temp_dir,
            lambda p: include_backups or not p.name.endswith(BACKUP_SUFFIX),
        )
        for path in removed:
            try:
                path.unlink()
            except OSError as e:
                raise FilesystemError(f"Failed to delete {path}: {e}") from e
            logger.debug(f"Deleted: {path}")
        logger.info(f"Cleared {len(removed)} cached file(s)")
        return removed

    def stats(self) -> CacheStats:
        if not self.cache_dir.is_dir():
            return CacheStats(0, 0)
        # The run lock lives in the cache root but is not cached data
        lock_file = self.cache_dir / LOCK_FILE_NAME
        files = [
            p for p in self.cache_dir.rglob("*") if p.is_file() and p != lock_file
        ]
        return CacheStats(len(files), sum(p.stat().st_size for p in files))
