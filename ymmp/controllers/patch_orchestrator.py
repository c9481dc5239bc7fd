import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import msgspec
from loguru import logger

from ymmp.models.patch_request import PatchRequest
from ymmp.models.release import ReleaseMetadata
from ymmp.models.settings import Settings
from ymmp.utils.app_info import AppInfo
from ymmp.utils.archive_cache import ArchiveCacheManager, CacheStats, ProgressCallback
from ymmp.utils.asar import read_packed_file
from ymmp.utils.constants import ARCHIVE_BACKUP_NAME, LOCK_FILE_NAME, METADATA_FILE_NAME
from ymmp.utils.exception import (
    ArchiveFormatError,
    FilesystemError,
    InstallNotFoundError,
    InstallPermissionError,
    InstallRequest,
    PatcherError,
    ProcessRunningError,
)
from ymmp.utils.generic import has_read_write_access
from ymmp.utils.github import GitHubService
from ymmp.utils.integrity import IntegrityOutcome, IntegrityPatcher
from ymmp.utils.patch_lock import PatchLock
from ymmp.utils.platform_profile import PlatformProfile
from ymmp.utils.process_controller import ProcessController, QueryStatus

StatusCallback = Callable[[str], None]


class PatchState(str, Enum):
    INIT = "init"
    VERIFY_INSTALL = "verify_install"
    CHECK_PROCESSES = "check_processes"
    STOP_PROCESS = "stop_process"
    FETCH_METADATA = "fetch_metadata"
    DOWNLOAD_ASSET = "download_asset"
    BACKUP = "backup"
    REPLACE = "replace"
    PATCH_INTEGRITY = "patch_integrity"
    CLEAR_CACHE = "clear_cache"
    RELAUNCH = "relaunch"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class InstallCheck:
    status: bool
    message: Optional[str] = None
    request: Optional[InstallRequest] = None


@dataclass(frozen=True)
class PatchResult:
    release_name: str
    asset_name: str
    backup_path: Path
    stopped_pids: tuple[int, ...] = field(default_factory=tuple)
    fingerprint_before: Optional[str] = None
    fingerprint_after: Optional[str] = None
    integrity_outcome: IntegrityOutcome = IntegrityOutcome.SKIPPED
    relaunched_pid: Optional[int] = None


class PatchOrchestrator:
    """
    Runs one patch of the Yandex Music resource archive.

    The run walks ``PatchState`` in order; every step completes before the
    next one starts and any error moves the run to ``FAILED`` and is re-raised.
    The original archive is backed up before it is replaced, but is never
    restored automatically.
    """

    def __init__(
        self,
        request: PatchRequest,
        settings: Settings,
        github: Optional[GitHubService] = None,
        profile: Optional[PlatformProfile] = None,
        process_controller: Optional[ProcessController] = None,
        integrity: Optional[IntegrityPatcher] = None,
        cache_dir: Optional[Path] = None,
        on_status: Optional[StatusCallback] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        self.request = request
        self.settings = settings
        self.profile = profile or PlatformProfile.resolve(request.install_root)
        self.github = github or GitHubService(settings)
        self.processes = process_controller or ProcessController(self.profile.platform)
        self.integrity = integrity or IntegrityPatcher.for_platform(
            self.profile.platform
        )
        self.cache_dir = cache_dir or AppInfo().cache_folder
        self.cache = ArchiveCacheManager(self.cache_dir, self.github, on_progress)
        self.lock = PatchLock(self.cache_dir / LOCK_FILE_NAME)
        self.on_status = on_status
        self.state = PatchState.INIT

    @property
    def backup_path(self) -> Path:
        return self.cache.temp_dir / ARCHIVE_BACKUP_NAME

    def _status(self, message: str) -> None:
        if self.on_status is not None:
            self.on_status(message)
        else:
            logger.info(message)

    def _enter(self, state: PatchState, message: Optional[str] = None) -> None:
        logger.debug(f"Patch state {self.state.value} -> {state.value}")
        self.state = state
        if message:
            self._status(message)

    def _verify_install(self) -> None:
        archive = self.profile.archive_path
        if not archive.is_file():
            raise InstallNotFoundError(archive)
        if not has_read_write_access(archive):
            raise InstallPermissionError(archive)

    def check_install_possible(self) -> InstallCheck:
        """Report whether the installation can be patched, without raising."""
        try:
            self._verify_install()
        except (InstallNotFoundError, InstallPermissionError) as e:
            logger.info(f"Install check failed: {e}")
            return InstallCheck(status=False, message=str(e), request=e.request)
        return InstallCheck(status=True)

    def get_installed_metadata(self) -> Optional[Dict[str, Any]]:
        """
        Read ``package.json`` from inside the installed archive.

        Returns:
            The decoded metadata, or None when it cannot be read.
        """
        archive = self.profile.archive_path
        if not archive.is_file():
            return None
        try:
            raw = read_packed_file(archive, METADATA_FILE_NAME)
        except (ArchiveFormatError, OSError) as e:
            logger.warning(f"Cannot read installed metadata from {archive}: {e}")
            return None
        if raw is None:
            return None
        try:
            metadata = msgspec.json.decode(raw)
        except msgspec.DecodeError as e:
            logger.warning(f"Installed {METADATA_FILE_NAME} is not valid JSON: {e}")
            return None
        return metadata if isinstance(metadata, dict) else None

    def fetch_release_info(self) -> ReleaseMetadata:
        return self.github.get_latest_release(self.request.auth_token)

    def clear_caches(self, include_backups: bool = False) -> list[Path]:
        with self.lock:
            return self.cache.clear(include_backups)

    def cache_stats(self) -> CacheStats:
        return self.cache.stats()

    def patch(self) -> PatchResult:
        """
        Install the latest mod release over the local Yandex Music archive.

        Raises:
            PatcherError: the typed error of the step that failed
        """
        try:
            with self.lock:
                result = self._run()
        except Exception as e:
            self._fail(e)
            raise
        logger.info(f"Patch completed: {result}")
        return result

    def _fail(self, error: Exception) -> None:
        failed_in = self.state
        self.state = PatchState.FAILED
        if isinstance(error, PatcherError):
            logger.error(f"Patch failed during {failed_in.value}: {error}")
        else:
            logger.exception(f"Unexpected error during {failed_in.value}: {error}")
        if failed_in in (PatchState.REPLACE, PatchState.PATCH_INTEGRITY):
            logger.warning(
                f"The original archive is backed up at {self.backup_path}; "
                f"copy it back to {self.profile.archive_path} to undo the patch"
            )

    def _run(self) -> PatchResult:
        archive = self.profile.archive_path

        self._enter(PatchState.VERIFY_INSTALL, "Checking installation...")
        self._verify_install()

        self._enter(PatchState.CHECK_PROCESSES, "Checking process status...")
        query = self.processes.list_running_instances()
        if query.status is not QueryStatus.SUCCESS:
            logger.info(
                f"Process enumeration {query.status.value}, assuming Yandex Music is not running"
            )
        stopped: tuple[int, ...] = ()
        if query.running:
            if not self.request.force_stop:
                raise ProcessRunningError(query.pids)
            self._enter(PatchState.STOP_PROCESS, "Closing Yandex Music...")
            self.processes.terminate(query.pids)
            stopped = query.pids

        before = None
        if self.integrity.needs_fingerprint:
            self._status("Calculating integrity hash...")
            before = self.integrity.fingerprint(archive)
            logger.debug(f"Archive fingerprint before patch: {before}")

        self._enter(PatchState.FETCH_METADATA, "Fetching release info...")
        release = self.github.get_latest_release(self.request.auth_token)
        asset = self.cache.resolve_asset(release, self.request.patch_variant)

        self._enter(PatchState.DOWNLOAD_ASSET, "Downloading assets...")
        working_archive = self.cache.ensure_local(
            asset, self.request.use_cache, self.request.auth_token
        )

        self._enter(PatchState.BACKUP, "Backing up...")
        self._copy(archive, self.backup_path)

        self._enter(PatchState.REPLACE, "Applying patch...")
        self._copy(working_archive, archive)

        after = None
        if self.integrity.needs_fingerprint:
            after = self.integrity.fingerprint(archive)
            logger.debug(f"Archive fingerprint after patch: {after}")

        outcome = IntegrityOutcome.SKIPPED
        if self.integrity.bypasses_integrity:
            self._enter(PatchState.PATCH_INTEGRITY, "Patching executable integrity...")
            outcome = self.integrity.apply(self.profile, before, after)

        if not self.request.keep_cache:
            self._enter(PatchState.CLEAR_CACHE, "Clearing cache...")
            self.cache.clear(include_backups=False)

        relaunched_pid = None
        if stopped:
            self._enter(PatchState.RELAUNCH, "Restarting Yandex Music...")
            relaunched_pid = self.processes.relaunch(self.profile)

        self._enter(PatchState.DONE)
        return PatchResult(
            release_name=release.name,
            asset_name=asset.name,
            backup_path=self.backup_path,
            stopped_pids=stopped,
            fingerprint_before=before,
            fingerprint_after=after,
            integrity_outcome=outcome,
            relaunched_pid=relaunched_pid,
        )

    @staticmethod
    def _copy(source: Path, destination: Path) -> None:
        logger.debug(f"Copying {source} -> {destination}")
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, destination)
        except OSError as e:
            raise FilesystemError(f"Failed to copy {source} to {destination}: {e}") from e
