from enum import Enum
from pathlib import Path
from typing import Sequence


class InstallRequest(str, Enum):
    """
    Hint for the caller about what it should ask the user for
    when an installation cannot be patched.
    """

    REQUEST_YM_PATH = "REQUEST_YM_PATH"
    REQUEST_PERMISSIONS = "REQUEST_PERMISSIONS"


class PatcherError(Exception):
    """Base class for every error raised by the patcher."""

    pass


class UnsupportedPlatformError(PatcherError):
    def __init__(self, system: str) -> None:
        super().__init__(f"Unsupported platform: {system}")
        self.system = system


class InstallNotFoundError(PatcherError):
    """
    Raised when the resource archive of Yandex Music
    does not exist at the resolved install location.
    """

    request = InstallRequest.REQUEST_YM_PATH

    def __init__(self, path: Path) -> None:
        super().__init__(f"Yandex Music not found at: {path}")
        self.path = path


class InstallPermissionError(PatcherError):
    """
    Raised when the resource archive exists but
    cannot be both read and written by the current user.
    """

    request = InstallRequest.REQUEST_PERMISSIONS

    def __init__(self, path: Path) -> None:
        super().__init__(f"No write permissions for: {path}")
        self.path = path


class ProcessRunningError(PatcherError):
    def __init__(self, pids: Sequence[int]) -> None:
        super().__init__(
            "Yandex Music is running. Please close it or use --force to kill it."
        )
        self.pids = tuple(pids)


class AssetNotFoundError(PatcherError):
    def __init__(self, asset_name: str) -> None:
        super().__init__(
            f"No suitable asset found in release (expected {asset_name} or {asset_name}.gz)"
        )
        self.asset_name = asset_name


class RateLimitError(PatcherError):
    """Raised when GitHub refuses a request because of rate limiting."""

    pass


class ReleaseNotFoundError(PatcherError):
    """Raised when the release feed answers with 404."""

    pass


class ReleaseFetchError(PatcherError):
    pass


class DownloadError(PatcherError):
    pass


class FilesystemError(PatcherError):
    pass


class ArchiveFormatError(PatcherError):
    """
    Raised when trying to read the header of
    a file that is not a valid ASAR archive
    """

    pass


class PatchInProgressError(PatcherError):
    def __init__(self, lock_file: Path) -> None:
        super().__init__(
            f"Another ymmp run is using the cache (lock held on {lock_file})"
        )
        self.lock_file = lock_file
