import hashlib
import shutil
import subprocess
from enum import Enum
from pathlib import Path
from typing import Tuple

from loguru import logger

from ymmp.utils.asar import read_raw_header
from ymmp.utils.constants import BACKUP_SUFFIX
from ymmp.utils.exception import FilesystemError
from ymmp.utils.platform_profile import Platform, PlatformProfile


class IntegrityOutcome(str, Enum):
    PATCHED = "patched"
    UNCHANGED = "unchanged"
    NOT_FOUND = "not_found"
    SKIPPED = "skipped"
    RESIGNED = "resigned"
    RESIGN_FAILED = "resign_failed"


def fingerprint(archive_path: Path) -> str:
    """
    SHA-256 hex digest of the ASAR header string, as embedded in the
    Windows executable and checked by Electron at launch.
    """
    header = read_raw_header(archive_path)
    return hashlib.sha256(header.header_string.encode("utf-8")).hexdigest()


def replace_digest(buffer: bytearray, old_digest: str, new_digest: str) -> int:
    """
    Overwrite every non-overlapping occurrence of ``old_digest`` in place.

    Both digests are ASCII strings of equal length, so no byte moves.

    Returns:
        The number of occurrences replaced.
    """
    old = old_digest.encode("ascii")
    new = new_digest.encode("ascii")
    if len(old) != len(new):
        raise ValueError(
            f"Digest lengths differ ({len(old)} != {len(new)}), refusing to shift offsets"
        )

    count = 0
    index = buffer.find(old)
    while index != -1:
        buffer[index : index + len(new)] = new
        count += 1
        index = buffer.find(old, index + len(old))
    return count


def backup_path_for(executable_path: Path) -> Path:
    return executable_path.with_name(executable_path.name + BACKUP_SUFFIX)


def patch_executable(
    executable_path: Path | None, old_digest: str, new_digest: str
) -> Tuple[IntegrityOutcome, int]:
    """
    Swap the archive fingerprint embedded in the executable.

    :param executable_path: path to the executable, None on platforms without one
    :param old_digest: fingerprint of the archive before replacement
    :param new_digest: fingerprint of the archive after replacement
    :return: the outcome and the number of replaced occurrences
    """
    if executable_path is None or not executable_path.exists():
        logger.debug(f"No executable to patch at {executable_path}")
        return IntegrityOutcome.SKIPPED, 0
    if old_digest == new_digest:
        logger.info("Archive fingerprint unchanged, executable left untouched")
        return IntegrityOutcome.UNCHANGED, 0

    backup = backup_path_for(executable_path)
    try:
        if not backup.exists():
            shutil.copy2(executable_path, backup)
            logger.info(f"Backed up executable to {backup}")

        buffer = bytearray(executable_path.read_bytes())
        count = replace_digest(buffer, old_digest, new_digest)
        if count == 0:
            logger.warning("Original hash not found in EXE. Already patched?")
            return IntegrityOutcome.NOT_FOUND, 0

        executable_path.write_bytes(buffer)
    except OSError as e:
        raise FilesystemError(f"Failed to patch {executable_path}: {e}") from e

    logger.info(f"Replaced {count} fingerprint occurrence(s) in {executable_path}")
    return IntegrityOutcome.PATCHED, count


def resign_bundle(app_path: Path) -> IntegrityOutcome:
    """
    Ad-hoc re-sign a macOS application bundle.

    A failure is only logged, the application may still launch.
    """
    command = ["codesign", "--force", "--deep", "--sign", "-", str(app_path)]
    try:
        subprocess.run(command, check=True, capture_output=True, text=True)
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        stderr = getattr(e, "stderr", None) or ""
        logger.warning(f"Codesign failed. App might be damaged. {e} {stderr}".strip())
        return IntegrityOutcome.RESIGN_FAILED
    logger.info(f"Re-signed {app_path}")
    return IntegrityOutcome.RESIGNED


class IntegrityPatcher:
    """
    Platform-specific way of making the application accept a replaced archive.

    Use ``IntegrityPatcher.for_platform`` to pick the variant once.
    """

    needs_fingerprint = False
    bypasses_integrity = False

    @staticmethod
    def for_platform(target: Platform) -> "IntegrityPatcher":
        if target is Platform.WINDOWS:
            return WindowsIntegrityPatcher()
        if target is Platform.MACOS:
            return MacIntegrityPatcher()
        return IntegrityPatcher()

    def fingerprint(self, archive_path: Path) -> str:
        return fingerprint(archive_path)

    def apply(
        self, profile: PlatformProfile, before: str | None, after: str | None
    ) -> IntegrityOutcome:
        logger.debug(f"No integrity check to bypass on {profile.platform.name}")
        return IntegrityOutcome.SKIPPED


class WindowsIntegrityPatcher(IntegrityPatcher):
    needs_fingerprint = True
    bypasses_integrity = True

    def apply(
        self, profile: PlatformProfile, before: str | None, after: str | None
    ) -> IntegrityOutcome:
        if before is None or after is None:
            raise ValueError("Both fingerprints are required on Windows")
        outcome, _ = patch_executable(profile.executable_path, before, after)
        return outcome


class MacIntegrityPatcher(IntegrityPatcher):
    bypasses_integrity = True

    def apply(
        self, profile: PlatformProfile, before: str | None, after: str | None
    ) -> IntegrityOutcome:
        return resign_bundle(profile.install_root)
