import os
import platform
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from loguru import logger

from ymmp.utils.constants import (
    LINUX_INSTALL_ROOT,
    MACOS_INSTALL_ROOT,
    RESOURCE_ARCHIVE_NAME,
    WINDOWS_EXECUTABLE_NAME,
    WINDOWS_INSTALL_FOLDER,
)
from ymmp.utils.exception import UnsupportedPlatformError


class Platform(str, Enum):
    """Supported desktop platforms, valued as reported by ``platform.system()``."""

    WINDOWS = "Windows"
    MACOS = "Darwin"
    LINUX = "Linux"

    @classmethod
    def detect(cls, system: Optional[str] = None) -> "Platform":
        system = system if system is not None else platform.system()
        try:
            return cls(system)
        except ValueError:
            raise UnsupportedPlatformError(system) from None


def default_install_root(target: Platform) -> Path:
    if target is Platform.WINDOWS:
        return (
            Path(os.environ.get("LOCALAPPDATA", ""))
            / "Programs"
            / WINDOWS_INSTALL_FOLDER
        )
    if target is Platform.MACOS:
        return Path(MACOS_INSTALL_ROOT)
    return Path(LINUX_INSTALL_ROOT)


def archive_path_for(target: Platform, install_root: Path) -> Path:
    # macOS keeps resources inside the bundle, the others use a flat layout
    if target is Platform.MACOS:
        return install_root / "Contents" / "Resources" / RESOURCE_ARCHIVE_NAME
    return install_root / "resources" / RESOURCE_ARCHIVE_NAME


def executable_path_for(target: Platform, install_root: Path) -> Path | None:
    # Only the Windows executable embeds the archive fingerprint
    if target is Platform.WINDOWS:
        return install_root / WINDOWS_EXECUTABLE_NAME
    return None


@dataclass(frozen=True)
class PlatformProfile:
    """
    Resolved locations of a Yandex Music installation on one platform.
    """

    platform: Platform
    install_root: Path
    archive_path: Path
    executable_path: Path | None = None

    @classmethod
    def resolve(
        cls,
        custom_root: str | Path | None = None,
        target: Platform | str | None = None,
    ) -> "PlatformProfile":
        """
        Derive the profile for the given (or current) platform.

        :param custom_root: explicit install root, overrides the platform default
        :param target: platform to resolve for, detected when omitted
        :raises UnsupportedPlatformError: for anything other than Windows, macOS or Linux
        """
        if isinstance(target, Platform):
            resolved = target
        else:
            resolved = Platform.detect(target)

        install_root = (
            Path(custom_root) if custom_root else default_install_root(resolved)
        )
        profile = cls(
            platform=resolved,
            install_root=install_root,
            archive_path=archive_path_for(resolved, install_root),
            executable_path=executable_path_for(resolved, install_root),
        )
        logger.debug(f"Resolved {resolved.name} profile: {profile}")
        return profile
