import os
import subprocess
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

import psutil
from loguru import logger

from ymmp.utils.constants import (
    APP_DISPLAY_NAME,
    LINUX_LAUNCHER_NAME,
    TERMINATE_GRACE_SECONDS,
    WINDOWS_EXECUTABLE_NAME,
)
from ymmp.utils.platform_profile import Platform, PlatformProfile


class QueryStatus(str, Enum):
    SUCCESS = "success"
    NOT_AVAILABLE = "not_available"
    ERROR = "error"


@dataclass(frozen=True)
class ProcessQuery:
    """
    Result of a best-effort process enumeration.

    Only a ``SUCCESS`` query is authoritative; the other statuses carry no pids
    and callers treat them as "nothing running".
    """

    status: QueryStatus
    pids: tuple[int, ...] = field(default_factory=tuple)
    detail: str = ""

    @property
    def running(self) -> bool:
        return self.status is QueryStatus.SUCCESS and bool(self.pids)


def is_yandex_music_process(name: Optional[str], target: Platform) -> bool:
    """
    Check a process name against the Yandex Music binary of a platform.

    On macOS the Electron helpers ("Яндекс Музыка Helper (Renderer)", ...) are
    matched too.

    :param name: Process name as reported by psutil, may be None
    :param target: Platform whose naming rules apply
    :return: True if the name belongs to Yandex Music
    """
    if not name:
        return False
    if target is Platform.WINDOWS:
        return name.lower() == WINDOWS_EXECUTABLE_NAME.lower()
    if target is Platform.MACOS:
        return name.startswith(APP_DISPLAY_NAME)
    return name == LINUX_LAUNCHER_NAME


class ProcessController:
    """
    Finds, stops and restarts Yandex Music on one platform.
    """

    def __init__(
        self, target: Platform, grace_seconds: float = TERMINATE_GRACE_SECONDS
    ) -> None:
        self.platform = target
        self.grace_seconds = grace_seconds

    def list_running_instances(self) -> ProcessQuery:
        """
        Enumerate running Yandex Music processes by process name.

        This process and its parent are never reported, whatever their name.
        Failures never propagate: a process table we may not read yields
        ``NOT_AVAILABLE`` and any other failure ``ERROR``.
        """
        own_pids = {os.getpid(), os.getppid()}
        pids: List[int] = []
        try:
            for process in psutil.process_iter(["pid", "name"]):
                try:
                    pid = process.info["pid"]
                    name = process.info["name"]
                except (psutil.AccessDenied, psutil.NoSuchProcess):
                    continue
                if pid in own_pids:
                    continue
                if is_yandex_music_process(name, self.platform):
                    pids.append(pid)
        except psutil.AccessDenied as e:
            logger.debug(f"Process list not readable: {e}")
            return ProcessQuery(QueryStatus.NOT_AVAILABLE, detail=str(e))
        except (psutil.Error, OSError) as e:
            logger.warning(f"Process enumeration failed: {e}")
            return ProcessQuery(QueryStatus.ERROR, detail=str(e))

        logger.debug(f"Found Yandex Music processes: {pids}")
        return ProcessQuery(QueryStatus.SUCCESS, tuple(pids))

    def terminate(self, pids: Iterable[int]) -> None:
        """
        Ask every process to terminate, then wait a fixed grace delay so file
        locks get released. Processes that already exited are ignored.
        """
        for pid in pids:
            try:
                psutil.Process(pid).terminate()
                logger.info(f"Sent terminate to process {pid}")
            except psutil.NoSuchProcess:
                # Process might have already terminated
                logger.debug(f"Process {pid} already exited")
            except psutil.AccessDenied as e:
                logger.warning(f"Not allowed to terminate process {pid}: {e}")
        time.sleep(self.grace_seconds)

    def _launch_command(
        self, profile: PlatformProfile
    ) -> Tuple[List[str], Dict[str, Any]] | None:
        if self.platform is Platform.MACOS:
            return ["open", str(profile.install_root)], {}

        detached: Dict[str, Any] = {
            "cwd": str(profile.install_root),
            "stdin": subprocess.DEVNULL,
            "stdout": subprocess.DEVNULL,
            "stderr": subprocess.DEVNULL,
        }
        if self.platform is Platform.WINDOWS:
            exe = profile.executable_path
            if exe is None or not exe.exists():
                logger.warning(f"Cannot relaunch, executable not found: {exe}")
                return None
            detached["creationflags"] = getattr(
                subprocess, "DETACHED_PROCESS", 0
            ) | getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0)
            return [str(exe)], detached

        launcher = profile.install_root / LINUX_LAUNCHER_NAME
        if not launcher.exists():
            logger.warning(f"Cannot relaunch, launcher not found: {launcher}")
            return None
        detached["start_new_session"] = True
        return [str(launcher)], detached

    def relaunch(self, profile: PlatformProfile) -> int | None:
        """
        Start Yandex Music detached from this process.

        A launch failure is logged, the patch itself already succeeded.

        Returns:
            The PID of the started process, or None if nothing was launched.
        """
        command = self._launch_command(profile)
        if command is None:
            return None
        popen_args, kwargs = command
        try:
            p = subprocess.Popen(popen_args, **kwargs)
        except OSError as e:
            logger.error(f"Failed to relaunch Yandex Music with {popen_args}: {e}")
            return None
        logger.info(f"Relaunched Yandex Music with PID {p.pid} using {popen_args}")
        return p.pid
