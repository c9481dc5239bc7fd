import os
import sys
from pathlib import Path
from types import TracebackType
from typing import IO, Optional, Type

from loguru import logger

from ymmp.utils.exception import FilesystemError, PatchInProgressError


class PatchLock:
    """
    Advisory, non-blocking lock on the cache folder.

    Keeps two ymmp runs from racing on the shared temp files and the live
    archive. The lock is released when the holding process exits, even on a crash.
    """

    def __init__(self, lock_file: Path) -> None:
        self.lock_file = lock_file
        self._handle: Optional[IO[str]] = None

    @property
    def locked(self) -> bool:
        return self._handle is not None

    def acquire(self) -> None:
        if self._handle is not None:
            return
        try:
            self.lock_file.parent.mkdir(parents=True, exist_ok=True)
            handle = self.lock_file.open("w")
        except OSError as e:
            raise FilesystemError(f"Cannot open lock file {self.lock_file}: {e}") from e

        try:
            if sys.platform == "win32":
                import msvcrt

                msvcrt.locking(handle.fileno(), msvcrt.LK_NBLCK, 1)
            else:
                import fcntl

                fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            handle.close()
            raise PatchInProgressError(self.lock_file) from None

        handle.write(str(os.getpid()))
        handle.flush()
        self._handle = handle
        logger.debug(f"Acquired lock {self.lock_file}")

    def release(self) -> None:
        if self._handle is None:
            return
        try:
            if sys.platform == "win32":
                import msvcrt

                self._handle.seek(0)
                msvcrt.locking(self._handle.fileno(), msvcrt.LK_UNLCK, 1)
            else:
                import fcntl

                fcntl.flock(self._handle.fileno(), fcntl.LOCK_UN)
        except OSError as e:
            logger.warning(f"Failed to unlock {self.lock_file}: {e}")
        finally:
            self._handle.close()
            self._handle = None
            logger.debug(f"Released lock {self.lock_file}")

    def __enter__(self) -> "PatchLock":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.release()
