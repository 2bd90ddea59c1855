"""Cross-process file lock guarding pipeline runs"""

import os
import sys
from pathlib import Path
from typing import Optional

if sys.platform == "win32":
    import msvcrt
else:
    import fcntl

from loguru import logger

from ..config_loader import data_dir


class FileLock:
    """Non-blocking advisory lock backed by a file under data/.locks."""

    def __init__(self, lock_name: str = "newsletter_run.lock", lock_dir: Optional[Path] = None):
        """
        Args:
            lock_name: lock file name
            lock_dir: directory holding the lock file (defaults to data/.locks)
        """
        self.lock_name = lock_name
        self._lock_dir = lock_dir
        self._lock_file_path: Optional[Path] = None
        self._lock_fd: Optional[int] = None

    def _get_lock_file_path(self) -> Path:
        if self._lock_file_path is None:
            lock_dir = self._lock_dir or data_dir() / ".locks"
            lock_dir.mkdir(parents=True, exist_ok=True)
            self._lock_file_path = lock_dir / self.lock_name
        return self._lock_file_path

    @property
    def held(self) -> bool:
        return self._lock_fd is not None

    def acquire(self) -> bool:
        """
        Try to take the lock without waiting.

        Returns:
            True if the lock was taken, False if another holder has it
        """
        if self._lock_fd is not None:
            return False

        lock_file = self._get_lock_file_path()
        fd = os.open(str(lock_file), os.O_CREAT | os.O_WRONLY)
        try:
            if sys.platform == "win32":
                msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)
            else:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            os.close(fd)
            return False

        self._lock_fd = fd
        return True

    def release(self):
        if self._lock_fd is None:
            return
        try:
            if sys.platform == "win32":
                msvcrt.locking(self._lock_fd, msvcrt.LK_UNLCK, 1)
            else:
                fcntl.flock(self._lock_fd, fcntl.LOCK_UN)
        except OSError as e:
            logger.warning(f"[pipeline] Failed to release file lock {self.lock_name}: {e}")
        finally:
            os.close(self._lock_fd)
            self._lock_fd = None

    def __enter__(self):
        if not self.acquire():
            raise RuntimeError(f"Could not acquire file lock {self.lock_name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
