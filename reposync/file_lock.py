"""
Advisory lock over a working copy.

Only one reposync run should operate on a target directory at a time. The
lock is a file created atomically beside the target; it records the owning
PID so a lock left behind by a crashed run can be reclaimed.
"""

import os
import subprocess
import time
import logging
from pathlib import Path
from contextlib import contextmanager

from .platform import get_platform_info
from .config import Config
from .errors import PreconditionError


STALE_LOCK_AGE_SECONDS = 3600


class FileLock:
    """
    Cross-platform exclusive lock file.

    Acquisition relies on ``O_CREAT | O_EXCL``, which is atomic on local
    filesystems on every supported platform.
    """

    def __init__(self, lock_file_path: Path, timeout: float = 30.0):
        """
        Initialize file lock.

        Args:
            lock_file_path: Path to the lock file
            timeout: Maximum time to wait for lock acquisition (seconds)
        """
        self.lock_file_path = lock_file_path
        self.timeout = timeout
        self.logger = logging.getLogger('reposync.file_lock')
        self.platform_info = get_platform_info()
        self._lock_acquired = False

    def acquire(self) -> bool:
        """
        Acquire the file lock.

        Returns:
            True if lock was acquired, False if timeout occurred
        """
        start_time = time.time()

        while True:
            self.lock_file_path.parent.mkdir(parents=True, exist_ok=True)

            if self._try_create():
                self._lock_acquired = True
                self.logger.debug(f"Acquired lock: {self.lock_file_path}")
                return True

            if self._check_and_cleanup_stale_lock():
                continue

            if time.time() - start_time >= self.timeout:
                break

            time.sleep(0.1)

        self.logger.warning(f"Failed to acquire lock {self.lock_file_path} within {self.timeout}s")
        return False

    def _try_create(self) -> bool:
        try:
            fd = os.open(self.lock_file_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False

        with os.fdopen(fd, 'w') as f:
            f.write(f"locked_by_pid_{os.getpid()}")
        return True

    def _check_and_cleanup_stale_lock(self) -> bool:
        """
        Remove the existing lock file if its owner is gone.

        Returns:
            True if a stale lock was removed and acquisition can be retried
        """
        try:
            lock_age = time.time() - self.lock_file_path.stat().st_mtime
            lock_content = self.lock_file_path.read_text()
        except FileNotFoundError:
            # Released between our create attempt and the check
            return True

        try:
            pid = int(lock_content.split("locked_by_pid_")[1].split("_")[0])
        except (ValueError, IndexError):
            # A fresh unparseable lock may still be mid-write by its creator
            if lock_age > STALE_LOCK_AGE_SECONDS:
                self.logger.warning(f"Cleaning up unparseable lock file: {self.lock_file_path}")
                return self._remove_lock_file()
            return False

        # A live owner keeps the lock however long its clone or fetch takes
        if not self._is_process_running(pid):
            self.logger.warning(f"Cleaning up lock from dead process {pid}: {self.lock_file_path}")
            return self._remove_lock_file()

        return False

    def _remove_lock_file(self) -> bool:
        try:
            self.lock_file_path.unlink()
        except FileNotFoundError:
            pass
        return True

    def _is_process_running(self, pid: int) -> bool:
        """
        Check if a process with given PID is still running.

        Args:
            pid: Process ID to check

        Returns:
            True if process is running, False otherwise
        """
        if pid == os.getpid():
            return True
        try:
            if self.platform_info.is_windows:
                result = subprocess.run(
                    ["tasklist", "/FI", f"PID eq {pid}"],
                    capture_output=True,
                    text=True,
                    timeout=5
                )
                return str(pid) in result.stdout
            else:
                # Signal 0 only checks that the process exists
                os.kill(pid, 0)
                return True
        except PermissionError:
            # Exists, but owned by another user
            return True
        except (OSError, subprocess.TimeoutExpired):
            return False

    def release(self) -> None:
        """Release the file lock if this instance holds it."""
        if not self._lock_acquired:
            return

        self._remove_lock_file()
        self.logger.debug(f"Released lock: {self.lock_file_path}")
        self._lock_acquired = False

    def is_locked(self) -> bool:
        """Check if the lock is currently held by this instance."""
        return self._lock_acquired

    def __enter__(self):
        if not self.acquire():
            raise TimeoutError(f"Could not acquire lock {self.lock_file_path} within {self.timeout}s")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()


@contextmanager
def target_lock(config: Config):
    """
    Hold the advisory lock for ``config.target_path`` while the body runs.

    Raises:
        PreconditionError: If another run holds the lock past the timeout
    """
    lock = FileLock(config.lock_file_path, config.lock_timeout)

    if not lock.acquire():
        raise PreconditionError(
            f"Another synchronization of {config.target_path} is in progress "
            f"(lock file {config.lock_file_path})"
        )
    try:
        yield lock
    finally:
        lock.release()
