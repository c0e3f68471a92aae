"""
Per-repository locking for markgit.

Each working-tree root gets one reader/writer lock, created lazily and kept
in a process-wide registry. Commit, revert and sync take the write side for
their whole duration; status reads and ahead/behind take the read side, so
reads may overlap each other but never a writer. This keeps a status refresh
triggered by a file-watch event from observing a half-written index.
"""

import logging
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Optional, Union

from .errors import LockTimeoutError
from .platform import normalize_path


class RepositoryLock:
    """
    Reader/writer lock for a single working-tree root.

    Writers are preferred: once a writer is waiting, new readers queue
    behind it so a steady stream of status refreshes cannot starve a commit.
    Not reentrant.
    """

    def __init__(self, working_tree_root: Path):
        self.working_tree_root = working_tree_root
        self.logger = logging.getLogger('markgit.lock')
        self._condition = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer: Optional[int] = None
        self._waiting_writers = 0

    def acquire_read(self, timeout: float) -> bool:
        """
        Acquire shared access.

        Returns:
            True if acquired, False if timeout occurred
        """
        deadline = time.monotonic() + timeout
        with self._condition:
            while self._writer is not None or self._waiting_writers:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._condition.wait(remaining)
            self._readers += 1
        return True

    def release_read(self) -> None:
        with self._condition:
            if self._readers == 0:
                raise RuntimeError(f"Read lock on {self.working_tree_root} released while not held")
            self._readers -= 1
            if self._readers == 0:
                self._condition.notify_all()

    def acquire_write(self, timeout: float) -> bool:
        """
        Acquire exclusive access.

        Returns:
            True if acquired, False if timeout occurred
        """
        deadline = time.monotonic() + timeout
        with self._condition:
            self._waiting_writers += 1
            try:
                while self._writer is not None or self._readers:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        return False
                    self._condition.wait(remaining)
                self._writer = threading.get_ident()
            finally:
                self._waiting_writers -= 1
                if self._writer is None:
                    # Readers parked behind this writer may proceed again
                    self._condition.notify_all()
        self.logger.debug(f"Acquired write lock: {self.working_tree_root}")
        return True

    def release_write(self) -> None:
        with self._condition:
            if self._writer is None:
                raise RuntimeError(f"Write lock on {self.working_tree_root} released while not held")
            self._writer = None
            self._condition.notify_all()
        self.logger.debug(f"Released write lock: {self.working_tree_root}")

    def is_write_locked(self) -> bool:
        with self._condition:
            return self._writer is not None

    @property
    def reader_count(self) -> int:
        with self._condition:
            return self._readers


class RepositoryLockRegistry:
    """Lazily creates one RepositoryLock per normalized working-tree root."""

    def __init__(self):
        self._locks: Dict[Path, RepositoryLock] = {}
        self._guard = threading.Lock()

    def get_lock(self, working_tree_root: Union[str, Path]) -> RepositoryLock:
        root = normalize_path(working_tree_root)
        with self._guard:
            lock = self._locks.get(root)
            if lock is None:
                lock = RepositoryLock(root)
                self._locks[root] = lock
            return lock

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def write_scope(self, working_tree_root: Union[str, Path], timeout: float = 30.0):
        """
        Context manager holding the exclusive lock for a working tree.

        Raises:
            LockTimeoutError: If the lock cannot be acquired within timeout
        """
        lock = self.get_lock(working_tree_root)
        if not lock.acquire_write(timeout):
            lock.logger.warning(f"Failed to acquire write lock {lock.working_tree_root} within {timeout}s")
            raise LockTimeoutError(
                f"Repository is busy: could not lock {lock.working_tree_root} within {timeout}s",
                context={'working_tree_root': str(lock.working_tree_root)}
            )
        try:
            yield lock
        finally:
            lock.release_write()

    @contextmanager
    def read_scope(self, working_tree_root: Union[str, Path], timeout: float = 30.0):
        """
        Context manager holding shared access for a working tree.

        Raises:
            LockTimeoutError: If a writer holds the lock for longer than timeout
        """
        lock = self.get_lock(working_tree_root)
        if not lock.acquire_read(timeout):
            lock.logger.warning(f"Failed to acquire read lock {lock.working_tree_root} within {timeout}s")
            raise LockTimeoutError(
                f"Repository is busy: could not read {lock.working_tree_root} within {timeout}s",
                context={'working_tree_root': str(lock.working_tree_root)}
            )
        try:
            yield lock
        finally:
            lock.release_read()


# Global registry shared by every manager in the process
_lock_registry: Optional[RepositoryLockRegistry] = None
_registry_guard = threading.Lock()


def get_lock_registry() -> RepositoryLockRegistry:
    """Get the process-wide lock registry."""
    global _lock_registry
    with _registry_guard:
        if _lock_registry is None:
            _lock_registry = RepositoryLockRegistry()
        return _lock_registry
