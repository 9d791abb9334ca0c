"""Repository-wide mutual exclusion for promotion runs."""

import fcntl
import os
from branchflow.utils.errors import RepositoryBusy

class RepoLock:
    """Exclusive lock on a working clone.

    At most one promotion action may touch a clone at a time. The engine
    does not lock; whoever dispatches events wraps each run in this lock.
    """

    def __init__(self, lock_path, blocking=True, debug_logger=None):
        """Initialize the lock.

        Args:
            lock_path (str): Lock file path
            blocking (bool): Wait for the lock instead of failing
            debug_logger (DebugLogger, optional): Debug logger instance
        """
        self.lock_path = lock_path
        self.blocking = blocking
        self.logger = debug_logger
        self._handle = None

    def acquire(self):
        """Acquire the lock.

        Raises:
            RepositoryBusy: If non-blocking and another run holds the lock
        """
        self._handle = open(self.lock_path, 'a', encoding='utf-8')
        flags = fcntl.LOCK_EX if self.blocking else fcntl.LOCK_EX | fcntl.LOCK_NB
        try:
            fcntl.flock(self._handle.fileno(), flags)
        except BlockingIOError:
            self._handle.close()
            self._handle = None
            raise RepositoryBusy(self.lock_path)
        if self.logger:
            self.logger.log(f"Acquired repository lock {self.lock_path} (pid {os.getpid()})")

    def release(self):
        if self._handle:
            fcntl.flock(self._handle.fileno(), fcntl.LOCK_UN)
            self._handle.close()
            self._handle = None
            if self.logger:
                self.logger.log(f"Released repository lock {self.lock_path}")

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False
