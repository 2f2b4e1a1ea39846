"""
Per-key Locking Module

Serializes mutations of shared records (account balances, a transaction's
status) inside one process. Locks are taken in sorted key order so two
operations that need overlapping keys can never deadlock.
"""

from contextlib import contextmanager
from typing import Dict, Iterable, List, Optional
import threading
import time

from .errors import LockTimeoutError


def account_key(account_id: str) -> str:
    return f"account:{account_id}"


def transaction_key(transaction_id: str) -> str:
    return f"transaction:{transaction_id}"


class LockManager:
    """
    Re-entrant lock per key, created on first use and dropped once no
    caller holds or waits for it.
    """

    def __init__(self, default_timeout: Optional[float] = None):
        self.default_timeout = default_timeout
        # key -> [lock, number of callers holding or waiting]
        self._locks: Dict[str, list] = {}
        self._guard = threading.Lock()

    def _checkout(self, key: str) -> threading.RLock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.RLock(), 0]
                self._locks[key] = entry
            entry[1] += 1
            return entry[0]

    def _checkin(self, key: str) -> None:
        with self._guard:
            entry = self._locks[key]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    @contextmanager
    def hold(self, keys: Iterable[str], timeout: Optional[float] = None):
        """
        Hold every lock in keys for the duration of the block.

        Raises LockTimeoutError if the locks are not all acquired within
        timeout seconds; locks already taken are released first.
        """
        if timeout is None:
            timeout = self.default_timeout

        deadline = None if timeout is None else time.monotonic() + timeout
        acquired: List[str] = []
        try:
            for key in sorted(set(keys)):
                lock = self._checkout(key)
                if deadline is None:
                    ok = lock.acquire()
                else:
                    ok = lock.acquire(timeout=max(0.0, deadline - time.monotonic()))
                if not ok:
                    self._checkin(key)
                    raise LockTimeoutError(f"timed out waiting for lock on {key}")
                acquired.append(key)
            yield
        finally:
            for key in reversed(acquired):
                with self._guard:
                    lock = self._locks[key][0]
                lock.release()
                self._checkin(key)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
