"""
In-process mutual exclusion for reservation commits

Commits touching the same table on the same calendar day are serialized;
commits on disjoint tables never wait on each other. Keys are always taken
in sorted order so two commits cannot deadlock.
"""

import logging
import threading
import time
from contextlib import contextmanager
from datetime import date
from typing import Dict, Iterable, List, Tuple

from app.core.errors import CommitTimeout

logger = logging.getLogger(__name__)

LockKey = Tuple[int, date]


class _RefCountedLock:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class TableLockRegistry:
    """Locks keyed by (table_id, calendar date)"""

    def __init__(self, timeout: float = 5.0):
        self.timeout = timeout
        self._guard = threading.Lock()
        self._locks: Dict[LockKey, _RefCountedLock] = {}

    @staticmethod
    def keys_for(table_ids: Iterable[int], days: Iterable[date]) -> List[LockKey]:
        days = list(days)
        return sorted({(table_id, day) for table_id in table_ids for day in days})

    def _checkout(self, key: LockKey) -> _RefCountedLock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = _RefCountedLock()
            entry.users += 1
            return entry

    def _checkin(self, key: LockKey) -> None:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                return
            entry.users -= 1
            if entry.users <= 0:
                del self._locks[key]

    @contextmanager
    def hold(self, keys: Iterable[LockKey], timeout: float = None):
        """Hold every key for the duration of the block or raise CommitTimeout"""
        keys = sorted(set(keys))
        timeout = self.timeout if timeout is None else timeout
        deadline = time.monotonic() + timeout
        acquired: List[_RefCountedLock] = []
        checked_out: List[LockKey] = []
        try:
            for key in keys:
                entry = self._checkout(key)
                checked_out.append(key)
                remaining = max(0.0, deadline - time.monotonic())
                if not entry.lock.acquire(timeout=remaining):
                    logger.warning(f"Timed out waiting for table {key[0]} on {key[1]}")
                    raise CommitTimeout(
                        "Tables are being booked by another customer, please retry",
                        details={"table_ids": sorted({k[0] for k in keys})},
                    )
                acquired.append(entry)
            yield
        finally:
            for entry in reversed(acquired):
                entry.lock.release()
            for key in checked_out:
                self._checkin(key)

    def active_keys(self) -> List[LockKey]:
        with self._guard:
            return sorted(self._locks)
