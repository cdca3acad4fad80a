"""
locks.py — One write lock per fund.

Writes for the same fund are serialized; writes for different funds run
in parallel.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from capital_ledger.errors import ConcurrencyConflict

logger = logging.getLogger(__name__)


class FundLockRegistry:
    """Hands out a re-entrant lock per fund id, created on first use."""

    def __init__(self, timeout: Optional[float] = 30.0) -> None:
        self.timeout = timeout
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    def _lock_for(self, fund_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(fund_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[fund_id] = lock
            return lock

    @contextmanager
    def hold(self, fund_id: str) -> Iterator[None]:
        """
        Hold the write lock for ``fund_id`` for the duration of the block.

        Raises
        ------
        ConcurrencyConflict
            If the lock is not acquired within ``timeout`` seconds.
        """
        lock = self._lock_for(fund_id)
        acquired = lock.acquire(timeout=-1 if self.timeout is None else self.timeout)
        if not acquired:
            logger.warning("Write lock on fund %s not acquired in %ss", fund_id, self.timeout)
            raise ConcurrencyConflict(fund_id, self.timeout)
        try:
            yield
        finally:
            lock.release()

    def __len__(self) -> int:
        return len(self._locks)
