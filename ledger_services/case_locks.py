"""
CaseLockRegistry -- one in-process mutex per case.

Serializes read-modify-write cycles on the same case inside one process.
Different cases never block each other.  Acquisition is bounded; a caller
that cannot get the lock in time gets CaseLockTimeoutError rather than
waiting forever.

Across processes the repository's version check is the only guard, which
is why the service retries on OptimisticLockError as well.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from uuid import UUID

from ledger_kernel.exceptions import CaseLockTimeoutError
from ledger_kernel.logging_config import get_logger

logger = get_logger("services.case_locks")


class CaseLockRegistry:
    """Hands out a lazily created ``threading.Lock`` per case id."""

    def __init__(self, default_timeout: float = 5.0):
        self.default_timeout = default_timeout
        self._locks: dict[UUID, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, case_id: UUID) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(case_id)
            if lock is None:
                lock = self._locks[case_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, case_id: UUID, timeout: float | None = None) -> Iterator[None]:
        """
        Hold the lock for ``case_id`` for the duration of the block.

        Raises:
            CaseLockTimeoutError: the lock was not acquired within ``timeout``.
        """
        wait = self.default_timeout if timeout is None else timeout
        lock = self._lock_for(case_id)
        if not lock.acquire(timeout=wait):
            logger.warning("case_lock_timeout", extra={
                "case_id": str(case_id),
                "timeout_seconds": wait,
            })
            raise CaseLockTimeoutError(str(case_id), wait)
        try:
            yield
        finally:
            lock.release()

    def forget(self, case_id: UUID) -> None:
        """Drop the lock entry for a deleted case."""
        with self._registry_lock:
            self._locks.pop(case_id, None)

    def is_locked(self, case_id: UUID) -> bool:
        with self._registry_lock:
            lock = self._locks.get(case_id)
        return lock is not None and lock.locked()
