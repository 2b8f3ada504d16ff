from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import ContextManager, Iterator, Protocol


def lock_key(kind: str, ident) -> str:
    """Name of the lock guarding one logical resource, e.g. ``slot:12``."""
    return f"{kind}:{ident}"


class TransactionManager(Protocol):
    def atomic(self, *lock_keys: str) -> ContextManager[None]:
        """Run the block as one unit while holding every named lock.

        Check-then-write sequences (conflict checks, duplicate-session checks,
        session status re-reads) must run inside this block.
        """

        raise NotImplementedError


class LocalTransactionManager:
    """Process-local guard: one ``threading.RLock`` per key.

    Locks are taken in sorted order so two callers asking for overlapping key
    sets cannot deadlock. There is no rollback; services validate a whole
    batch before the first write.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    def _lock_for(self, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def atomic(self, *lock_keys: str) -> Iterator[None]:
        acquired: list[threading.RLock] = []
        try:
            for key in sorted(set(lock_keys)):
                lock = self._lock_for(key)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
