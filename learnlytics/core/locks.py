"""
Per-Key Locks

Serializes read-then-write cycles on a single row (one session, one
video aggregate or one learner aggregate) without blocking unrelated keys.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict


class KeyedLock:
    """
    Registry of asyncio locks, one per key.
    
    A lock lives only while somebody holds or waits for it, so the
    registry never grows beyond the set of keys in flight.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._holders: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        """
        Acquire the lock for `key` for the duration of the block.
        
        Args:
            key: Entity key, e.g. "video:<id>".
        """
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


# ============== Global Lock Registries ==============

aggregate_locks = KeyedLock()
session_locks = KeyedLock()
