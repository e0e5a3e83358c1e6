"""Per-key asyncio locks.

``KeyedLock`` hands out one ``asyncio.Lock`` per key, creating it on first
use and dropping it once nobody holds or waits on it, so the map only ever
contains keys with work in flight.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class KeyedLock:
    """Mutual exclusion per key; different keys never block each other.

    Example::

        locks = KeyedLock()
        async with locks.hold("2026-10-19_09-30-15"):
            ...  # exclusive for this identity only
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def in_use(self, key: str) -> bool:
        """True while anyone holds or waits on ``key``."""
        return key in self._users

    def locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
