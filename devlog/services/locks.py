"""Per-key locking for summary generation."""

import asyncio
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager
from functools import lru_cache


class KeyedLock:
    """One asyncio.Lock per key, created on demand.

    Entries are dropped once no task holds or waits on them, so the map
    only grows with the number of keys currently in flight.
    """

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._users: dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
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

    def in_flight(self) -> int:
        """Number of keys currently held or awaited."""
        return len(self._locks)


@lru_cache
def get_summary_locks() -> KeyedLock:
    """Process-wide lock map shared by all request handlers."""
    return KeyedLock()
