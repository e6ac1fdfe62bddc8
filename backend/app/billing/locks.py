"""Per-customer mutual exclusion for subscription changes."""
from __future__ import annotations

import asyncio
import contextlib
from typing import AsyncIterator, Dict


class CustomerLocks:
    """Hands out one ``asyncio.Lock`` per key while it is in use.

    Entries are dropped once no task holds or awaits the lock, so the
    registry only grows with the number of customers being changed at once.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @contextlib.asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                del self._locks[key]
