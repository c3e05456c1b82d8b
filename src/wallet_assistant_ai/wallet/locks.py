"""Per-user mutual exclusion for the custody core."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class UserLocks:
    """Hands out one :class:`asyncio.Lock` per user id.

    Locks are created on demand and dropped again once no coroutine holds
    or waits for them, so the table does not grow with every user ever seen.
    All access happens on a single event loop, which makes the lookup and
    the reference counting atomic between ``await`` points.
    """

    def __init__(self) -> None:
        self._locks: dict[int, asyncio.Lock] = {}
        self._waiters: dict[int, int] = {}

    @asynccontextmanager
    async def hold(self, user_id: int) -> AsyncIterator[None]:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        self._waiters[user_id] = self._waiters.get(user_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[user_id] -= 1
            if self._waiters[user_id] == 0:
                del self._waiters[user_id]
                del self._locks[user_id]

    def locked(self, user_id: int) -> bool:
        """Whether some coroutine currently holds or awaits *user_id*'s lock."""
        return user_id in self._waiters

    def __len__(self) -> int:
        return len(self._locks)
