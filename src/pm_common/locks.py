"""Per-market asyncio locks shared by order execution, resolution, and void.

The lock only serialises work inside one process. Cross-process safety comes
from the row locks taken inside each transaction (market row first, then
account rows).

Entries are reference counted: a market's lock exists only while some task
holds it or waits for it, so ids of unknown, resolved, or voided markets
leave nothing behind.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class MarketLockRegistry:
    def __init__(self) -> None:
        self._market_locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, market_id: str) -> AsyncIterator[None]:
        lock = self._market_locks.get(market_id)
        if lock is None:
            lock = self._market_locks[market_id] = asyncio.Lock()
        self._holders[market_id] = self._holders.get(market_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            # Runs for waiters cancelled before acquiring too
            self._holders[market_id] -= 1
            if self._holders[market_id] == 0:
                del self._holders[market_id]
                del self._market_locks[market_id]

    def __len__(self) -> int:
        return len(self._market_locks)


_registry: MarketLockRegistry | None = None


def get_lock_registry() -> MarketLockRegistry:
    global _registry  # noqa: PLW0603
    if _registry is None:
        _registry = MarketLockRegistry()
    return _registry
