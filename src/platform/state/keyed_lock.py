"""
Per-key mutual exclusion for the optimistic gate.

One anyio.Lock per record key, created on first use and dropped when the last
holder or waiter leaves, so idle keys cost nothing. There is no global lock:
writers to different keys never wait on each other.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import anyio

from src.platform.logging.loguru_io import Logger


class KeyedLock:
    def __init__(self) -> None:
        # key -> (lock, number of tasks holding or waiting)
        self._locks: dict[str, tuple[anyio.Lock, int]] = {}

    @asynccontextmanager
    async def hold(self, *, key: str) -> AsyncIterator[None]:
        lock, users = self._locks.get(key, (None, 0))
        if lock is None:
            lock = anyio.Lock()
        self._locks[key] = (lock, users + 1)

        try:
            async with lock:
                Logger.base.debug(f'🔒 [LOCK] Holding {key}')
                yield
        finally:
            lock, users = self._locks[key]
            if users <= 1:
                del self._locks[key]
            else:
                self._locks[key] = (lock, users - 1)
            Logger.base.debug(f'🔓 [LOCK] Released {key}')

    def is_held(self, *, key: str) -> bool:
        entry = self._locks.get(key)
        return entry is not None and entry[0].locked()

    def __len__(self) -> int:
        return len(self._locks)
