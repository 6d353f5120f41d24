# core/locks.py
import asyncio
import weakref
from contextlib import asynccontextmanager


class KeyedLocks:
    """
    One asyncio.Lock per key (subscription id).

    Writers to the same subscription are serialized; different subscriptions
    never wait on each other. Locks are dropped once nobody references them.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, key: str):
        lock = self.lock_for(key)
        async with lock:
            yield
