import asyncio
import time
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator

from shared.observability import cleaning_order_lock_wait_seconds

from .errors import ConcurrentModification
from .states import Action


class OrderLocks:
    """
    Per-order mutual exclusion inside one process.

    Locks are created on demand and disappear once nobody holds or waits on
    them. Acquisition is bounded so a stuck transition can never block the
    next caller forever.
    """

    def __init__(self, timeout_seconds: float = 5.0):
        self.timeout_seconds = timeout_seconds
        self._locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, order_id: int) -> asyncio.Lock:
        lock = self._locks.get(order_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[order_id] = lock
        return lock

    def is_locked(self, order_id: int) -> bool:
        lock = self._locks.get(order_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, order_id: int, action: Action) -> AsyncIterator[None]:
        lock = self._lock_for(order_id)
        started = time.perf_counter()
        try:
            async with asyncio.timeout(self.timeout_seconds):
                await lock.acquire()
        except TimeoutError:
            raise ConcurrentModification(
                "Another change to this order is still in progress",
                action=action,
                order_id=order_id,
            )
        finally:
            cleaning_order_lock_wait_seconds.observe(time.perf_counter() - started)
        try:
            yield
        finally:
            lock.release()
