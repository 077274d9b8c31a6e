"""
FIFO of callers parked behind an in-flight refresh
"""
import asyncio
from typing import List


class PendingQueue:
    def __init__(self):
        self._waiters: List[asyncio.Future] = []

    def __len__(self) -> int:
        return len(self._waiters)

    def enqueue(self) -> asyncio.Future:
        """Append a new slot and return the future its owner should await."""
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        return waiter

    def resolve_all(self) -> int:
        """Release every waiter in insertion order; returns how many were still waiting."""
        waiters, self._waiters = self._waiters, []
        released = 0
        for waiter in waiters:
            # cancelled when the owning task went away
            if not waiter.done():
                waiter.set_result(None)
                released += 1
        return released

    def reject_all(self, error: BaseException) -> int:
        """Fail every waiter in insertion order with `error`."""
        waiters, self._waiters = self._waiters, []
        rejected = 0
        for waiter in waiters:
            if not waiter.done():
                waiter.set_exception(error)
                rejected += 1
        return rejected
