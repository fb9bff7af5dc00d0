"""
Per-card serialization for balance changes.

A transfer reads the source balance, decides, then writes. Two transfers
touching the same card must not interleave between the read and the
commit, or both could pass the balance check and overdraw the card.

Two layers cover this:
  - Row locks (SELECT ... FOR UPDATE) taken by the transfer service. They
    do the work on PostgreSQL but are no-ops on SQLite.
  - CardLocks, an in-process asyncio.Lock per card id, held from before
    the cards are read until after the commit. This covers SQLite and any
    single-process deployment.

Locks are always acquired in sorted card-id order so two transfers
between the same pair of cards in opposite directions cannot deadlock.
"""

import asyncio
import uuid
import weakref
from contextlib import asynccontextmanager


class CardLocks:
    """Registry of asyncio locks keyed by card id."""

    def __init__(self):
        # Entries disappear once no coroutine holds or awaits the lock
        self._locks: weakref.WeakValueDictionary[uuid.UUID, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, card_id: uuid.UUID) -> asyncio.Lock:
        lock = self._locks.get(card_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[card_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, *card_ids: uuid.UUID):
        """Acquire the locks for `card_ids` in sorted order; release in reverse."""
        locks = [self._lock_for(card_id) for card_id in sorted(set(card_ids))]
        acquired: list[asyncio.Lock] = []
        try:
            for lock in locks:
                await lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


# One registry per process
card_locks = CardLocks()
