"""
TokenSequencer — allocate gapless, strictly increasing token numbers per queue.

The store has no atomic increment and no transactions, so allocation is a
read-then-write sequence that must not interleave with another enrollment:

  Caller A: reserve(q) ── lock ── max(q)=4 → 5 ── insert #5 ── unlock
  Caller B: reserve(q) ──────────── wait ─────────────────────── lock ── max(q)=5 → 6 ...

reserve() is an async context manager: it acquires the lock, reads the
current maximum, yields max + 1, and releases the lock only when the
``async with`` body (the caller's insert) has finished. Releasing earlier
would let two callers observe the same maximum.

Lock scope
----------
  "global" — one asyncio.Lock for every queue (default). Enrollments into
             different queues are serialized too.
  "queue"  — one lock per queue id, created on first use and held in a
             WeakValueDictionary so idle locks are garbage-collected.

Locks are in-process only. Two processes sharing a store can still allocate
the same number; the CAS layer prevents lost writes, not duplicate numbers.
"""
from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import weakref
from collections.abc import AsyncIterator
from typing import Literal

from simplq.domain.models import QueueId
from simplq.observability.logging import get_logger
from simplq.ports.storage import CollectionPort

LockScope = Literal["global", "queue"]

logger = get_logger(__name__)


@dataclasses.dataclass
class TokenSequencer:
    """
    Serializes token-number allocation against concurrent enrollments.

    Parameters
    ----------
    tokens     : the token collection, scanned for the current maximum
    lock_scope : "global" (one lock for all queues) or "queue"
    """

    tokens: CollectionPort
    lock_scope: LockScope = "global"

    _lock: asyncio.Lock = dataclasses.field(
        default_factory=asyncio.Lock, init=False, repr=False
    )
    _queue_locks: weakref.WeakValueDictionary[QueueId, asyncio.Lock] = (
        dataclasses.field(
            default_factory=weakref.WeakValueDictionary, init=False, repr=False
        )
    )

    def __post_init__(self) -> None:
        if self.lock_scope not in ("global", "queue"):
            raise ValueError(f"Unknown lock scope: {self.lock_scope!r}")

    def lock_for(self, queue_id: QueueId) -> asyncio.Lock:
        """Return the lock guarding allocation for ``queue_id``."""
        if self.lock_scope == "global":
            return self._lock
        lock = self._queue_locks.get(queue_id)
        if lock is None:
            lock = asyncio.Lock()
            self._queue_locks[queue_id] = lock
        return lock

    async def next_number(self, queue_id: QueueId) -> int:
        """
        Current maximum token number for ``queue_id`` plus one.

        Only meaningful while the queue's lock is held; use reserve().
        """
        latest = await self.tokens.find(
            {"queue_id": queue_id}, sort="token_number", descending=True, limit=1
        )
        current = int(latest[0]["token_number"]) if latest else 0
        return current + 1

    @contextlib.asynccontextmanager
    async def reserve(self, queue_id: QueueId) -> AsyncIterator[int]:
        """
        Hold the allocation lock for ``queue_id`` and yield the next number.

        The lock spans the whole ``async with`` block. If the maximum cannot be
        read the exception propagates, the lock is released and nothing is
        yielded.
        """
        lock = self.lock_for(queue_id)
        async with lock:
            number = await self.next_number(queue_id)
            logger.debug("sequencer.reserved", queue_id=queue_id, token_number=number)
            yield number
