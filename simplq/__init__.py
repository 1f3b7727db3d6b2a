"""
simplq — virtual-queue backend with gapless per-queue token numbering.

Callers create a queue, enroll into it to receive the next ticket (token)
number, read the queue with its tokens in order, pause it, or delete it.

The store underneath offers no atomic increment and no transactions, so the
TokenSequencer makes "read current maximum → insert max + 1" one critical
section guarded by an asyncio.Lock: N concurrent enrollments into a queue
always produce exactly the numbers 1..N.

Quick start
-----------
    import asyncio
    from simplq import InMemoryStorage, Queue, QueueService, Token

    async def main():
        service = QueueService.from_storage(InMemoryStorage())

        queue_id = await service.create_queue(Queue(name="bakery"))
        await asyncio.gather(
            *(service.enroll_token(queue_id, Token(name=f"c{i}")) for i in range(5))
        )

        queue = await service.read_queue(queue_id)
        print([t.token_number for t in queue.tokens])   # [1, 2, 3, 4, 5]

    asyncio.run(main())

Storage adapters
----------------
Each collection (queue, token) is one JSON object on blob storage, updated
with compare-and-set writes.

Built-in adapters (no extra deps):
  - InMemoryStorage           — for tests and examples
  - LocalFileSystemStorage    — POSIX single-machine (fcntl.flock)

Optional adapters (install extras):
  - S3Storage        (pip install "simplq[s3]")
  - GCSStorage       (pip install "simplq[gcs]")

Architecture
------------
Follows the Ports & Adapters pattern:
  domain/        — value types (Queue, Token, CollectionState) and errors
  ports/         — Protocol interfaces (ObjectStoragePort, CollectionPort)
  core/          — ObjectCollection, TokenSequencer, QueueService
  adapters/      — concrete storage implementations
  config.py      — pydantic-settings Settings (SIMPLQ_* env vars)
  bootstrap.py   — create_service(settings)
  observability/ — structlog setup
"""
from __future__ import annotations

from simplq.adapters.storage.filesystem import LocalFileSystemStorage
from simplq.adapters.storage.memory import InMemoryStorage
from simplq.bootstrap import create_service, create_storage
from simplq.config import Settings, get_settings
from simplq.core.collection import ObjectCollection
from simplq.core.sequencer import TokenSequencer
from simplq.core.service import QueueService
from simplq.domain.errors import (
    CASConflictError,
    InvalidArgumentError,
    NotFoundError,
    SimplQError,
    UnavailableError,
    UnimplementedError,
)
from simplq.domain.models import Queue, Token
from simplq.observability.logging import setup_logging
from simplq.ports.storage import CollectionPort, ObjectStoragePort

__all__ = [
    # Domain models
    "Queue",
    "Token",
    # Errors
    "SimplQError",
    "NotFoundError",
    "UnavailableError",
    "UnimplementedError",
    "InvalidArgumentError",
    "CASConflictError",
    # Ports (for typing custom adapters)
    "ObjectStoragePort",
    "CollectionPort",
    # Core
    "ObjectCollection",
    "TokenSequencer",
    "QueueService",
    # Built-in storage adapters
    "InMemoryStorage",
    "LocalFileSystemStorage",
    # Wiring
    "Settings",
    "get_settings",
    "create_service",
    "create_storage",
    "setup_logging",
]
