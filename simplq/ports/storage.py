"""
Storage ports for simplq.

Two structural Protocols; no base class or registration is required.

ObjectStoragePort — keyed blob storage with compare-and-set writes
------------------------------------------------------------------
write(key, content, if_match=None)
  - if if_match is None  → the object must not exist yet
  - if if_match is given → conditional put
      succeeds → storage returns the new etag (opaque str)
      fails    → raises CASConflictError

read(key)
  - Returns (content_bytes, etag_string)
  - If the object does not exist, returns (b"", None)
    (the caller treats this as an empty collection)

CollectionPort — the record-level contract used by the service
--------------------------------------------------------------
One instance per entity collection (queues, tokens). Documents are plain
dicts; the store assigns and owns the ``id`` key. No transactions are
offered, which is why token allocation needs its own critical section
(see core/sequencer.py).
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

Document = dict[str, Any]


@runtime_checkable
class ObjectStoragePort(Protocol):
    """
    Minimal blob interface required by ObjectCollection.

    Implementing adapters (built-in):
      - InMemoryStorage        — asyncio.Lock-based, for testing
      - LocalFileSystemStorage — fcntl.flock-based, POSIX single-machine
      - S3Storage              — AWS S3 If-Match conditional write (aioboto3)
      - GCSStorage             — GCS if_generation_match (google-cloud-storage)
    """

    async def read(self, key: str) -> tuple[bytes, str | None]:
        """
        Read the object stored under ``key``.

        Returns
        -------
        content : bytes
            Raw bytes. Empty bytes (b"") if the object does not exist yet.
        etag : str | None
            Opaque version token. Pass this to write() as if_match.
            None if the object does not exist.
        """
        ...

    async def write(
        self,
        key: str,
        content: bytes,
        if_match: str | None = None,
    ) -> str:
        """
        Atomically replace the object stored under ``key``.

        Raises
        ------
        CASConflictError   if if_match does not match the current etag
        UnavailableError   for any other I/O failure
        """
        ...


@runtime_checkable
class CollectionPort(Protocol):
    """Durable operations on a single entity collection."""

    async def insert(self, document: Document) -> str:
        """Persist ``document`` and return the store-assigned id."""
        ...

    async def get(self, doc_id: str) -> Document:
        """Return the document with ``doc_id``. Raises NotFoundError if absent."""
        ...

    async def find(
        self,
        where: Document | None = None,
        *,
        sort: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Document]:
        """Equality-filtered scan, optionally sorted on one field and limited."""
        ...

    async def update(self, doc_id: str, changes: Document) -> int:
        """Set top-level fields on one document. Returns the matched count."""
        ...

    async def delete(self, doc_id: str) -> int:
        """Delete one document. Returns the deleted count."""
        ...
