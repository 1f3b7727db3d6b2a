"""
ObjectCollection — a record collection stored as one object, one CAS write per mutation.

Every insert, update, or delete does:
  1. read current collection state + etag from storage
  2. mutate state in memory
  3. CAS write back with if_match=etag (retries on CASConflictError)

Reads (get / find) take a single snapshot and never write.

Concurrency
-----------
Mutations issued through one ObjectCollection instance are serialized by an
asyncio.Lock, so writers in the same process never race each other's etag.
CAS remains the guard against writers in other processes sharing the object.

Retry policy
------------
Mutations retry up to `max_retries` times (default 10, at least 1) on
CASConflictError with jittered linear back-off (10ms × attempt, scaled by
0.5–1.5). When all retries are exhausted the conflict is surfaced as
UnavailableError: from the caller's point of view the store could not
complete the operation.
"""
from __future__ import annotations

import asyncio
import dataclasses
import random
from typing import Any, Callable

from pydantic import ValidationError

from simplq.core import codec
from simplq.domain.errors import CASConflictError, NotFoundError, UnavailableError
from simplq.domain.models import CollectionState, Document, check_id, new_id
from simplq.observability.logging import get_logger
from simplq.ports.storage import ObjectStoragePort

MutationFn = Callable[[CollectionState], CollectionState]

logger = get_logger(__name__)


def _sort_key(field: str) -> Callable[[Document], tuple[bool, Any]]:
    # Documents missing the field sort before every present value.
    return lambda d: (field in d, d.get(field))


@dataclasses.dataclass
class ObjectCollection:
    """
    CollectionPort implementation over any ObjectStoragePort.

    Parameters
    ----------
    storage     : blob storage holding the collection object
    name        : collection name; the object key is ``<name>.json``
    max_retries : CAS retry budget per mutation, at least 1
    """

    storage: ObjectStoragePort
    name: str
    max_retries: int = 10
    _write_lock: asyncio.Lock = dataclasses.field(
        default_factory=asyncio.Lock, init=False, repr=False
    )

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ValueError(
                f"max_retries must be at least 1, got {self.max_retries}"
            )

    @property
    def key(self) -> str:
        return f"{self.name}.json"

    # ------------------------------------------------------------------ #
    # Write operations                                                     #
    # ------------------------------------------------------------------ #

    async def insert(self, document: Document) -> str:
        """Persist a copy of ``document`` under a fresh id and return the id."""
        doc_id = new_id()
        record = {**document, "id": doc_id}
        await self._mutate(lambda state: state.with_document_added(record))
        return doc_id

    async def update(self, doc_id: str, changes: Document) -> int:
        """
        Set top-level fields on the document with ``doc_id``.

        Returns 1 if the document exists (even when the values were already
        set), 0 otherwise. The ``id`` field is never changed.
        """
        check_id(doc_id)
        fields = {k: v for k, v in changes.items() if k != "id"}
        matched = 0

        def _fn(state: CollectionState) -> CollectionState:
            nonlocal matched
            matched = 0 if state.find(doc_id) is None else 1
            return state.with_document_updated(doc_id, fields)

        await self._mutate(_fn)
        logger.debug("collection.updated", collection=self.name, matched=matched)
        return matched

    async def delete(self, doc_id: str) -> int:
        """Delete the document with ``doc_id``. Returns the number deleted (0 or 1)."""
        check_id(doc_id)
        deleted = 0

        def _fn(state: CollectionState) -> CollectionState:
            nonlocal deleted
            new_state = state.with_document_removed(doc_id)
            deleted = 0 if new_state is state else 1
            return new_state

        await self._mutate(_fn)
        logger.debug("collection.deleted", collection=self.name, deleted=deleted)
        return deleted

    # ------------------------------------------------------------------ #
    # Read operations (no CAS needed)                                     #
    # ------------------------------------------------------------------ #

    async def get(self, doc_id: str) -> Document:
        """Return a copy of the document with ``doc_id``."""
        check_id(doc_id)
        state, _ = await self._read()
        document = state.find(doc_id)
        if document is None:
            raise NotFoundError(self.name, doc_id)
        return dict(document)

    async def find(
        self,
        where: Document | None = None,
        *,
        sort: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Document]:
        """
        Return copies of all documents matching ``where``.

        Sorting is stable, so documents with equal sort values keep their
        insertion order. ``limit`` is applied after sorting.
        """
        state, _ = await self._read()
        documents = list(state.select(where))
        if sort is not None:
            documents.sort(key=_sort_key(sort), reverse=descending)
        if limit is not None:
            documents = documents[:limit]
        return [dict(d) for d in documents]

    # ------------------------------------------------------------------ #
    # Internal CAS loop                                                   #
    # ------------------------------------------------------------------ #

    async def _read(self) -> tuple[CollectionState, str | None]:
        content, etag = await self.storage.read(self.key)
        try:
            return codec.decode(content), etag
        except ValidationError as exc:
            raise UnavailableError(
                f"Collection {self.name!r} holds undecodable content", exc
            ) from exc

    async def _mutate(self, fn: MutationFn) -> None:
        """
        Read-modify-write with CAS retry loop.

        fn(state) -> new_state  (synchronous)
        A mutation that returns the same state object skips the write.
        """
        async with self._write_lock:
            for attempt in range(self.max_retries):
                state, etag = await self._read()
                new_state = fn(state)
                if new_state is state:
                    return
                try:
                    await self.storage.write(
                        self.key, codec.encode(new_state), if_match=etag
                    )
                    return
                except CASConflictError as exc:
                    if attempt == self.max_retries - 1:
                        raise UnavailableError(
                            f"Collection {self.name!r} write kept conflicting", exc
                        ) from exc
                    logger.warning(
                        "collection.cas_conflict",
                        collection=self.name,
                        attempt=attempt + 1,
                    )
                    await asyncio.sleep(
                        0.01 * (attempt + 1) * random.uniform(0.5, 1.5)
                    )
