"""
Domain models for simplq — backed by Pydantic v2.

Pydantic handles:
  - JSON serialization / deserialization of collection documents (codec.py)
  - datetime parsing (ISO-8601 with timezone)
  - field validation, e.g. token numbers can never go negative

Queue and Token are frozen (immutable) and cross component boundaries by
value. Store documents are plain dicts; ``to_document`` / ``from_document``
convert between the two representations. Identity is never part of a
document body handed to the store: the store assigns it.
"""

import re
import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from simplq.domain.errors import InvalidArgumentError

QueueId = str
TokenId = str
Document = dict[str, Any]

_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")


def new_id() -> str:
    """Return a fresh store identity (32 lowercase hex characters)."""
    return uuid.uuid4().hex


def check_id(value: str) -> str:
    """Return ``value`` unchanged, or raise InvalidArgumentError if malformed."""
    if not isinstance(value, str) or not _ID_PATTERN.match(value):
        raise InvalidArgumentError(f"malformed id: {value!r}")
    return value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Token(BaseModel):
    """
    A single ticket within a queue.

    id           — store-assigned identity ("" until persisted)
    queue_id     — owning queue, set at enrollment and never changed
    token_number — 1-based position in the queue (0 until allocated)
    name         — holder name
    created_at   — UTC timestamp set when the model is built
    """

    model_config = ConfigDict(frozen=True)

    id: TokenId = ""
    queue_id: QueueId = ""
    token_number: int = Field(default=0, ge=0)
    name: str = ""
    created_at: datetime = Field(default_factory=_utcnow)

    def to_document(self) -> Document:
        return self.model_dump(mode="json", exclude={"id"})

    @classmethod
    def from_document(cls, document: Document) -> "Token":
        return cls.model_validate(document)


class Queue(BaseModel):
    """
    A named waiting line that issues sequential tokens.

    ``tokens`` is populated only by QueueService.read_queue and is never
    persisted on the queue record itself. ``capacity`` is informational.
    """

    model_config = ConfigDict(frozen=True)

    id: QueueId = ""
    name: str = ""
    capacity: int | None = Field(default=None, ge=0)
    is_paused: bool = False
    created_at: datetime = Field(default_factory=_utcnow)
    tokens: tuple[Token, ...] = ()

    def to_document(self) -> Document:
        return self.model_dump(mode="json", exclude={"id", "tokens"})

    @classmethod
    def from_document(cls, document: Document) -> "Queue":
        return cls.model_validate(document)

    def with_tokens(self, tokens: tuple[Token, ...]) -> "Queue":
        """Return a new Queue carrying ``tokens``."""
        return self.model_copy(update={"tokens": tokens})


class CollectionState(BaseModel):
    """
    The complete contents of one collection as stored on object storage.

    Pure value type — all mutations return new instances; a mutation that
    changes nothing returns ``self`` so callers can skip the write.

    documents — ordered by insertion; every document carries an ``id`` key
    version   — monotonically increasing counter, incremented on every change
    """

    model_config = ConfigDict(frozen=True)

    documents: tuple[Document, ...] = ()
    version: int = 0

    # ------------------------------------------------------------------ #
    # Query helpers                                                        #
    # ------------------------------------------------------------------ #

    def find(self, doc_id: str) -> Document | None:
        """Return the document with the given id, or None if absent."""
        return next((d for d in self.documents if d.get("id") == doc_id), None)

    def select(self, where: Document | None = None) -> tuple[Document, ...]:
        """All documents whose fields equal every item of ``where``."""
        if not where:
            return self.documents
        return tuple(
            d
            for d in self.documents
            if all(k in d and d[k] == v for k, v in where.items())
        )

    # ------------------------------------------------------------------ #
    # Mutation helpers — each returns a new CollectionState               #
    # ------------------------------------------------------------------ #

    def with_document_added(self, document: Document) -> "CollectionState":
        """Append a document and increment version."""
        return self.model_copy(
            update={
                "documents": self.documents + (dict(document),),
                "version": self.version + 1,
            }
        )

    def with_document_updated(
        self, doc_id: str, changes: Document
    ) -> "CollectionState":
        """Set ``changes`` on the document with ``doc_id``; self if nothing changed."""
        changed = False
        new_docs: list[Document] = []
        for d in self.documents:
            if d.get("id") == doc_id and any(
                k not in d or d[k] != v for k, v in changes.items()
            ):
                new_docs.append({**d, **changes})
                changed = True
            else:
                new_docs.append(d)
        if not changed:
            return self
        return self.model_copy(
            update={"documents": tuple(new_docs), "version": self.version + 1}
        )

    def with_document_removed(self, doc_id: str) -> "CollectionState":
        """Remove the document with ``doc_id``; self if it was absent."""
        new_docs = tuple(d for d in self.documents if d.get("id") != doc_id)
        if len(new_docs) == len(self.documents):
            return self
        return self.model_copy(
            update={"documents": new_docs, "version": self.version + 1}
        )
