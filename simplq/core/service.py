"""
QueueService — queue and token lifecycle on top of two collections.

    service = QueueService.from_storage(InMemoryStorage())

    queue_id = await service.create_queue(Queue(name="bakery"))
    token_id = await service.enroll_token(queue_id, Token(name="alice"))
    queue    = await service.read_queue(queue_id)   # queue.tokens[0].token_number == 1

Queue states: Active ⇄ Paused (set_paused), both → Deleted (delete_queue).
Tokens are only ever Created; remove_token is declared but unimplemented.

Known gaps, kept on purpose:
  - delete_queue does not delete the queue's tokens; they stay readable by id.
  - enroll_token does not check that the queue exists, so orphan tokens
    can be created.
"""
from __future__ import annotations

import dataclasses
from typing import NoReturn

from simplq.core.collection import ObjectCollection
from simplq.core.sequencer import LockScope, TokenSequencer
from simplq.domain.errors import NotFoundError, SimplQError, UnimplementedError
from simplq.domain.models import Queue, QueueId, Token, TokenId, check_id
from simplq.observability.logging import get_logger
from simplq.ports.storage import CollectionPort, ObjectStoragePort

logger = get_logger(__name__)

QUEUE_COLLECTION = "queue"
TOKEN_COLLECTION = "token"


@dataclasses.dataclass
class QueueService:
    """
    Orchestrates queue and token operations.

    All methods are async and safe to call from multiple coroutines; only
    enroll_token takes the sequencer's lock.
    """

    queues: CollectionPort
    tokens: CollectionPort
    sequencer: TokenSequencer

    @classmethod
    def from_storage(
        cls,
        storage: ObjectStoragePort,
        *,
        lock_scope: LockScope = "global",
        max_retries: int = 10,
    ) -> "QueueService":
        """Build a service whose collections both live on ``storage``."""
        queues = ObjectCollection(storage, QUEUE_COLLECTION, max_retries=max_retries)
        tokens = ObjectCollection(storage, TOKEN_COLLECTION, max_retries=max_retries)
        return cls(
            queues=queues,
            tokens=tokens,
            sequencer=TokenSequencer(tokens, lock_scope=lock_scope),
        )

    # ------------------------------------------------------------------ #
    # Queues                                                               #
    # ------------------------------------------------------------------ #

    async def create_queue(self, queue: Queue) -> QueueId:
        """Persist ``queue`` and return its store-assigned id."""
        queue = queue.model_copy(update={"id": "", "tokens": ()})
        queue_id = await self.queues.insert(queue.to_document())
        logger.info("queue.created", queue_id=queue_id, queue_name=queue.name)
        return queue_id

    async def read_queue(self, queue_id: QueueId) -> Queue:
        """
        Fetch a queue with all of its tokens, ascending by token number.

        Raises NotFoundError before any token scan if the queue is absent.
        """
        queue = Queue.from_document(await self.queues.get(queue_id))
        documents = await self.tokens.find({"queue_id": queue_id}, sort="token_number")
        logger.debug("queue.read", queue_id=queue_id, tokens=len(documents))
        return queue.with_tokens(tuple(Token.from_document(d) for d in documents))

    async def set_paused(self, queue_id: QueueId, is_paused: bool) -> None:
        """Update only the paused flag. Raises NotFoundError if no queue matched."""
        matched = await self.queues.update(queue_id, {"is_paused": is_paused})
        if matched == 0:
            raise NotFoundError(QUEUE_COLLECTION, queue_id)
        logger.info("queue.paused" if is_paused else "queue.resumed", queue_id=queue_id)

    async def delete_queue(self, queue_id: QueueId) -> None:
        """Delete the queue record only; its tokens are left in place."""
        deleted = await self.queues.delete(queue_id)
        if deleted == 0:
            raise NotFoundError(QUEUE_COLLECTION, queue_id)
        logger.info("queue.deleted", queue_id=queue_id)

    # ------------------------------------------------------------------ #
    # Tokens                                                               #
    # ------------------------------------------------------------------ #

    async def enroll_token(self, queue_id: QueueId, token: Token) -> TokenId:
        """
        Allocate the next number in ``queue_id`` and persist ``token`` with it.

        Any id, queue id or number on ``token`` is discarded. The maximum read
        and the insert run under the sequencer's lock; if either fails the
        error propagates and nothing is stored.
        """
        check_id(queue_id)
        try:
            async with self.sequencer.reserve(queue_id) as number:
                token = token.model_copy(
                    update={"id": "", "queue_id": queue_id, "token_number": number}
                )
                token_id = await self.tokens.insert(token.to_document())
        except SimplQError as exc:
            logger.warning("token.enroll_failed", queue_id=queue_id, error=str(exc))
            raise
        logger.info(
            "token.enrolled",
            queue_id=queue_id,
            token_id=token_id,
            token_number=number,
        )
        return token_id

    async def read_token(self, token_id: TokenId) -> Token:
        """Fetch a single token. Raises NotFoundError if absent."""
        return Token.from_document(await self.tokens.get(token_id))

    async def remove_token(self, token_id: TokenId) -> NoReturn:
        """Declared but not implemented; always raises UnimplementedError."""
        raise UnimplementedError("remove_token")
