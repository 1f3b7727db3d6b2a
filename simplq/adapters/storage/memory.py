"""
InMemoryStorage — asyncio.Lock-based CAS for testing and development.

Keeps one bytes buffer per key. A single asyncio.Lock serializes reads and
writes across all keys, faithfully simulating the conditional-write
semantics of real object storage backends.

Etags come from one monotonic integer counter (stringified) shared by all
keys, so an etag is never reused even after a key is rewritten.

Zero external dependencies. Safe for multiple concurrent coroutines in a
single event loop. NOT safe across processes or threads.
"""
from __future__ import annotations

import asyncio
import dataclasses

from simplq.domain.errors import CASConflictError


@dataclasses.dataclass
class InMemoryStorage:
    """
    In-process object storage backed by a dict of bytes buffers.

    Parameters
    ----------
    initial_objects : optional pre-populated {key: bytes} (useful for test setup)
    """

    initial_objects: dict[str, bytes] = dataclasses.field(default_factory=dict)

    def __post_init__(self) -> None:
        self._objects: dict[str, tuple[bytes, str]] = {
            key: (content, "0") for key, content in self.initial_objects.items()
        }
        self._counter: int = 0
        self._lock: asyncio.Lock = asyncio.Lock()

    def keys(self) -> list[str]:
        """Keys currently holding an object."""
        return sorted(self._objects)

    async def read(self, key: str) -> tuple[bytes, str | None]:
        """Return (content, etag). (b"", None) until the key is first written."""
        async with self._lock:
            content, etag = self._objects.get(key, (b"", None))
            return content, etag

    async def write(
        self,
        key: str,
        content: bytes,
        if_match: str | None = None,
    ) -> str:
        """
        CAS write. Raises CASConflictError if if_match differs from the current etag.
        """
        async with self._lock:
            _, current = self._objects.get(key, (b"", None))
            if if_match != current:
                raise CASConflictError(
                    f"ETag mismatch on {key!r}: expected {if_match!r}, got {current!r}"
                )
            self._counter += 1
            etag = str(self._counter)
            self._objects[key] = (content, etag)
            return etag
