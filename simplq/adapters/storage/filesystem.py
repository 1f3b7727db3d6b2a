"""
LocalFileSystemStorage — fcntl.flock-based CAS for POSIX systems.

Each key is a file under a root directory, e.g. ``<root>/token.json``.
Suitable for local development, single-machine deployments, or integration
tests that need persistent files rather than in-memory state.

Etag strategy
-------------
The etag is a SHA-256 hex digest of the file contents; it always changes
when content changes, unlike mtime. An absent or empty file is treated as
non-existent and has etag None.

CAS semantics
-------------
write(key, content, if_match) takes an exclusive flock on the file, re-reads
the current etag while holding the lock, and raises CASConflictError if it
differs from if_match. Any other OSError becomes UnavailableError.

POSIX-only (Linux, macOS). Not compatible with NFS or distributed filesystems.
"""

from __future__ import annotations

import asyncio
import dataclasses
import fcntl
import hashlib
import os
from pathlib import Path

from simplq.domain.errors import CASConflictError, InvalidArgumentError, UnavailableError


@dataclasses.dataclass
class LocalFileSystemStorage:
    """
    Stores every key as a file below ``root`` (created on first write).
    """

    root: Path

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def path_for(self, key: str) -> Path:
        """Resolve ``key`` to a file path, refusing keys that escape ``root``."""
        if not key or key.startswith("/") or ".." in Path(key).parts:
            raise InvalidArgumentError(f"invalid storage key: {key!r}")
        return self.root / key

    async def read(self, key: str) -> tuple[bytes, str | None]:
        """Return (content, etag). Returns (b"", None) if the file does not exist."""
        path = self.path_for(key)
        try:
            return await asyncio.to_thread(self._sync_read, path)
        except OSError as exc:
            raise UnavailableError(f"Filesystem read of {key!r} failed", exc) from exc

    async def write(
        self,
        key: str,
        content: bytes,
        if_match: str | None = None,
    ) -> str:
        """CAS write. Raises CASConflictError on etag mismatch."""
        path = self.path_for(key)
        try:
            return await asyncio.to_thread(self._sync_write, path, content, if_match)
        except OSError as exc:
            raise UnavailableError(f"Filesystem write of {key!r} failed", exc) from exc

    # ------------------------------------------------------------------ #
    # Synchronous implementations (executed in a thread-pool worker)      #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _etag(data: bytes) -> str:
        return hashlib.sha256(data).hexdigest()

    def _sync_read(self, path: Path) -> tuple[bytes, str | None]:
        if not path.exists():
            return b"", None
        with open(path, "rb") as fh:
            fcntl.flock(fh, fcntl.LOCK_SH)
            try:
                content = fh.read()
            finally:
                fcntl.flock(fh, fcntl.LOCK_UN)
        etag: str | None = self._etag(content) if content else None
        return content, etag

    def _sync_write(self, path: Path, content: bytes, if_match: str | None) -> str:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(str(path), os.O_RDWR | os.O_CREAT, 0o644)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX)

            existing = os.read(fd, os.fstat(fd).st_size)
            real_etag: str | None = self._etag(existing) if existing else None

            if real_etag != if_match:
                raise CASConflictError(
                    f"ETag mismatch on {path.name!r}: "
                    f"expected {if_match!r}, got {real_etag!r}"
                )

            os.ftruncate(fd, 0)
            os.lseek(fd, 0, os.SEEK_SET)
            os.write(fd, content)
            os.fsync(fd)
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
            os.close(fd)

        return self._etag(content)
