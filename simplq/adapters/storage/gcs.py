"""
GCSStorage — Google Cloud Storage adapter using google-cloud-storage.

Install extras: pip install "simplq[gcs]"

Every key lives at ``<prefix>/<key>`` in one bucket.

CAS semantics
-------------
GCS supports conditional writes via object generation numbers.

  read()  → returns (content, generation_string); the generation is taken
            from the same download so content and etag always agree
  write() → uses if_generation_match=int(etag); GCS raises PreconditionFailed
            on mismatch → CASConflictError

First write (if_match=None):
  Uses if_generation_match=0 — GCS convention for "blob must not exist yet".

Note: google-cloud-storage is synchronous. All operations are wrapped in
asyncio.to_thread to avoid blocking the event loop.
"""
from __future__ import annotations

import asyncio
import dataclasses
from typing import TYPE_CHECKING, Any

from simplq.domain.errors import CASConflictError, UnavailableError

if TYPE_CHECKING:
    from google.cloud.storage import Client as GCSClient


def _api_exceptions() -> Any:
    try:
        from google.api_core import exceptions as gapi_exc  # type: ignore[import-untyped]
    except ImportError as exc:
        raise ImportError(
            "GCSStorage requires google-cloud-storage. "
            "Install with: pip install 'simplq[gcs]'"
        ) from exc
    return gapi_exc


@dataclasses.dataclass
class GCSStorage:
    """
    Google Cloud Storage adapter.

    Parameters
    ----------
    bucket_name : GCS bucket name
    prefix      : blob prefix shared by all collections ("" for bucket root)
    client      : google.cloud.storage.Client — created lazily if omitted
    """

    bucket_name: str
    prefix: str = "simplq"
    client: GCSClient | None = None

    def blob_name(self, key: str) -> str:
        prefix = self.prefix.strip("/")
        return f"{prefix}/{key}" if prefix else key

    def _get_client(self) -> GCSClient:
        if self.client is not None:
            return self.client
        try:
            from google.cloud import storage  # type: ignore[import-untyped]
        except ImportError as exc:
            raise ImportError(
                "GCSStorage requires google-cloud-storage. "
                "Install with: pip install 'simplq[gcs]'"
            ) from exc
        self.client = storage.Client()
        return self.client  # type: ignore[return-value]

    async def read(self, key: str) -> tuple[bytes, str | None]:
        """Read one blob. Returns (b"", None) if the blob does not exist."""
        try:
            return await asyncio.to_thread(self._sync_read, key)
        except (CASConflictError, UnavailableError):
            raise
        except Exception as exc:
            raise UnavailableError(f"GCS read of {key!r} failed", exc) from exc

    async def write(
        self,
        key: str,
        content: bytes,
        if_match: str | None = None,
    ) -> str:
        """CAS write. Raises CASConflictError on generation mismatch."""
        try:
            return await asyncio.to_thread(self._sync_write, key, content, if_match)
        except (CASConflictError, UnavailableError):
            raise
        except Exception as exc:
            raise UnavailableError(f"GCS write of {key!r} failed", exc) from exc

    # ------------------------------------------------------------------ #
    # Synchronous implementations (executed in a thread-pool worker)      #
    # ------------------------------------------------------------------ #

    def _blob(self, key: str) -> Any:
        client = self._get_client()
        return client.bucket(self.bucket_name).blob(self.blob_name(key))  # type: ignore[attr-defined]

    def _sync_read(self, key: str) -> tuple[bytes, str | None]:
        gapi_exc = _api_exceptions()
        blob = self._blob(key)
        try:
            content: bytes = blob.download_as_bytes()
            return content, str(blob.generation)
        except gapi_exc.NotFound:
            return b"", None

    def _sync_write(self, key: str, content: bytes, if_match: str | None) -> str:
        gapi_exc = _api_exceptions()
        blob = self._blob(key)

        # if_generation_match=0 → "blob must not exist yet"
        gen_match: int = 0 if if_match is None else int(if_match)

        try:
            blob.upload_from_string(  # type: ignore[attr-defined]
                content,
                content_type="application/json",
                if_generation_match=gen_match,
            )
        except gapi_exc.PreconditionFailed as exc:
            raise CASConflictError(f"GCS generation mismatch for {key!r}") from exc

        # upload_from_string refreshes blob properties from the response
        return str(blob.generation)
