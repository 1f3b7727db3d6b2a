"""
S3Storage — AWS S3 adapter using aioboto3 and conditional writes.

Install extras: pip install "simplq[s3]"

Every key lives at ``<prefix>/<key>`` in one bucket, so the queue and token
collections of a deployment sit side by side, e.g.

    s3://my-bucket/simplq/queue.json
    s3://my-bucket/simplq/token.json

CAS semantics
-------------
  read()  → returns (content, ETag) where ETag is the S3 object's entity tag
  write() → if_match given: PutObject with IfMatch=etag
            if_match None : PutObject with IfNoneMatch="*" (create only)
            S3 answers PreconditionFailed or ConditionalRequestConflict when
            another writer got there first → CASConflictError

Compatible with S3-compatible storage that supports conditional writes:
  MinIO, Cloudflare R2, Tigris, etc.
"""
from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING

from simplq.domain.errors import CASConflictError, UnavailableError

if TYPE_CHECKING:
    from aioboto3 import Session as AioBoto3Session

_CONFLICT_CODES = ("PreconditionFailed", "ConditionalRequestConflict")


@dataclasses.dataclass
class S3Storage:
    """
    AWS S3 storage adapter.

    Parameters
    ----------
    bucket       : S3 bucket name
    prefix       : key prefix shared by all collections ("" for bucket root)
    session      : aioboto3.Session — created lazily from env vars if omitted
    region_name  : AWS region passed to the S3 client
    endpoint_url : custom endpoint for S3-compatible backends (e.g. MinIO)
    """

    bucket: str
    prefix: str = "simplq"
    session: AioBoto3Session | None = None
    region_name: str | None = None
    endpoint_url: str | None = None

    def object_key(self, key: str) -> str:
        prefix = self.prefix.strip("/")
        return f"{prefix}/{key}" if prefix else key

    def _get_session(self) -> AioBoto3Session:
        if self.session is not None:
            return self.session
        try:
            import aioboto3  # type: ignore[import-untyped]
        except ImportError as exc:
            raise ImportError(
                "S3Storage requires aioboto3. Install with: pip install 'simplq[s3]'"
            ) from exc
        self.session = aioboto3.Session()
        return self.session  # type: ignore[return-value]

    def _client_kwargs(self) -> dict[str, str]:
        """Build kwargs forwarded to the S3 client constructor."""
        kwargs: dict[str, str] = {}
        if self.region_name:
            kwargs["region_name"] = self.region_name
        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url
        return kwargs

    async def read(self, key: str) -> tuple[bytes, str | None]:
        """Read one object. Returns (b"", None) if the key does not exist."""
        session = self._get_session()
        try:
            async with session.client("s3", **self._client_kwargs()) as s3:  # type: ignore[attr-defined]
                try:
                    response = await s3.get_object(
                        Bucket=self.bucket, Key=self.object_key(key)
                    )
                    content: bytes = await response["Body"].read()
                    etag: str = response["ETag"]
                    return content, etag
                except Exception as exc:
                    if _s3_error_code(exc) in ("NoSuchKey", "404"):
                        return b"", None
                    raise
        except (CASConflictError, UnavailableError):
            raise
        except Exception as exc:
            raise UnavailableError(f"S3 read of {key!r} failed", exc) from exc

    async def write(
        self,
        key: str,
        content: bytes,
        if_match: str | None = None,
    ) -> str:
        """CAS write. Raises CASConflictError when the precondition fails."""
        session = self._get_session()
        try:
            async with session.client("s3", **self._client_kwargs()) as s3:  # type: ignore[attr-defined]
                put_kwargs: dict[str, str | bytes] = {
                    "Bucket": self.bucket,
                    "Key": self.object_key(key),
                    "Body": content,
                    "ContentType": "application/json",
                }
                if if_match is None:
                    put_kwargs["IfNoneMatch"] = "*"
                else:
                    put_kwargs["IfMatch"] = if_match

                try:
                    response = await s3.put_object(**put_kwargs)
                    return str(response["ETag"])
                except Exception as exc:
                    if _s3_error_code(exc) in _CONFLICT_CODES:
                        raise CASConflictError(
                            f"S3 precondition failed for {key!r}"
                        ) from exc
                    raise
        except (CASConflictError, UnavailableError):
            raise
        except Exception as exc:
            raise UnavailableError(f"S3 write of {key!r} failed", exc) from exc


def _s3_error_code(exc: Exception) -> str:
    """Extract the error code from a botocore ClientError, or return ''."""
    response = getattr(exc, "response", None)
    if isinstance(response, dict):
        error = response.get("Error", {})
        if isinstance(error, dict):
            code = error.get("Code", "")
            return str(code) if code else ""
    return ""
