from unittest.mock import MagicMock, patch

import pytest

from simplq.adapters.storage.gcs import GCSStorage
from simplq.domain.errors import CASConflictError, UnavailableError


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_storage(prefix: str = "simplq") -> tuple[GCSStorage, MagicMock, MagicMock]:
    """Return (storage, blob_mock, client_mock) with wired-up fakes."""
    blob = MagicMock()
    bucket = MagicMock()
    bucket.blob.return_value = blob
    client = MagicMock()
    client.bucket.return_value = bucket
    storage = GCSStorage(bucket_name="my-bucket", prefix=prefix, client=client)
    return storage, blob, client


def test_blob_name_joins_prefix():
    storage, _, _ = _make_storage()
    assert storage.blob_name("queue.json") == "simplq/queue.json"


def test_blob_name_empty_prefix():
    storage, _, _ = _make_storage(prefix="")
    assert storage.blob_name("queue.json") == "queue.json"


# ---------------------------------------------------------------------------
# async read() — patches _sync_read to bypass asyncio.to_thread
# ---------------------------------------------------------------------------

async def test_read_returns_content_and_generation():
    storage, _, _ = _make_storage()
    with patch.object(storage, "_sync_read", return_value=(b"{}", "42")) as mock_sr:
        content, etag = await storage.read("token.json")
    assert content == b"{}"
    assert etag == "42"
    mock_sr.assert_called_once_with("token.json")


async def test_read_exception_becomes_unavailable():
    storage, _, _ = _make_storage()
    with patch.object(storage, "_sync_read", side_effect=RuntimeError("network")):
        with pytest.raises(UnavailableError):
            await storage.read("token.json")


# ---------------------------------------------------------------------------
# async write() — patches _sync_write to bypass asyncio.to_thread
# ---------------------------------------------------------------------------

async def test_write_passes_key_content_and_if_match():
    storage, _, _ = _make_storage()
    with patch.object(storage, "_sync_write", return_value="50") as mock_sw:
        etag = await storage.write("token.json", b"content", if_match="49")
    assert etag == "50"
    mock_sw.assert_called_once_with("token.json", b"content", "49")


async def test_write_cas_conflict_propagated():
    storage, _, _ = _make_storage()
    with patch.object(storage, "_sync_write", side_effect=CASConflictError("mismatch")):
        with pytest.raises(CASConflictError):
            await storage.write("token.json", b"data", if_match="42")


async def test_write_exception_becomes_unavailable():
    storage, _, _ = _make_storage()
    with patch.object(storage, "_sync_write", side_effect=RuntimeError("io error")):
        with pytest.raises(UnavailableError):
            await storage.write("token.json", b"data")


# ---------------------------------------------------------------------------
# _sync_read() / _sync_write() — synchronous implementations directly
# ---------------------------------------------------------------------------

def test_sync_read_success_uses_prefixed_blob():
    pytest.importorskip("google.api_core.exceptions")
    storage, blob, client = _make_storage()
    blob.download_as_bytes.return_value = b"content"
    blob.generation = 99
    content, etag = storage._sync_read("token.json")
    assert content == b"content"
    assert etag == "99"
    client.bucket.assert_called_once_with("my-bucket")
    client.bucket.return_value.blob.assert_called_once_with("simplq/token.json")


def test_sync_read_not_found_returns_empty():
    gapi_exc = pytest.importorskip("google.api_core.exceptions")
    storage, blob, _ = _make_storage()
    blob.download_as_bytes.side_effect = gapi_exc.NotFound("blob not found")
    assert storage._sync_read("token.json") == (b"", None)


def test_sync_write_none_if_match_uses_generation_zero():
    pytest.importorskip("google.api_core.exceptions")
    storage, blob, _ = _make_storage()
    blob.generation = 100
    etag = storage._sync_write("token.json", b"content", if_match=None)
    blob.upload_from_string.assert_called_once_with(
        b"content",
        content_type="application/json",
        if_generation_match=0,
    )
    assert etag == "100"


def test_sync_write_with_if_match_uses_int_generation():
    pytest.importorskip("google.api_core.exceptions")
    storage, blob, _ = _make_storage()
    blob.generation = 51
    storage._sync_write("token.json", b"content", if_match="50")
    assert blob.upload_from_string.call_args.kwargs["if_generation_match"] == 50


def test_sync_write_precondition_failed_raises_cas_conflict():
    gapi_exc = pytest.importorskip("google.api_core.exceptions")
    storage, blob, _ = _make_storage()
    blob.upload_from_string.side_effect = gapi_exc.PreconditionFailed("mismatch")
    with pytest.raises(CASConflictError):
        storage._sync_write("token.json", b"content", if_match="42")
