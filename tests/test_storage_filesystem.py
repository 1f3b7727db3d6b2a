import pytest

from simplq.adapters.storage.filesystem import LocalFileSystemStorage
from simplq.domain.errors import CASConflictError, InvalidArgumentError, UnavailableError


async def test_read_nonexistent_file(tmp_path):
    storage = LocalFileSystemStorage(tmp_path)
    content, etag = await storage.read("queue.json")
    assert content == b""
    assert etag is None


async def test_write_creates_file_under_root(tmp_path):
    storage = LocalFileSystemStorage(tmp_path / "data")
    await storage.write("token.json", b'{"documents": [], "version": 0}', if_match=None)
    assert (tmp_path / "data" / "token.json").exists()


async def test_read_after_write_returns_content_and_etag(tmp_path):
    storage = LocalFileSystemStorage(tmp_path)
    etag = await storage.write("queue.json", b"hello", if_match=None)
    content, read_etag = await storage.read("queue.json")
    assert content == b"hello"
    assert read_etag == etag


async def test_cas_write_with_correct_etag(tmp_path):
    storage = LocalFileSystemStorage(tmp_path)
    etag1 = await storage.write("queue.json", b"v1", if_match=None)
    etag2 = await storage.write("queue.json", b"v2", if_match=etag1)
    content, _ = await storage.read("queue.json")
    assert content == b"v2"
    assert etag2 != etag1


async def test_cas_conflict_on_stale_etag(tmp_path):
    storage = LocalFileSystemStorage(tmp_path)
    await storage.write("queue.json", b"v1", if_match=None)
    with pytest.raises(
        CASConflictError, match="ETag mismatch on 'queue.json': expected 'stale-etag'"
    ):
        await storage.write("queue.json", b"v2", if_match="stale-etag")


async def test_cas_conflict_none_when_file_exists(tmp_path):
    storage = LocalFileSystemStorage(tmp_path)
    await storage.write("queue.json", b"v1", if_match=None)
    with pytest.raises(CASConflictError):
        await storage.write("queue.json", b"v2", if_match=None)


async def test_content_unchanged_after_failed_cas(tmp_path):
    storage = LocalFileSystemStorage(tmp_path)
    await storage.write("queue.json", b"original", if_match=None)
    with pytest.raises(CASConflictError):
        await storage.write("queue.json", b"corrupted", if_match="bad-etag")
    content, _ = await storage.read("queue.json")
    assert content == b"original"


async def test_keys_map_to_separate_files(tmp_path):
    storage = LocalFileSystemStorage(tmp_path)
    await storage.write("queue.json", b"q", if_match=None)
    await storage.write("token.json", b"t", if_match=None)
    assert (tmp_path / "queue.json").read_bytes() == b"q"
    assert (tmp_path / "token.json").read_bytes() == b"t"


async def test_root_accepts_string(tmp_path):
    storage = LocalFileSystemStorage(str(tmp_path))
    await storage.write("queue.json", b"data", if_match=None)
    content, _ = await storage.read("queue.json")
    assert content == b"data"


@pytest.mark.parametrize("key", ["", "/etc/passwd", "../outside.json", "a/../../b"])
async def test_keys_escaping_root_are_rejected(tmp_path, key):
    storage = LocalFileSystemStorage(tmp_path)
    with pytest.raises(InvalidArgumentError):
        await storage.read(key)


async def test_os_error_becomes_unavailable(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_bytes(b"")
    storage = LocalFileSystemStorage(blocker)
    with pytest.raises(UnavailableError):
        await storage.write("queue.json", b"data", if_match=None)
