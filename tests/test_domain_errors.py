import pytest

from simplq.domain.errors import (
    CASConflictError,
    InvalidArgumentError,
    NotFoundError,
    SimplQError,
    UnavailableError,
    UnimplementedError,
)


def test_simplq_error_is_exception():
    err = SimplQError("test message")
    assert isinstance(err, Exception)
    assert str(err) == "test message"


def test_not_found_stores_kind_and_id():
    err = NotFoundError("queue", "abc-123")
    assert err.kind == "queue"
    assert err.record_id == "abc-123"
    assert "abc-123" in str(err)
    assert "queue" in str(err)


def test_unavailable_stores_cause_and_message():
    cause = RuntimeError("disk full")
    err = UnavailableError("write failed", cause)
    assert err.cause is cause
    assert "write failed" in str(err)
    assert "disk full" in str(err)


def test_unimplemented_names_operation():
    err = UnimplementedError("remove_token")
    assert err.operation == "remove_token"
    assert "remove_token" in str(err)


def test_error_hierarchy():
    for cls in (
        NotFoundError,
        UnavailableError,
        UnimplementedError,
        InvalidArgumentError,
        CASConflictError,
    ):
        assert issubclass(cls, SimplQError)
    assert issubclass(SimplQError, Exception)


def test_error_codes_are_distinct_tags():
    codes = {
        NotFoundError.code,
        UnavailableError.code,
        UnimplementedError.code,
        InvalidArgumentError.code,
        CASConflictError.code,
    }
    assert len(codes) == 5
    assert NotFoundError("queue", "x").code == "not_found"
    assert UnimplementedError("op").code == "unimplemented"


def test_can_catch_subclass_as_base():
    with pytest.raises(SimplQError):
        raise CASConflictError("conflict")
