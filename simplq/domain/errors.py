"""
Exception hierarchy for simplq.

SimplQError
├── NotFoundError         — lookup/update/delete targeted an id that is absent
├── UnavailableError      — underlying store operation failed (wraps original)
├── UnimplementedError    — operation declared in the contract but not provided
├── InvalidArgumentError  — malformed input, e.g. an id the store cannot parse
└── CASConflictError      — conditional write rejected because etag did not match

Every class carries a short ``code`` tag so that a transport layer can map
failures without inspecting messages.
"""

from __future__ import annotations


class SimplQError(Exception):
    """Base class for all simplq exceptions."""

    code: str = "error"


class NotFoundError(SimplQError):
    """Raised when no record with the given id exists in a collection."""

    code = "not_found"

    def __init__(self, kind: str, record_id: str) -> None:
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id!r} not found")


class UnavailableError(SimplQError):
    """
    Wraps an underlying I/O failure from a storage adapter.

    Attributes
    ----------
    cause : Exception
        The original exception from the storage backend.
    """

    code = "unavailable"

    def __init__(self, message: str, cause: Exception) -> None:
        self.cause = cause
        super().__init__(f"{message}: {cause}")


class UnimplementedError(SimplQError):
    """Raised by operations that are part of the contract but not implemented."""

    code = "unimplemented"

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"{operation} is not implemented")


class InvalidArgumentError(SimplQError):
    """Raised when an argument cannot be interpreted, such as a malformed id."""

    code = "invalid_argument"


class CASConflictError(SimplQError):
    """
    Raised when a compare-and-set write is rejected by the storage backend.

    The caller should re-read the current state and retry the operation.
    ObjectCollection does this automatically and only surfaces the conflict,
    wrapped in UnavailableError, once its retry budget is exhausted.
    """

    code = "conflict"
