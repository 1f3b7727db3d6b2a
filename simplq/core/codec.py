"""
Codec — serialize and deserialize CollectionState to/from bytes using Pydantic v2.

Wire format (produced by model_dump_json):
------------------------------------------
{
  "documents": [
    {
      "id": "5f0c6e2a9b8d4c1e8f7a6b5c4d3e2f10",
      "queue_id": "0d1e2f3a4b5c6d7e8f9a0b1c2d3e4f5a",
      "token_number": 1,
      "name": "alice",
      "created_at": "2024-01-01T00:00:00Z"
    }
  ],
  "version": 1
}
"""
from __future__ import annotations

from simplq.domain.models import CollectionState


def encode(state: CollectionState) -> bytes:
    """Serialize CollectionState to UTF-8 JSON bytes."""
    return state.model_dump_json(indent=2).encode("utf-8")


def decode(data: bytes) -> CollectionState:
    """Deserialize UTF-8 JSON bytes to CollectionState. Empty bytes → empty state."""
    if not data:
        return CollectionState()
    return CollectionState.model_validate_json(data)
