"""Database service modules."""

from .vector_index import (
    IndexedRecord,
    InMemoryVectorIndex,
    SupabaseVectorIndex,
    VectorIndex,
    ensure_index,
    sanitize_identifier,
)

__all__ = [
    "IndexedRecord",
    "InMemoryVectorIndex",
    "SupabaseVectorIndex",
    "VectorIndex",
    "ensure_index",
    "sanitize_identifier",
]
