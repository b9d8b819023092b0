"""
Vector index storage.

A named vector index is a pgvector table (one per index) managed through
Supabase RPC functions, see VECTOR_INDEX_FUNCTIONS_SQL. Callers depend on the
narrow VectorIndex protocol; InMemoryVectorIndex implements the same contract
for tests and local dry runs.
"""

import asyncio
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol, Sequence

from supabase import Client

from content_engine.services.errors import (
    IndexAlreadyExistsError,
    IndexCreationError,
    RetrievalError,
    UpsertError,
)

logger = logging.getLogger(__name__)


@dataclass
class IndexedRecord:
    """A vector plus the metadata stored next to it."""

    vector: List[float]
    metadata: Dict[str, Any] = field(default_factory=dict)


class VectorIndex(Protocol):
    async def create_index(self, name: str, dimension: int) -> None:
        """Create the index; raise IndexAlreadyExistsError if it exists."""
        ...

    async def upsert(self, name: str, records: Sequence[IndexedRecord]) -> int:
        """Store records in one batch; return the number written."""
        ...

    async def query(self, name: str, vector: List[float], top_k: int) -> List[Dict[str, Any]]:
        """Return up to top_k `{"metadata": ..., "score": ...}` rows, best first."""
        ...


def sanitize_identifier(value: str) -> str:
    """
    Turn an arbitrary string into a storage-safe identifier.

    Lowercase, alphanumeric and underscore only, repeated underscores collapsed.

    Examples:
        "/start-edit-manually/edit-pages" -> "_start_edit_manually_edit_pages"
        "Wegic Knowledge" -> "wegic_knowledge"
    """
    sanitized = re.sub(r"[^a-zA-Z0-9]", "_", value or "")
    sanitized = re.sub(r"_+", "_", sanitized)
    return sanitized.lower()


def _is_already_exists_error(e: Exception) -> bool:
    """
    Check if exception is a duplicate table error (42P07).

    Two concurrent CREATE TABLE statements for the same name can also fail
    with a unique violation (23505) on the pg_type catalog.
    """
    message = str(e)
    if "42P07" in message or "already exists" in message.lower():
        return True
    return "23505" in message and "pg_type_typname_nsp_index" in message


async def ensure_index(index: VectorIndex, name: str, dimension: int) -> bool:
    """
    Create the index unless it already exists.

    Returns:
        True if the index was created, False if it already existed

    Raises:
        IndexCreationError: Creation failed for any other reason
    """
    try:
        await index.create_index(name, dimension)
    except IndexAlreadyExistsError as e:
        logger.info(f"Index {name} already exists: {e}")
        return False

    logger.info(f"Created index {name} (dimension={dimension})")
    return True


# =============================================================================
# Supabase / pgvector
# =============================================================================

class SupabaseVectorIndex:
    """
    pgvector-backed index accessed through Supabase RPC.

    The Supabase Python client is synchronous; calls run in a worker thread so
    concurrent ingestion does not block the event loop.
    """

    def __init__(self, supabase: Client):
        self.supabase = supabase

    @staticmethod
    def table_name(name: str) -> str:
        return sanitize_identifier(name)

    async def create_index(self, name: str, dimension: int) -> None:
        table = self.table_name(name)
        if not table:
            raise IndexCreationError(f"Invalid index name: {name!r}")
        if dimension <= 0:
            raise IndexCreationError(f"Invalid dimension for index {table}: {dimension}")

        def _create():
            return self.supabase.rpc(
                "create_vector_index",
                {"index_name": table, "dimension": dimension},
            ).execute()

        try:
            await asyncio.to_thread(_create)
        except Exception as e:
            if _is_already_exists_error(e):
                raise IndexAlreadyExistsError(f"Index {table} already exists") from e
            logger.error(f"Failed to create index {table}: {e}")
            raise IndexCreationError(f"Failed to create index {table}: {e}") from e

    async def upsert(self, name: str, records: Sequence[IndexedRecord]) -> int:
        table = self.table_name(name)
        if not records:
            return 0

        rows = [{"embedding": r.vector, "metadata": r.metadata} for r in records]

        def _upsert():
            return self.supabase.rpc(
                "upsert_vectors",
                {"index_name": table, "records": rows},
            ).execute()

        try:
            result = await asyncio.to_thread(_upsert)
        except Exception as e:
            logger.error(f"Failed to upsert into {table}: {e}", extra={"error": str(e)})
            raise UpsertError(f"Failed to upsert {len(rows)} records into {table}: {e}") from e

        count = result.data if isinstance(result.data, int) else len(rows)
        logger.debug(f"Upserted {count} records into {table}")
        return count

    async def query(self, name: str, vector: List[float], top_k: int) -> List[Dict[str, Any]]:
        table = self.table_name(name)

        def _query():
            return self.supabase.rpc(
                "query_vectors",
                {
                    "index_name": table,
                    "query_embedding": vector,
                    "match_count": top_k,
                },
            ).execute()

        try:
            result = await asyncio.to_thread(_query)
        except Exception as e:
            logger.error(f"Vector query on {table} failed: {e}")
            raise RetrievalError(f"Vector query on {table} failed: {e}") from e

        hits = result.data or []
        logger.info(f"Vector query: index={table}, top_k={top_k}, results={len(hits)}")
        return hits


# =============================================================================
# In-memory
# =============================================================================

def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


class InMemoryVectorIndex:
    """Process-local index with cosine similarity. Append-only, like the pgvector store."""

    def __init__(self):
        self._dimensions: Dict[str, int] = {}
        self._records: Dict[str, List[IndexedRecord]] = {}

    def count(self, name: str) -> int:
        return len(self._records.get(sanitize_identifier(name), []))

    def records(self, name: str) -> List[IndexedRecord]:
        return list(self._records.get(sanitize_identifier(name), []))

    async def create_index(self, name: str, dimension: int) -> None:
        table = sanitize_identifier(name)
        if table in self._dimensions:
            raise IndexAlreadyExistsError(f"Index {table} already exists")
        if dimension <= 0:
            raise IndexCreationError(f"Invalid dimension for index {table}: {dimension}")
        self._dimensions[table] = dimension
        self._records[table] = []

    async def upsert(self, name: str, records: Sequence[IndexedRecord]) -> int:
        table = sanitize_identifier(name)
        if table not in self._dimensions:
            raise UpsertError(f"Index {table} does not exist")

        dimension = self._dimensions[table]
        for record in records:
            if len(record.vector) != dimension:
                raise UpsertError(
                    f"Vector dimension {len(record.vector)} does not match index {table} ({dimension})"
                )

        self._records[table].extend(records)
        return len(records)

    async def query(self, name: str, vector: List[float], top_k: int) -> List[Dict[str, Any]]:
        table = sanitize_identifier(name)
        if table not in self._dimensions:
            raise RetrievalError(f"Index {table} does not exist")

        scored = [
            {"metadata": dict(record.metadata), "score": cosine_similarity(vector, record.vector)}
            for record in self._records[table]
        ]
        scored.sort(key=lambda hit: -hit["score"])
        return scored[:max(0, int(top_k))]


# SQL functions backing SupabaseVectorIndex (run once in the Supabase SQL editor)
VECTOR_INDEX_FUNCTIONS_SQL = """
CREATE EXTENSION IF NOT EXISTS vector;

-- Fails with 42P07 (duplicate_table) when the index exists
CREATE OR REPLACE FUNCTION create_vector_index(index_name text, dimension int)
RETURNS void
LANGUAGE plpgsql
SECURITY DEFINER
SET search_path = public
AS $$
BEGIN
    -- Serialize concurrent creators of the same name
    PERFORM pg_advisory_xact_lock(hashtext(index_name));
    IF to_regclass(format('%I', index_name)) IS NOT NULL THEN
        RAISE EXCEPTION 'relation "%" already exists', index_name
            USING ERRCODE = 'duplicate_table';
    END IF;
    EXECUTE format(
        'CREATE TABLE %I (
            id uuid PRIMARY KEY DEFAULT gen_random_uuid(),
            embedding vector(%s) NOT NULL,
            metadata jsonb NOT NULL DEFAULT ''{}''::jsonb,
            created_at timestamptz NOT NULL DEFAULT now()
        )',
        index_name, dimension
    );
    EXECUTE format(
        'CREATE INDEX %I ON %I USING hnsw (embedding vector_cosine_ops)',
        index_name || '_embedding_idx', index_name
    );
END;
$$;

CREATE OR REPLACE FUNCTION upsert_vectors(index_name text, records jsonb)
RETURNS int
LANGUAGE plpgsql
SECURITY DEFINER
SET search_path = public
AS $$
DECLARE
    inserted int;
BEGIN
    EXECUTE format(
        'INSERT INTO %I (embedding, metadata)
         SELECT (r->>''embedding'')::vector, COALESCE(r->''metadata'', ''{}''::jsonb)
         FROM jsonb_array_elements($1) AS r',
        index_name
    ) USING records;
    GET DIAGNOSTICS inserted = ROW_COUNT;
    RETURN inserted;
END;
$$;

CREATE OR REPLACE FUNCTION query_vectors(
    index_name text,
    query_embedding vector,
    match_count int DEFAULT 5
)
RETURNS TABLE (id uuid, metadata jsonb, score float)
LANGUAGE plpgsql
SECURITY DEFINER
SET search_path = public
AS $$
BEGIN
    RETURN QUERY EXECUTE format(
        'SELECT t.id, t.metadata, (1 - (t.embedding <=> $1))::float AS score
         FROM %I t
         ORDER BY t.embedding <=> $1
         LIMIT $2',
        index_name
    ) USING query_embedding, match_count;
END;
$$;

GRANT EXECUTE ON FUNCTION create_vector_index TO service_role;
GRANT EXECUTE ON FUNCTION upsert_vectors TO service_role;
GRANT EXECUTE ON FUNCTION query_vectors TO service_role;
"""
