"""Tests for vector index helpers, the in-memory index and the Supabase adapter."""

import asyncio
from unittest.mock import MagicMock

import pytest

from content_engine.services.db.vector_index import (
    IndexedRecord,
    InMemoryVectorIndex,
    SupabaseVectorIndex,
    VECTOR_INDEX_FUNCTIONS_SQL,
    cosine_similarity,
    ensure_index,
    sanitize_identifier,
)
from content_engine.services.errors import (
    IndexAlreadyExistsError,
    IndexCreationError,
    RetrievalError,
    UpsertError,
)


class TestSanitizeIdentifier:

    @pytest.mark.parametrize("raw, expected", [
        ("/start-edit-manually/edit-pages", "_start_edit_manually_edit_pages"),
        ("Wegic Knowledge", "wegic_knowledge"),
        ("a--b__c", "a_b_c"),
        ("doc", "doc"),
    ])
    def test_sanitizes(self, raw, expected) -> None:
        assert sanitize_identifier(raw) == expected


class TestEnsureIndex:

    def test_second_creation_is_not_an_error(self) -> None:
        index = InMemoryVectorIndex()

        created_first = asyncio.run(ensure_index(index, "knowledge", 3))
        created_second = asyncio.run(ensure_index(index, "knowledge", 3))

        assert created_first is True
        assert created_second is False
        assert index.count("knowledge") == 0

    def test_other_creation_failures_surface(self) -> None:
        index = InMemoryVectorIndex()

        with pytest.raises(IndexCreationError):
            asyncio.run(ensure_index(index, "knowledge", 0))


class TestInMemoryVectorIndex:

    def test_query_orders_by_descending_similarity(self) -> None:
        index = InMemoryVectorIndex()

        async def scenario():
            await index.create_index("kb", 2)
            await index.upsert("kb", [
                IndexedRecord([0.0, 1.0], {"text": "far"}),
                IndexedRecord([1.0, 0.0], {"text": "near"}),
                IndexedRecord([1.0, 1.0], {"text": "middle"}),
            ])
            return await index.query("kb", [1.0, 0.1], top_k=2)

        hits = asyncio.run(scenario())

        assert [h["metadata"]["text"] for h in hits] == ["near", "middle"]
        assert hits[0]["score"] >= hits[1]["score"]

    def test_dimension_mismatch_raises_upsert_error(self) -> None:
        index = InMemoryVectorIndex()

        async def scenario():
            await index.create_index("kb", 3)
            await index.upsert("kb", [IndexedRecord([1.0, 0.0], {"text": "short"})])

        with pytest.raises(UpsertError):
            asyncio.run(scenario())

    def test_query_on_missing_index_raises(self) -> None:
        with pytest.raises(RetrievalError):
            asyncio.run(InMemoryVectorIndex().query("missing", [1.0], 3))

    def test_cosine_similarity_of_zero_vector(self) -> None:
        assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0


class TestSupabaseVectorIndex:

    def test_duplicate_table_maps_to_already_exists(self) -> None:
        supabase = MagicMock()
        supabase.rpc.return_value.execute.side_effect = Exception(
            '{"code": "42P07", "message": "relation \\"kb\\" already exists"}'
        )

        with pytest.raises(IndexAlreadyExistsError):
            asyncio.run(SupabaseVectorIndex(supabase).create_index("kb", 3))

    def test_concurrent_create_type_collision_maps_to_already_exists(self) -> None:
        supabase = MagicMock()
        supabase.rpc.return_value.execute.side_effect = Exception(
            '{"code": "23505", "message": "duplicate key value violates unique constraint '
            '\\"pg_type_typname_nsp_index\\""}'
        )

        assert asyncio.run(ensure_index(SupabaseVectorIndex(supabase), "kb", 3)) is False

    def test_other_unique_violations_are_creation_errors(self) -> None:
        supabase = MagicMock()
        supabase.rpc.return_value.execute.side_effect = Exception(
            '{"code": "23505", "message": "duplicate key value violates unique constraint \\"users_pkey\\""}'
        )

        with pytest.raises(IndexCreationError) as exc_info:
            asyncio.run(SupabaseVectorIndex(supabase).create_index("kb", 3))

        assert not isinstance(exc_info.value, IndexAlreadyExistsError)

    def test_create_function_guards_existing_tables(self) -> None:
        assert "to_regclass" in VECTOR_INDEX_FUNCTIONS_SQL
        assert "duplicate_table" in VECTOR_INDEX_FUNCTIONS_SQL

    def test_ensure_index_swallows_duplicate_table(self) -> None:
        supabase = MagicMock()
        supabase.rpc.return_value.execute.side_effect = Exception("42P07 duplicate_table")

        assert asyncio.run(ensure_index(SupabaseVectorIndex(supabase), "kb", 3)) is False

    def test_other_create_failures_raise_index_creation_error(self) -> None:
        supabase = MagicMock()
        supabase.rpc.return_value.execute.side_effect = Exception("permission denied")

        with pytest.raises(IndexCreationError) as exc_info:
            asyncio.run(SupabaseVectorIndex(supabase).create_index("kb", 3))

        assert not isinstance(exc_info.value, IndexAlreadyExistsError)

    def test_upsert_sends_sanitized_table_and_rows(self) -> None:
        supabase = MagicMock()
        supabase.rpc.return_value.execute.return_value = MagicMock(data=1)

        count = asyncio.run(SupabaseVectorIndex(supabase).upsert(
            "Wegic Knowledge", [IndexedRecord([0.5, 0.5], {"text": "t"})]
        ))

        assert count == 1
        supabase.rpc.assert_called_once_with(
            "upsert_vectors",
            {"index_name": "wegic_knowledge", "records": [{"embedding": [0.5, 0.5], "metadata": {"text": "t"}}]},
        )

    def test_upsert_failure_raises_upsert_error(self) -> None:
        supabase = MagicMock()
        supabase.rpc.return_value.execute.side_effect = Exception("connection reset")

        with pytest.raises(UpsertError):
            asyncio.run(SupabaseVectorIndex(supabase).upsert("kb", [IndexedRecord([1.0], {})]))

    def test_query_returns_rows(self) -> None:
        supabase = MagicMock()
        rows = [{"metadata": {"text": "a"}, "score": 0.9}]
        supabase.rpc.return_value.execute.return_value = MagicMock(data=rows)

        hits = asyncio.run(SupabaseVectorIndex(supabase).query("kb", [1.0], 5))

        assert hits == rows
        supabase.rpc.assert_called_once_with(
            "query_vectors",
            {"index_name": "kb", "query_embedding": [1.0], "match_count": 5},
        )
