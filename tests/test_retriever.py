"""Tests for retrieval response normalization and the knowledge retriever."""

import asyncio
import json

import pytest

from content_engine.services.errors import EmptyRetrievalError, RetrievalError
from content_engine.services.rag.ingestion import IngestionPipeline
from content_engine.services.rag.retriever import (
    KnowledgeRetriever,
    MatchesResponse,
    MatchList,
    RetrievedPassage,
    TextResponse,
    normalize_response,
    parse_response,
    passages_to_text,
)
from conftest import DIMENSION


class TestParseResponse:

    def test_list_is_match_list(self) -> None:
        assert isinstance(parse_response([{"text": "a"}]), MatchList)

    def test_matches_key_is_matches_response(self) -> None:
        assert isinstance(parse_response({"matches": []}), MatchesResponse)

    def test_text_key_is_text_response(self) -> None:
        parsed = parse_response({"content": "hello", "source": "faq"})

        assert parsed == TextResponse(text="hello", source="faq")

    @pytest.mark.parametrize("raw", [{}, {"text": ""}, None, 42, "plain string"])
    def test_unknown_shapes_raise(self, raw) -> None:
        with pytest.raises(EmptyRetrievalError):
            parse_response(raw)


class TestNormalizeResponse:

    def test_all_shapes_yield_the_same_text(self) -> None:
        shapes = [
            [{"metadata": {"text": "Custom domains are in settings.", "source": "faq"}, "score": 0.9}],
            {"matches": [{"text": "Custom domains are in settings.", "source": "faq", "similarity": 0.9}]},
            {"text": "Custom domains are in settings.", "source": "faq"},
        ]

        texts = [passages_to_text(normalize_response(parse_response(s))) for s in shapes]

        assert texts == ["Custom domains are in settings."] * 3

    def test_preserves_order_and_reads_scores(self) -> None:
        raw = [
            {"metadata": {"text": "first", "source": "a"}, "score": 0.9},
            {"metadata": {"text": "second", "original_path": "/b"}, "score": "0.5"},
        ]

        passages = normalize_response(parse_response(raw))

        assert passages == [
            RetrievedPassage("first", "a", 0.9),
            RetrievedPassage("second", "/b", 0.5),
        ]

    def test_items_without_text_are_skipped(self) -> None:
        raw = [{"metadata": {}}, {"metadata": {"text": "kept"}}, {"score": 0.3}]

        passages = normalize_response(parse_response(raw))

        assert [p.text for p in passages] == ["kept"]

    @pytest.mark.parametrize("raw", [[], {"matches": []}, [{"metadata": {"text": "   "}}]])
    def test_no_usable_text_raises(self, raw) -> None:
        with pytest.raises(EmptyRetrievalError):
            normalize_response(parse_response(raw))

    def test_passages_are_joined_with_blank_lines(self) -> None:
        passages = [RetrievedPassage("one"), RetrievedPassage("two")]

        assert passages_to_text(passages) == "one\n\ntwo"


class TestKnowledgeRetriever:

    def _seeded(self, embedding_client, vector_index) -> KnowledgeRetriever:
        pipeline = IngestionPipeline(embedding_client, vector_index, dimension=DIMENSION)

        async def seed():
            await pipeline.ingest("custom domain setup guide", source="domain", index_name="kb")
            await pipeline.ingest("pricing plans and billing", source="pricing", index_name="kb")

        asyncio.run(seed())
        return KnowledgeRetriever(embedding_client, vector_index, "kb")

    def test_best_match_comes_first(self, embedding_client, vector_index) -> None:
        retriever = self._seeded(embedding_client, vector_index)

        passages = asyncio.run(retriever.retrieve("custom domain setup guide", top_k=2))

        assert passages[0].source == "domain"
        assert passages[0].similarity == pytest.approx(1.0)
        assert passages[0].similarity >= passages[1].similarity

    def test_top_k_limits_results(self, embedding_client, vector_index) -> None:
        retriever = self._seeded(embedding_client, vector_index)

        passages = asyncio.run(retriever.retrieve("pricing", top_k=1))

        assert len(passages) == 1

    def test_empty_index_raises_empty_retrieval(self, embedding_client, vector_index) -> None:
        asyncio.run(vector_index.create_index("kb", DIMENSION))
        retriever = KnowledgeRetriever(embedding_client, vector_index, "kb")

        with pytest.raises(EmptyRetrievalError):
            asyncio.run(retriever.retrieve("anything"))

    @pytest.mark.parametrize("query, top_k", [("", 3), ("   ", 3), ("pricing", 0)])
    def test_invalid_arguments_raise(self, embedding_client, vector_index, query, top_k) -> None:
        retriever = KnowledgeRetriever(embedding_client, vector_index, "kb")

        with pytest.raises(RetrievalError):
            asyncio.run(retriever.retrieve(query, top_k))

    def test_agent_tool_returns_json_results(self, embedding_client, vector_index) -> None:
        retriever = self._seeded(embedding_client, vector_index)
        tool = retriever.as_agent_tool()

        payload = json.loads(asyncio.run(tool.handler(query="pricing plans", limit=1)))

        assert tool.name == "knowledge_query"
        assert tool.parameters["required"] == ["query"]
        assert len(payload["results"]) == 1
        assert payload["results"][0]["source"] == "pricing"

    @pytest.mark.parametrize("limit, expected", [("2", 2), (0, 1)])
    def test_agent_tool_coerces_limit(self, embedding_client, vector_index, limit, expected) -> None:
        retriever = self._seeded(embedding_client, vector_index)
        tool = retriever.as_agent_tool()

        arguments = tool.coerce_arguments({"query": "pricing plans", "limit": limit, "topK": 9})
        payload = json.loads(asyncio.run(tool.handler(**arguments)))

        assert len(payload["results"]) == expected
