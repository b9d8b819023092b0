"""
RAG services: chunking, ingestion and retrieval.

Usage:
    from content_engine.services.rag import IngestionPipeline, KnowledgeRetriever

    pipeline = IngestionPipeline(embedding_client, vector_index)
    await pipeline.ingest(text, source="faq", index_name="knowledge_base")

    retriever = KnowledgeRetriever(embedding_client, vector_index, "knowledge_base")
    passages = await retriever.retrieve("custom domain", top_k=3)
"""

from .chunker import Chunk, chunk_text, chunk_with_config, reassemble
from .ingestion import IngestionPipeline, IngestSummary
from .retriever import (
    KnowledgeRetriever,
    MatchList,
    MatchesResponse,
    RetrievedPassage,
    TextResponse,
    normalize_response,
    parse_response,
)

__all__ = [
    "Chunk",
    "chunk_text",
    "chunk_with_config",
    "reassemble",
    "IngestionPipeline",
    "IngestSummary",
    "KnowledgeRetriever",
    "MatchList",
    "MatchesResponse",
    "RetrievedPassage",
    "TextResponse",
    "normalize_response",
    "parse_response",
]
