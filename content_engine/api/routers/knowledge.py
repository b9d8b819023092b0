"""
Knowledge base API routes: ingest text and query the vector index.
"""

import logging

from fastapi import APIRouter, Depends

from content_engine.config import Settings
from content_engine.dependencies import get_ingestion_pipeline, get_retriever, get_settings
from content_engine.schemas.knowledge import (
    IngestRequest,
    IngestResponse,
    KnowledgeQueryRequest,
    KnowledgeQueryResponse,
    PassageItem,
)
from content_engine.services.rag import IngestionPipeline, KnowledgeRetriever

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/knowledge", tags=["knowledge"])


@router.post("/ingest", response_model=IngestResponse)
async def ingest(
    request: IngestRequest,
    pipeline: IngestionPipeline = Depends(get_ingestion_pipeline),
    settings: Settings = Depends(get_settings),
):
    """
    Chunk, embed and store one document.

    Pipeline errors are mapped to HTTP responses by the global handlers.
    """
    index_name = request.index_name or settings.knowledge_index
    chunks = await pipeline.ingest(
        request.content,
        source=request.source,
        index_name=index_name,
        doc_type=request.doc_type,
    )
    return IngestResponse(source=request.source, index_name=index_name, chunks=chunks)


@router.post("/query", response_model=KnowledgeQueryResponse)
async def query(
    request: KnowledgeQueryRequest,
    retriever: KnowledgeRetriever = Depends(get_retriever),
):
    """Top-k passages for a query, best match first."""
    passages = await retriever.retrieve(request.query, request.top_k)
    return KnowledgeQueryResponse(
        query=request.query,
        passages=[PassageItem(**p.to_dict()) for p in passages],
        total=len(passages),
    )
