"""
Service wiring and FastAPI dependencies.

Services are built once per application from an explicit Settings object and
kept on `app.state.services`; route handlers receive them through Depends.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, Request

from content_engine.config import Settings
from content_engine.services.ai import ChatClient, ContentAgent, EmbeddingClient
from content_engine.services.db.vector_index import (
    InMemoryVectorIndex,
    SupabaseVectorIndex,
    VectorIndex,
)
from content_engine.services.rag import IngestionPipeline, KnowledgeRetriever
from content_engine.services.workflow import (
    ArticleWorkflow,
    build_article_workflow,
    build_content_agent,
)
from content_engine.supabase_client import get_service_client

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    chat_client: ChatClient
    embedding_client: EmbeddingClient
    vector_index: VectorIndex


def build_vector_index(settings: Settings) -> VectorIndex:
    """Supabase/pgvector when configured, otherwise a process-local index."""
    if settings.supabase_url and settings.supabase_key:
        return SupabaseVectorIndex(get_service_client(settings))

    logger.warning("Supabase is not configured, using an in-memory vector index")
    return InMemoryVectorIndex()


def build_services(settings: Settings) -> Services:
    return Services(
        settings=settings,
        chat_client=ChatClient.from_settings(settings),
        embedding_client=EmbeddingClient.from_settings(settings),
        vector_index=build_vector_index(settings),
    )


# =============================================================================
# Dependencies
# =============================================================================

def get_services(request: Request) -> Services:
    return request.app.state.services


def get_settings(services: Services = Depends(get_services)) -> Settings:
    return services.settings


def get_ingestion_pipeline(services: Services = Depends(get_services)) -> IngestionPipeline:
    return IngestionPipeline.from_settings(
        services.settings, services.embedding_client, services.vector_index
    )


def get_retriever(services: Services = Depends(get_services)) -> KnowledgeRetriever:
    return KnowledgeRetriever(
        services.embedding_client,
        services.vector_index,
        services.settings.knowledge_index,
    )


def get_article_workflow(
    services: Services = Depends(get_services),
    retriever: KnowledgeRetriever = Depends(get_retriever),
) -> ArticleWorkflow:
    agent = build_content_agent(services.chat_client, retriever, services.settings)
    return build_article_workflow(agent, retriever, services.settings)


AgentFactory = Callable[[Optional[str]], ContentAgent]


def get_agent_factory(services: Services = Depends(get_services)) -> AgentFactory:
    """Builds a content agent that searches the given index (or the configured one)."""

    def build(index_name: Optional[str] = None) -> ContentAgent:
        retriever = KnowledgeRetriever(
            services.embedding_client,
            services.vector_index,
            index_name or services.settings.knowledge_index,
        )
        return build_content_agent(services.chat_client, retriever, services.settings)

    return build
