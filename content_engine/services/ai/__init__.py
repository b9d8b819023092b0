"""
AI service module.

Usage:
    from content_engine.services.ai import ChatClient, EmbeddingClient, ContentAgent

    chat = ChatClient.from_settings(settings)
    embedding = EmbeddingClient.from_settings(settings)

    vectors = await embedding.embed_batch(texts)
    response = await ContentAgent(chat, instructions).generate(prompt)
"""

from .agent import AgentResponse, AgentTool, ContentAgent
from .clients import ChatClient, EmbeddingClient, build_openai_client
from .retry import RetryPolicy

__all__ = [
    "AgentResponse",
    "AgentTool",
    "ContentAgent",
    "ChatClient",
    "EmbeddingClient",
    "build_openai_client",
    "RetryPolicy",
]
