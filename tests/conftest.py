"""Shared fakes for the embedding service, the generation agent and retrieval."""

import hashlib
import json
from typing import Dict, List, Optional

import pytest

from content_engine.config import ChunkingConfig, Settings
from content_engine.services.ai.agent import AgentResponse
from content_engine.services.db.vector_index import InMemoryVectorIndex
from content_engine.services.errors import EmbeddingError, EmptyRetrievalError

DIMENSION = 8

OUTLINE = {
    "seoMetadata": {
        "title": "Build Your Site in Minutes",
        "description": "How AI website creation works",
        "keywords": ["ai website builder", "no-code"],
    },
    "sections": [
        {"title": "Chat to Build", "wordCount": 400, "keyPoints": ["speed"], "productFeatures": ["chat editor"]},
        {"title": "Custom Domains", "wordCount": 300, "keyPoints": ["branding"], "productFeatures": ["domains"]},
        {"title": "Publishing", "wordCount": 300, "keyPoints": ["go live"], "productFeatures": ["hosting"]},
    ],
}

# Prompt marker -> scripted reply, one per generative article step
ARTICLE_REPLIES = {
    "Create a detailed outline": "Here is the outline:\n```json\n" + json.dumps(OUTLINE) + "\n```",
    "Write a compelling": "Intro paragraph with seven words here.",
    "first part": "Main one text of five.",
    "second part": "Main two has four",
    "benefits and features section": "Saves time and money",
    "powerful conclusion": "Try it today.",
}


class FakeEmbeddingClient:
    """Deterministic bag-of-words vectors; fails for texts containing `fail_marker`."""

    def __init__(self, dimension: int = DIMENSION, fail_marker: Optional[str] = None):
        self.dimension = dimension
        self.fail_marker = fail_marker
        self.batches: List[List[str]] = []

    def _vector(self, text: str) -> List[float]:
        vector = [0.0] * self.dimension
        for word in text.lower().split():
            bucket = int(hashlib.md5(word.encode()).hexdigest(), 16) % self.dimension
            vector[bucket] += 1.0
        return vector

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        self.batches.append(list(texts))
        if self.fail_marker and any(self.fail_marker in t for t in texts):
            raise EmbeddingError("embedding service rejected the batch")
        return [self._vector(t) for t in texts]

    async def embed(self, text: str) -> List[float]:
        return (await self.embed_batch([text]))[0]


class ShortEmbeddingClient(FakeEmbeddingClient):
    """Returns one vector fewer than requested."""

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        vectors = await super().embed_batch(texts)
        return vectors[:-1]


class FakeAgent:
    """
    Returns scripted replies: the first matching marker wins, otherwise
    `default`. Records every prompt.
    """

    def __init__(self, replies: Dict[str, str], default: str = "generated text"):
        self.replies = replies
        self.default = default
        self.prompts: List[str] = []

    async def generate(self, prompt: str) -> AgentResponse:
        self.prompts.append(prompt)
        for marker, reply in self.replies.items():
            if marker in prompt:
                return AgentResponse(text=reply)
        return AgentResponse(text=self.default)

    def calls_containing(self, marker: str) -> int:
        return sum(1 for p in self.prompts if marker in p)


class FakeRetriever:
    """retrieve_text stub; queries containing `fail_marker` find nothing."""

    def __init__(self, text: str = "Knowledge passage.", fail_marker: Optional[str] = None):
        self.text = text
        self.fail_marker = fail_marker
        self.queries: List[tuple] = []

    async def retrieve_text(self, query: str, top_k: Optional[int] = None) -> str:
        self.queries.append((query, top_k))
        if self.fail_marker and self.fail_marker in query:
            raise EmptyRetrievalError("Retrieval response contained no usable text")
        return self.text


@pytest.fixture
def settings() -> Settings:
    return Settings(
        openai_api_key="sk-test",
        embedding_dimension=DIMENSION,
        knowledge_index="test_knowledge",
        chunking=ChunkingConfig(size=64, overlap=8, separator="\n"),
    )


@pytest.fixture
def embedding_client() -> FakeEmbeddingClient:
    return FakeEmbeddingClient()


@pytest.fixture
def vector_index() -> InMemoryVectorIndex:
    return InMemoryVectorIndex()
