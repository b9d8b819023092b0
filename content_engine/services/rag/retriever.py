"""
Knowledge retrieval: embed a query, search the vector index, normalize hits.

Vector stores and tools answer in several shapes. Raw payloads are first
classified into one of three known variants and then normalized to
RetrievedPassage:

    MatchList        [{"metadata": {...}, "score": 0.8}, ...]
    TextResponse     {"text": "..."} or {"content": "..."}
    MatchesResponse  {"matches": [...]}

A payload with no usable text raises EmptyRetrievalError.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from content_engine.services.ai.agent import AgentTool
from content_engine.services.ai.clients import EmbeddingClient
from content_engine.services.db.vector_index import VectorIndex
from content_engine.services.errors import EmptyRetrievalError, RetrievalError

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 5
KNOWLEDGE_TOOL_NAME = "knowledge_query"


@dataclass(frozen=True)
class RetrievedPassage:
    text: str
    source: str = ""
    similarity: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "source": self.source, "similarity": self.similarity}


# =============================================================================
# Response variants
# =============================================================================

@dataclass(frozen=True)
class MatchList:
    items: List[Any] = field(default_factory=list)


@dataclass(frozen=True)
class TextResponse:
    text: str
    source: str = ""


@dataclass(frozen=True)
class MatchesResponse:
    matches: List[Any] = field(default_factory=list)


RetrievalResponse = Union[MatchList, TextResponse, MatchesResponse]


def parse_response(raw: Any) -> RetrievalResponse:
    """
    Classify a raw payload into a known response variant.

    Raises:
        EmptyRetrievalError: The payload matches none of the known shapes
    """
    if isinstance(raw, RetrievedPassage):
        return TextResponse(text=raw.text, source=raw.source)

    if isinstance(raw, (list, tuple)):
        return MatchList(items=list(raw))

    if isinstance(raw, Mapping):
        if isinstance(raw.get("matches"), (list, tuple)):
            return MatchesResponse(matches=list(raw["matches"]))
        text = raw.get("text") or raw.get("content")
        if isinstance(text, str):
            return TextResponse(text=text, source=str(raw.get("source") or ""))

    raise EmptyRetrievalError(
        f"Unrecognized retrieval response shape: {type(raw).__name__}"
    )


def _passage_from_item(item: Any) -> Optional[RetrievedPassage]:
    """Normalize one match; None when it carries no text."""
    if isinstance(item, RetrievedPassage):
        return item if item.text.strip() else None

    if isinstance(item, str):
        return RetrievedPassage(text=item) if item.strip() else None

    if not isinstance(item, Mapping):
        return None

    metadata = item.get("metadata") or {}
    if not isinstance(metadata, Mapping):
        metadata = {}

    text = (
        item.get("text")
        or item.get("content")
        or metadata.get("text")
        or metadata.get("content")
        or ""
    )
    if not isinstance(text, str) or not text.strip():
        return None

    source = (
        item.get("source")
        or metadata.get("source")
        or metadata.get("original_path")
        or ""
    )
    score = item.get("score", item.get("similarity"))
    try:
        similarity = float(score) if score is not None else 0.0
    except (TypeError, ValueError):
        similarity = 0.0

    return RetrievedPassage(text=text, source=str(source), similarity=similarity)


def normalize_response(response: RetrievalResponse) -> List[RetrievedPassage]:
    """
    Normalize a classified response, preserving the store's ordering.

    Raises:
        EmptyRetrievalError: No passage with usable text
    """
    if isinstance(response, MatchList):
        items = response.items
    elif isinstance(response, MatchesResponse):
        items = response.matches
    elif isinstance(response, TextResponse):
        items = [{"text": response.text, "source": response.source}]
    else:
        raise TypeError(f"Unknown retrieval response variant: {type(response).__name__}")

    passages = [p for p in (_passage_from_item(item) for item in items) if p is not None]
    if not passages:
        raise EmptyRetrievalError("Retrieval response contained no usable text")
    return passages


def passages_to_text(passages: List[RetrievedPassage]) -> str:
    """Join passage texts with blank lines, the form embedded in prompts."""
    return "\n\n".join(p.text for p in passages)


class KnowledgeRetriever:
    """
    Usage:
        retriever = KnowledgeRetriever(embedding_client, vector_index, "wegic_knowledge")
        passages = await retriever.retrieve("custom domain setup", top_k=3)
        context = await retriever.retrieve_text("pricing plans")
    """

    def __init__(
        self,
        embedding_client: EmbeddingClient,
        vector_index: VectorIndex,
        index_name: str,
        default_top_k: int = DEFAULT_TOP_K,
    ):
        self.embedding_client = embedding_client
        self.vector_index = vector_index
        self.index_name = index_name
        self.default_top_k = default_top_k

    async def retrieve(self, query: str, top_k: Optional[int] = None) -> List[RetrievedPassage]:
        """
        Top-k passages for `query`, in the index's descending-similarity order.

        Raises:
            RetrievalError: Empty query or the index query failed
            EmptyRetrievalError: The index returned nothing usable
            EmbeddingError: The query could not be embedded
        """
        if not query or not query.strip():
            raise RetrievalError("Query must not be empty")

        k = top_k if top_k is not None else self.default_top_k
        if k <= 0:
            raise RetrievalError(f"top_k must be positive, got {k}")

        vector = await self.embedding_client.embed(query)
        raw = await self.vector_index.query(self.index_name, vector, k)

        passages = normalize_response(parse_response(raw))
        logger.info(
            f"Retrieved {len(passages)} passages from {self.index_name} for query: {query[:60]}"
        )
        return passages

    async def retrieve_text(self, query: str, top_k: Optional[int] = None) -> str:
        return passages_to_text(await self.retrieve(query, top_k))

    def as_agent_tool(self) -> AgentTool:
        """Expose retrieval to the generation agent as a function tool."""

        async def _handler(query: str, limit: int = 3) -> str:
            passages = await self.retrieve(query, max(1, int(limit)))
            return json.dumps(
                {"results": [p.to_dict() for p in passages]},
                ensure_ascii=False,
            )

        return AgentTool(
            name=KNOWLEDGE_TOOL_NAME,
            description="Search the product knowledge base for relevant documentation",
            parameters={
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "Search query"},
                    "limit": {
                        "type": "integer",
                        "description": "Number of results to return",
                        "default": 3,
                    },
                },
                "required": ["query"],
            },
            handler=_handler,
        )
