"""
Knowledge base, agent and workflow API models.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from content_engine.schemas.article import ArticleResult


# =============================================================================
# Request Models
# =============================================================================

class IngestRequest(BaseModel):
    """Ingest one text document"""

    content: str = Field(..., min_length=1, description="Document text")
    source: str = Field(..., min_length=1, max_length=500, description="Source identifier")
    index_name: Optional[str] = Field(default=None, description="Target index (defaults to the configured index)")
    doc_type: Optional[str] = Field(default=None, description="Content type stored with each chunk")


class KnowledgeQueryRequest(BaseModel):
    """Knowledge base query"""

    query: str = Field(..., min_length=1, max_length=2000, description="Query text")
    top_k: int = Field(default=5, ge=1, le=50, description="Number of passages to return")


class ArticleRunRequest(BaseModel):
    """Article workflow trigger"""

    topic: str = Field(..., min_length=1, max_length=500, description="Article topic")


class AgentGenerateRequest(BaseModel):
    """Free-form prompt for the content agent"""

    prompt: str = Field(..., min_length=1, max_length=8000, description="Question or writing request")
    index_name: Optional[str] = Field(default=None, description="Knowledge index the agent searches (defaults to the configured index)")


# =============================================================================
# Response Models
# =============================================================================

class IngestResponse(BaseModel):
    source: str = Field(..., description="Source identifier")
    index_name: str = Field(..., description="Index the chunks were stored in")
    chunks: int = Field(..., description="Number of chunks stored")


class PassageItem(BaseModel):
    text: str = Field(..., description="Passage text")
    source: str = Field(default="", description="Source identifier")
    similarity: float = Field(default=0.0, description="Similarity score reported by the index")


class KnowledgeQueryResponse(BaseModel):
    query: str = Field(..., description="Original query")
    passages: List[PassageItem] = Field(default_factory=list)
    total: int = Field(..., description="Number of passages")


class ArticleRunResponse(BaseModel):
    run_id: str = Field(..., description="Workflow run id")
    status: str = Field(..., description="success or failed")
    steps: Dict[str, str] = Field(default_factory=dict, description="Status per step id")
    result: Optional[ArticleResult] = Field(default=None, description="Finished article")


class AgentToolCall(BaseModel):
    name: str = Field(..., description="Tool the model called")
    arguments: str = Field(default="", description="Raw JSON arguments sent by the model")


class AgentGenerateResponse(BaseModel):
    text: str = Field(..., description="Agent answer")
    tool_calls: List[AgentToolCall] = Field(default_factory=list, description="Tool calls made while answering")
