"""
Content agent API routes: free-form questions and writing requests answered
with the knowledge query tool.
"""

import logging

from fastapi import APIRouter, Depends

from content_engine.dependencies import AgentFactory, get_agent_factory
from content_engine.schemas.knowledge import (
    AgentGenerateRequest,
    AgentGenerateResponse,
    AgentToolCall,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/agent", tags=["agent"])


@router.post("/generate", response_model=AgentGenerateResponse)
async def generate(
    request: AgentGenerateRequest,
    build_agent: AgentFactory = Depends(get_agent_factory),
):
    """
    Run one agent generation.

    GenerationError maps to 502 through the global handlers.
    """
    agent = build_agent(request.index_name)
    response = await agent.generate(request.prompt)
    logger.info(f"Agent answered with {len(response.tool_calls)} tool calls")
    return AgentGenerateResponse(
        text=response.text,
        tool_calls=[AgentToolCall(**call) for call in response.tool_calls],
    )
