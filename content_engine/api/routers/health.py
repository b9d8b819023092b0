"""
Health check endpoint.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from content_engine.config import Settings
from content_engine.dependencies import get_settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(settings: Settings = Depends(get_settings)):
    """Service status plus the models and index in use."""
    return {
        "status": "healthy",
        "service": "content-engine",
        "chat_model": settings.chat_model,
        "embedding_model": settings.embedding_model,
        "knowledge_index": settings.knowledge_index,
        "vector_store": "supabase" if settings.supabase_url else "memory",
        "checked_at": datetime.now(timezone.utc).isoformat(),
    }
