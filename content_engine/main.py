import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from content_engine.config import Settings, load_settings
from content_engine.core.logging_config import setup_logging
from content_engine.dependencies import Services, build_services
from content_engine.exception_handlers import register_exception_handlers

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    services: Optional[Services] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Explicit settings (loaded from the environment when omitted)
        services: Prebuilt services, mainly for tests
    """
    if services is not None:
        settings = services.settings
    elif settings is None:
        settings = load_settings()

    setup_logging(log_dir=settings.log_dir)

    app = FastAPI(
        title="Content Engine API",
        description="Knowledge ingestion, retrieval and article generation workflows",
        version="1.0.0",
    )
    app.state.services = services or build_services(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Adjust this for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Import and register routers
    from content_engine.api.routers import agent, health, knowledge, workflows
    app.include_router(health.router, prefix="/api")
    app.include_router(knowledge.router, prefix="/api")
    app.include_router(agent.router, prefix="/api")
    app.include_router(workflows.router, prefix="/api")

    logger.info(
        f"Content engine ready: index={settings.knowledge_index}, model={settings.chat_model}"
    )
    return app
