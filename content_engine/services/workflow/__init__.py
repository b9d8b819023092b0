"""
Workflow engine and the article workflow.

Usage:
    from content_engine.services.workflow import ArticleWorkflow, BrandProfile

    workflow = ArticleWorkflow(agent, retriever, BrandProfile("Wegic", "wegic.ai"))
    run = await workflow.engine().start({"topic": "AI website creation"})
"""

from .article import (
    ArticleWorkflow,
    BrandProfile,
    assemble_article,
    build_article_workflow,
    build_content_agent,
    parse_outline,
    word_count,
)
from .engine import StepDefinition, WorkflowDefinition, WorkflowEngine
from .state import StepContext, StepStatus, WorkflowRun

__all__ = [
    "ArticleWorkflow",
    "BrandProfile",
    "assemble_article",
    "build_article_workflow",
    "build_content_agent",
    "parse_outline",
    "word_count",
    "StepDefinition",
    "WorkflowDefinition",
    "WorkflowEngine",
    "StepContext",
    "StepStatus",
    "WorkflowRun",
]
