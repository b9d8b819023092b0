"""
Workflow API routes.
"""

import logging

from fastapi import APIRouter, Depends

from content_engine.dependencies import get_article_workflow
from content_engine.exceptions import WorkflowFailedError
from content_engine.schemas.knowledge import ArticleRunRequest, ArticleRunResponse
from content_engine.services.errors import format_error_message
from content_engine.services.workflow import ArticleWorkflow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workflows", tags=["workflows"])


@router.post("/article/runs", response_model=ArticleRunResponse)
async def run_article_workflow(
    request: ArticleRunRequest,
    workflow: ArticleWorkflow = Depends(get_article_workflow),
):
    """
    Run the article workflow to completion.

    A failed run returns 502 with the failing step id; no partial article is
    returned.
    """
    run = await workflow.engine().start({"topic": request.topic})

    if not run.succeeded:
        cause = getattr(run.exception, "cause", None)
        reason = format_error_message(cause) if cause else (run.error or "unknown error")
        raise WorkflowFailedError(run.failed_step or "unknown", reason)

    return ArticleRunResponse(
        run_id=run.run_id,
        status=run.status.value,
        steps={k: v.value for k, v in run.statuses.items()},
        result=run.results["finalize"],
    )
