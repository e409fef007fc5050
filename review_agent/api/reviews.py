"""
Review endpoints.

Runs a code review synchronously for the request and returns the
structured report. Only one review runs at a time per process.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from review_agent.agents.reviewer import ReviewOrchestrator, ReviewState
from review_agent.config import ConfigProvider, settings
from review_agent.dependencies import get_config_provider, get_orchestrator
from review_agent.llm.model import ConfigError
from review_agent.llm.schemas import ReviewReport
from review_agent.review.formatter import format_review_markdown

logger = logging.getLogger(__name__)

router = APIRouter()


class ReviewRequest(BaseModel):
    """Code to review."""
    code: str = Field(..., min_length=1)
    label: str = Field(default="code-review", description="Name shown in the report")
    timeout_seconds: float = Field(default=settings.REVIEW_TIMEOUT_SECONDS, gt=0, le=300)


class ReviewResponse(BaseModel):
    state: ReviewState
    report: ReviewReport
    markdown: str


class ReviewStatusResponse(BaseModel):
    state: ReviewState
    configured: bool
    settings_summary: str


@router.post(
    "/",
    response_model=ReviewResponse,
    status_code=status.HTTP_200_OK,
    summary="Review code",
    description="Runs an AI review of the submitted code and returns the report"
)
def create_review(
    request: ReviewRequest,
    orchestrator: ReviewOrchestrator = Depends(get_orchestrator),
    config_provider: ConfigProvider = Depends(get_config_provider),
):
    """
    Review the submitted code.

    Declared sync so FastAPI runs the blocking review in its threadpool.

    Raises:
        HTTPException: 400 if the LLM is not configured, 409 if a review
            is already running, 504 if the review timed out
    """
    try:
        outcome = orchestrator.run(request.code, request.label, timeout=request.timeout_seconds)
    except ConfigError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if outcome is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A code review is already in progress",
        )

    if outcome.state == ReviewState.TIMED_OUT:
        raise HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=outcome.error)

    if outcome.report is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=outcome.error or "Code review failed",
        )

    review_settings = config_provider.get_review_settings()
    return ReviewResponse(
        state=outcome.state,
        report=outcome.report,
        markdown=format_review_markdown(outcome.report, review_settings),
    )


@router.get(
    "/status",
    response_model=ReviewStatusResponse,
    summary="Review status",
    description="Whether a review is running and whether the LLM is configured"
)
async def review_status(
    orchestrator: ReviewOrchestrator = Depends(get_orchestrator),
    config_provider: ConfigProvider = Depends(get_config_provider),
):
    return ReviewStatusResponse(
        state=orchestrator.state,
        configured=config_provider.is_configured(),
        settings_summary=config_provider.get_review_settings().summary_text(),
    )
