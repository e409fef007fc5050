"""
FastAPI entrypoint for the AI Code Review Agent.

This module initializes the FastAPI application and registers all routes.
"""

import logging

from fastapi import FastAPI

from review_agent import __version__
from review_agent.api import health, reviews
from review_agent.config import settings
from review_agent.dependencies import get_config_provider, get_orchestrator
from review_agent.observability.errors import setup_error_tracking
from review_agent.observability.logging import setup_logging
from review_agent.observability.metrics import setup_metrics

# Initialize structured logging
setup_logging(settings)
setup_error_tracking(settings)
setup_metrics(settings)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="AI Code Review Agent",
    description="Sends source code to an LLM for review and returns structured issues",
    version=__version__,
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None,
)

# Register routes
app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(reviews.router, prefix="/reviews", tags=["reviews"])


@app.on_event("startup")
async def startup_event():
    """
    Runs on application startup.
    Reports whether the LLM is configured.
    """
    logger.info(
        "AI Code Review Agent starting",
        extra={
            "environment": settings.ENVIRONMENT,
            "llm_configured": get_config_provider().is_configured(),
        }
    )


@app.on_event("shutdown")
async def shutdown_event():
    """
    Runs on application shutdown.
    Stops the review worker pool.
    """
    logger.info("AI Code Review Agent shutting down")
    if get_orchestrator.cache_info().currsize:
        get_orchestrator().shutdown()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "review_agent.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.ENVIRONMENT == "development",
    )
