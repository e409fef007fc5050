"""
Health check endpoint.

Provides application health status and readiness checks.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from review_agent import __version__
from review_agent.config import ConfigProvider, settings
from review_agent.dependencies import get_config_provider

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    timestamp: datetime
    environment: str
    version: str
    checks: Dict[str, Any]


@router.get(
    "/",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
    description="Returns basic application health status"
)
async def health_check():
    """
    Basic health check endpoint.

    Returns:
        HealthResponse: Application health status.
    """
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        environment=settings.ENVIRONMENT,
        version=__version__,
        checks={
            "api": "ok"
        }
    )


@router.get(
    "/ready",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Readiness check",
    description="Returns readiness status with LLM configuration checks"
)
async def readiness_check(config_provider: ConfigProvider = Depends(get_config_provider)):
    """
    Readiness check endpoint.

    Verifies that the LLM endpoint is configured well enough to attempt
    a review. Nothing is sent to the LLM.

    Returns:
        HealthResponse: Readiness status with configuration checks.
    """
    llm_config = config_provider.get_llm_config()

    checks = {
        "llm_provider": llm_config.provider,
        "llm_api_key": "ok" if llm_config.api_key.strip() else "missing",
        "llm_api_url": "ok" if llm_config.api_url.strip() else "missing",
        "llm_model": "ok" if llm_config.model.strip() else "missing",
        "llm_proxy": "configured" if llm_config.has_proxy else "not_configured",
    }

    critical_checks = [checks["llm_api_key"], checks["llm_api_url"], checks["llm_model"]]
    overall_status = "ready" if all(c == "ok" for c in critical_checks) else "not_ready"

    return HealthResponse(
        status=overall_status,
        timestamp=datetime.now(timezone.utc),
        environment=settings.ENVIRONMENT,
        version=__version__,
        checks=checks
    )


@router.get(
    "/live",
    status_code=status.HTTP_200_OK,
    summary="Liveness check",
    description="Simple liveness probe for container orchestration"
)
async def liveness_check():
    """
    Liveness check endpoint.

    Returns:
        dict: Simple status response.
    """
    return {"status": "alive"}
