"""
Shared dependencies for dependency injection.

This module provides reusable dependencies for FastAPI routes: the
configuration provider and the process-wide review orchestrator.
"""

from functools import lru_cache

from review_agent.agents.reviewer import ReviewOrchestrator
from review_agent.config import ConfigProvider, settings
from review_agent.observability.errors import get_error_tracker
from review_agent.observability.metrics import get_metrics_collector


@lru_cache()
def get_config_provider() -> ConfigProvider:
    """
    Provides the configuration provider built from application settings.

    Returns:
        ConfigProvider: Shared provider instance.
    """
    return ConfigProvider.from_settings(settings)


@lru_cache()
def get_orchestrator() -> ReviewOrchestrator:
    """
    Provides the review orchestrator.

    One instance per process, so the single-flight guard covers every
    request.

    Returns:
        ReviewOrchestrator: Shared orchestrator instance.
    """
    return ReviewOrchestrator(
        config_provider=get_config_provider(),
        metrics=get_metrics_collector(),
        error_tracker=get_error_tracker(),
        max_retries=settings.LLM_MAX_RETRIES,
    )
