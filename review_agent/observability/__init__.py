"""
Observability module for logging, metrics, and error tracking.

This module provides:
- Structured logging setup
- Review and LLM metrics collection
- Error tracking and reporting
"""

from review_agent.observability.logging import setup_logging, get_logger, LogContext
from review_agent.observability.metrics import MetricsCollector, MetricNames, get_metrics_collector
from review_agent.observability.errors import ErrorTracker, get_error_tracker, capture_exception

__all__ = [
    "setup_logging",
    "get_logger",
    "LogContext",
    "MetricsCollector",
    "MetricNames",
    "get_metrics_collector",
    "ErrorTracker",
    "get_error_tracker",
    "capture_exception",
]
