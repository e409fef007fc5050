"""
Metrics collection for monitoring and performance tracking.

Provides utilities for recording latency and counters for reviews
and LLM calls.
"""

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from review_agent.config import Settings

logger = logging.getLogger(__name__)


class MetricType(str, Enum):
    """Types of metrics."""
    COUNTER = "counter"
    HISTOGRAM = "histogram"
    TIMER = "timer"


@dataclass
class Metric:
    """Individual metric data point."""

    name: str
    metric_type: MetricType
    value: float
    timestamp: datetime
    tags: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'name': self.name,
            'type': self.metric_type.value,
            'value': self.value,
            'timestamp': self.timestamp.isoformat(),
            'tags': self.tags,
        }


class MetricsCollector:
    """
    Collector for application metrics.

    Keeps the most recent data points in memory plus running counter
    totals, which survive trimming. Review workers record from background
    threads, so updates are serialised.
    """

    def __init__(self, settings: Settings, max_metrics: int = 1000):
        """
        Initialize metrics collector.

        Args:
            settings: Application settings
            max_metrics: Oldest data points are dropped beyond this many
        """
        self.enabled = settings.ENABLE_METRICS
        self.max_metrics = max_metrics
        self.metrics: List[Metric] = []
        self._counter_totals: Dict[str, float] = {}
        self._lock = threading.Lock()
        self._start_time = datetime.now(timezone.utc)

        logger.info(f"Metrics collector initialized (enabled: {self.enabled})")

    def _record(
        self,
        name: str,
        metric_type: MetricType,
        value: float,
        tags: Optional[Dict[str, str]],
    ) -> None:
        if not self.enabled:
            return

        metric = Metric(
            name=name,
            metric_type=metric_type,
            value=value,
            timestamp=datetime.now(timezone.utc),
            tags=tags or {},
        )
        with self._lock:
            self.metrics.append(metric)
            if len(self.metrics) > self.max_metrics:
                del self.metrics[:len(self.metrics) - self.max_metrics]
            if metric_type == MetricType.COUNTER:
                self._counter_totals[name] = self._counter_totals.get(name, 0.0) + value
        logger.debug(f"{metric_type.value.capitalize()} recorded: {name}={value} {tags}")

    def record_counter(
        self,
        name: str,
        value: float = 1.0,
        tags: Optional[Dict[str, str]] = None,
    ) -> None:
        """Record a counter increment (default 1)."""
        self._record(name, MetricType.COUNTER, value, tags)

    def record_histogram(
        self,
        name: str,
        value: float,
        tags: Optional[Dict[str, str]] = None,
    ) -> None:
        """Record an observed value in a distribution."""
        self._record(name, MetricType.HISTOGRAM, value, tags)

    def record_timer(
        self,
        name: str,
        duration_ms: float,
        tags: Optional[Dict[str, str]] = None,
    ) -> None:
        """Record a duration in milliseconds."""
        self._record(name, MetricType.TIMER, duration_ms, tags)

    @contextmanager
    def timer_context(
        self,
        name: str,
        tags: Optional[Dict[str, str]] = None,
    ):
        """
        Context manager for timing code blocks.

        Usage:
            with metrics.timer_context(MetricNames.LLM_RESPONSE_TIME_MS):
                client.call(prompt)
        """
        start_time = time.perf_counter()
        try:
            yield
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            self.record_timer(name, duration_ms, tags)

    def get_metrics(
        self,
        name: Optional[str] = None,
        metric_type: Optional[MetricType] = None,
    ) -> List[Metric]:
        """Get collected metrics, optionally filtered by name and type."""
        with self._lock:
            filtered = list(self.metrics)

        if name:
            filtered = [m for m in filtered if m.name == name]

        if metric_type:
            filtered = [m for m in filtered if m.metric_type == metric_type]

        return filtered

    def counter_total(self, name: str) -> float:
        """Running total for a counter, including trimmed data points."""
        with self._lock:
            return self._counter_totals.get(name, 0.0)

    def get_metric_summary(self) -> Dict[str, Any]:
        """
        Get summary of collected metrics.

        Returns:
            Summary statistics
        """
        metrics = self.get_metrics()
        with self._lock:
            counter_totals = dict(self._counter_totals)

        type_counts: Dict[str, int] = {}
        for metric in metrics:
            type_counts[metric.metric_type.value] = type_counts.get(metric.metric_type.value, 0) + 1

        timer_values = [m.value for m in metrics if m.metric_type == MetricType.TIMER]
        timer_stats = {}
        if timer_values:
            timer_stats = {
                'count': len(timer_values),
                'total_ms': sum(timer_values),
                'avg_ms': sum(timer_values) / len(timer_values),
                'min_ms': min(timer_values),
                'max_ms': max(timer_values),
            }

        return {
            'total_metrics': len(metrics),
            'counter_totals': counter_totals,
            'type_counts': type_counts,
            'timer_stats': timer_stats,
            'uptime_seconds': (datetime.now(timezone.utc) - self._start_time).total_seconds(),
        }

    def clear_metrics(self) -> None:
        """Clear all collected metrics."""
        with self._lock:
            self.metrics = []
            self._counter_totals = {}
        logger.info("Metrics cleared")


class MetricNames:
    """Standard metric names used throughout the application."""

    # Review metrics
    REVIEW_STARTED = "review.started"
    REVIEW_COMPLETED = "review.completed"
    REVIEW_FAILED = "review.failed"
    REVIEW_TIMED_OUT = "review.timed_out"
    REVIEW_CANCELLED = "review.cancelled"
    REVIEW_REJECTED = "review.rejected"
    REVIEW_DURATION_MS = "review.duration_ms"
    REVIEW_ISSUES = "review.issues"

    # LLM metrics
    LLM_REQUEST = "llm.request"
    LLM_RESPONSE_TIME_MS = "llm.response_time_ms"
    LLM_ERROR = "llm.error"


# Global metrics collector instance
_metrics_collector: Optional[MetricsCollector] = None


def get_metrics_collector() -> MetricsCollector:
    """
    Get the global metrics collector instance.

    Raises:
        RuntimeError: If collector not initialized
    """
    if _metrics_collector is None:
        raise RuntimeError("Metrics collector not initialized. Call setup_metrics() first.")
    return _metrics_collector


def setup_metrics(settings: Settings) -> MetricsCollector:
    """
    Initialize the global metrics collector.

    Args:
        settings: Application settings

    Returns:
        Initialized MetricsCollector
    """
    global _metrics_collector
    _metrics_collector = MetricsCollector(settings)
    return _metrics_collector
