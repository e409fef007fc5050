"""
Error tracking and reporting.

Provides utilities for capturing, logging, and reporting errors
for debugging and monitoring purposes.
"""

import logging
import threading
import traceback
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from review_agent.config import Settings

logger = logging.getLogger(__name__)


class ErrorSeverity(str, Enum):
    """Error severity levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


_LOG_LEVELS = {
    ErrorSeverity.DEBUG: logging.DEBUG,
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


@dataclass
class ErrorRecord:
    """Record of a captured error."""

    # Error identification
    error_id: str
    timestamp: datetime
    severity: ErrorSeverity

    # Error details
    exception_type: str
    exception_message: str
    traceback: str

    # Context
    context: Dict[str, Any] = field(default_factory=dict)
    tags: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'error_id': self.error_id,
            'timestamp': self.timestamp.isoformat(),
            'severity': self.severity.value,
            'exception_type': self.exception_type,
            'exception_message': self.exception_message,
            'traceback': self.traceback,
            'context': self.context,
            'tags': self.tags,
        }


class ErrorTracker:
    """
    Error tracker for capturing and reporting errors.

    Keeps records in memory; tracebacks stay here and in the logs and are
    never copied into user-facing review reports.
    """

    def __init__(self, settings: Settings, max_records: int = 500):
        """
        Initialize error tracker.

        Args:
            settings: Application settings
            max_records: Oldest records are dropped beyond this many
        """
        self.enabled = settings.ERROR_TRACKING_ENABLED
        self.max_records = max_records
        self.errors: List[ErrorRecord] = []
        self._lock = threading.Lock()

        logger.info(f"Error tracker initialized (enabled: {self.enabled})")

    def capture_exception(
        self,
        exception: BaseException,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: Optional[Dict[str, Any]] = None,
        tags: Optional[Dict[str, str]] = None,
    ) -> str:
        """
        Capture an exception.

        Args:
            exception: The exception to capture
            severity: Error severity level
            context: Additional context data
            tags: Tags for filtering/grouping

        Returns:
            Error ID, or "" when tracking is disabled
        """
        if not self.enabled:
            return ""

        error_id = str(uuid.uuid4())
        exc_type = type(exception).__name__
        exc_message = str(exception)
        exc_traceback = ''.join(traceback.format_exception(
            type(exception), exception, exception.__traceback__
        ))

        error_record = ErrorRecord(
            error_id=error_id,
            timestamp=datetime.now(timezone.utc),
            severity=severity,
            exception_type=exc_type,
            exception_message=exc_message,
            traceback=exc_traceback,
            context=context or {},
            tags=tags or {},
        )

        with self._lock:
            self.errors.append(error_record)
            if len(self.errors) > self.max_records:
                del self.errors[:len(self.errors) - self.max_records]

        logger.log(
            _LOG_LEVELS.get(severity, logging.ERROR),
            f"Error captured: {exc_type}: {exc_message}",
            extra={'error_id': error_id, 'error_context': context, 'tags': tags},
        )

        return error_id

    def get_errors(
        self,
        severity: Optional[ErrorSeverity] = None,
        limit: int = 100,
    ) -> List[ErrorRecord]:
        """
        Get captured errors, most recent first.

        Args:
            severity: Optional severity filter
            limit: Maximum number of errors to return
        """
        with self._lock:
            filtered = list(self.errors)

        if severity:
            filtered = [e for e in filtered if e.severity == severity]

        filtered.sort(key=lambda e: e.timestamp, reverse=True)
        return filtered[:limit]

    def get_error_summary(self) -> Dict[str, Any]:
        """
        Get summary of captured errors.

        Returns:
            Summary statistics
        """
        with self._lock:
            errors = list(self.errors)

        severity_counts: Dict[str, int] = {}
        type_counts: Dict[str, int] = {}
        for error in errors:
            severity_counts[error.severity.value] = severity_counts.get(error.severity.value, 0) + 1
            type_counts[error.exception_type] = type_counts.get(error.exception_type, 0) + 1

        sorted_types = sorted(type_counts.items(), key=lambda x: x[1], reverse=True)

        return {
            'total_errors': len(errors),
            'severity_counts': severity_counts,
            'most_common_types': sorted_types[:10],
            'latest_error': errors[-1].timestamp.isoformat() if errors else None,
        }

    def clear_errors(self) -> None:
        """Clear all captured errors."""
        with self._lock:
            self.errors = []
        logger.info("Error records cleared")


# Global error tracker instance
_error_tracker: Optional[ErrorTracker] = None


def get_error_tracker() -> ErrorTracker:
    """
    Get the global error tracker instance.

    Raises:
        RuntimeError: If tracker not initialized
    """
    if _error_tracker is None:
        raise RuntimeError("Error tracker not initialized. Call setup_error_tracking() first.")
    return _error_tracker


def setup_error_tracking(settings: Settings) -> ErrorTracker:
    """
    Initialize the global error tracker.

    Args:
        settings: Application settings

    Returns:
        Initialized ErrorTracker
    """
    global _error_tracker
    _error_tracker = ErrorTracker(settings)
    return _error_tracker


def capture_exception(
    exception: BaseException,
    severity: ErrorSeverity = ErrorSeverity.ERROR,
    context: Optional[Dict[str, Any]] = None,
    tags: Optional[Dict[str, str]] = None,
) -> str:
    """
    Convenience function to capture an exception.

    Returns:
        Error ID, or "" if the tracker is not initialized
    """
    try:
        tracker = get_error_tracker()
    except RuntimeError:
        # Tracker not initialized - just log
        logger.error(
            f"Error tracker not initialized. Exception: {exception}",
            exc_info=exception,
        )
        return ""
    return tracker.capture_exception(
        exception=exception,
        severity=severity,
        context=context,
        tags=tags,
    )
