"""
Structured logging configuration.

Provides JSON-formatted logging for production and readable console
logging otherwise. Both formatters attach the review being run (label,
provider, model) from the current LogContext.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from contextvars import ContextVar
from typing import Any, Dict, Tuple

from review_agent.config import Settings


# Context variable for storing review/operation context
log_context: ContextVar[Dict[str, Any]] = ContextVar('log_context', default={})

# Review fields and their short labels in console output
REVIEW_CONTEXT_FIELDS = {
    'review_label': 'review',
    'llm_provider': 'provider',
    'llm_model': 'model',
}

# Attributes every LogRecord has; anything else came in through `extra`
_RECORD_ATTRIBUTES = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
}


def split_review_context(context: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Separate review fields from any other context."""
    review = {k: context[k] for k in REVIEW_CONTEXT_FIELDS if k in context}
    other = {k: v for k, v in context.items() if k not in REVIEW_CONTEXT_FIELDS}
    return review, other


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Formats log records as JSON with additional context fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        review, context = split_review_context(log_context.get())
        if review:
            log_data['review'] = review
        if context:
            log_data['context'] = context

        if record.exc_info and record.exc_info[0] is not None:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': self.formatException(record.exc_info),
            }

        # Fields passed through `extra=`
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRIBUTES and key not in log_data:
                log_data[key] = value

        # Add source location for errors and above
        if record.levelno >= logging.ERROR:
            log_data['source'] = {
                'file': record.pathname,
                'line': record.lineno,
                'function': record.funcName,
            }

        return json.dumps(log_data, default=str)


class ContextFormatter(logging.Formatter):
    """
    Human-readable formatter with context.

    Review fields come first under their short labels, e.g.
    `Calling LLM API [review=commit-review model=gpt-4] [attempt=2]`.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with context."""
        base_msg = super().format(record)

        review, context = split_review_context(log_context.get())
        if review:
            review_str = ' '.join(f'{REVIEW_CONTEXT_FIELDS[k]}={v}' for k, v in review.items())
            base_msg = f"{base_msg} [{review_str}]"
        if context:
            context_str = ' '.join(f'{k}={v}' for k, v in context.items())
            base_msg = f"{base_msg} [{context_str}]"

        return base_msg


def setup_logging(settings: Settings) -> None:
    """
    Configure application logging.

    Sets up structured JSON logging for production or human-readable
    logging for development.

    Args:
        settings: Application settings
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)

    if settings.ENVIRONMENT == "production":
        formatter = JSONFormatter()
    else:
        formatter = ContextFormatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Set levels for noisy libraries
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)

    root_logger.info(
        f"Logging configured: level={settings.LOG_LEVEL}, "
        f"environment={settings.ENVIRONMENT}"
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger
    """
    return logging.getLogger(name)


class LogContext:
    """
    Context manager for adding structured context to logs.

    Usage:
        with LogContext(review_label="commit-review"):
            logger.info("Running review")  # Includes context in log
    """

    def __init__(self, **kwargs):
        self.context = kwargs
        self.token = None

    def __enter__(self):
        current = log_context.get().copy()
        current.update(self.context)
        self.token = log_context.set(current)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.token:
            log_context.reset(self.token)


def get_log_context() -> Dict[str, Any]:
    """
    Get the current log context.

    Returns:
        Current context dictionary
    """
    return log_context.get().copy()
