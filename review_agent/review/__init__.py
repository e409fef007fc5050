"""
Review output module.

This module provides:
- Parsing of model replies into issues
- Markdown and console formatters for reports
"""

from review_agent.review.parser import ParsedReview, ReviewParser
from review_agent.review.formatter import format_console_report, format_review_markdown

__all__ = [
    "ParsedReview",
    "ReviewParser",
    "format_console_report",
    "format_review_markdown",
]
