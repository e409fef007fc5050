"""
API package for the code review agent.

This package contains all API route handlers.
"""

from review_agent.api import health, reviews

__all__ = ["health", "reviews"]
