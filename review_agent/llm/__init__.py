"""
LLM integration module for code review.

This module provides:
- Severity, issue and report schemas
- Prompt construction for review requests
- HTTP transport to OpenAI-compatible chat endpoints
"""

from review_agent.llm.schemas import (
    REVIEW_ERROR_RULE_ID,
    Issue,
    ReviewFocus,
    ReviewLanguage,
    ReviewReport,
    Severity,
)
from review_agent.llm.prompts import build_review_prompt
from review_agent.llm.model import (
    ConfigError,
    LLMClient,
    LLMError,
    ProtocolError,
    TransportError,
    get_llm_client,
)

__all__ = [
    "REVIEW_ERROR_RULE_ID",
    "Issue",
    "ReviewFocus",
    "ReviewLanguage",
    "ReviewReport",
    "Severity",
    "build_review_prompt",
    "ConfigError",
    "LLMClient",
    "LLMError",
    "ProtocolError",
    "TransportError",
    "get_llm_client",
]
