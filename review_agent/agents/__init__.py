"""
Agent module for orchestrating code reviews.

This module provides:
- Single-flight review orchestration with deadline and cancellation
- Commit gate policy over review outcomes
"""

from review_agent.agents.reviewer import (
    ReviewHandle,
    ReviewOrchestrator,
    ReviewOutcome,
    ReviewState,
    SingleFlight,
    should_review_file,
)
from review_agent.agents.gate import GateDecision, evaluate_gate

__all__ = [
    "ReviewHandle",
    "ReviewOrchestrator",
    "ReviewOutcome",
    "ReviewState",
    "SingleFlight",
    "should_review_file",
    "GateDecision",
    "evaluate_gate",
]
