"""
AI Code Review Agent.

Sends source code to an LLM for review and turns the freeform reply into a
structured report of issues.
"""

__version__ = "1.0.0"
