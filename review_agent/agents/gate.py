"""
Commit gate.

Decides whether an outer workflow (typically a commit) may proceed after a
review. Anything worth a second look is put to the user through the
`confirm` callback, which returns True to proceed.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from review_agent.agents.reviewer import ReviewOutcome, ReviewState
from review_agent.config import ReviewSettings
from review_agent.llm.schemas import Issue, Severity

logger = logging.getLogger(__name__)


MAX_CRITICAL_LISTED = 5
MAX_WARNINGS_LISTED = 3
PROCEED_QUESTION = "Do you want to proceed with commit?"
NO_ISSUES_MESSAGE = "No issues found. Code looks good!"

Confirm = Callable[[str], bool]


@dataclass
class GateDecision:
    proceed: bool
    reason: str
    prompted: bool = False


def _issue_line(issue: Issue) -> str:
    line = f"• {issue.message}"
    if issue.has_line_number():
        line += f" (Line {issue.line_number})"
    return line


def _listing(issues: List[Issue], limit: int) -> List[str]:
    return [_issue_line(issue) for issue in issues[:limit]]


def _ask(confirm: Confirm, message: str, reason: str) -> GateDecision:
    proceed = bool(confirm(message))
    logger.info(f"Gate asked user ({reason}): {'proceed' if proceed else 'cancel'}")
    return GateDecision(proceed=proceed, reason=reason, prompted=True)


def critical_issues_message(issues: List[Issue]) -> str:
    lines = ["Critical issues found in your code:", ""]
    lines.extend(_listing(issues, MAX_CRITICAL_LISTED))
    if len(issues) > MAX_CRITICAL_LISTED:
        lines.extend(["", "... and more issues"])
    lines.extend(["", PROCEED_QUESTION])
    return "\n".join(lines)


def warning_issues_message(issues: List[Issue]) -> str:
    lines = [f"Found {len(issues)} warning(s) in your code:", ""]
    lines.extend(_listing(issues, MAX_WARNINGS_LISTED))
    if len(issues) > MAX_WARNINGS_LISTED:
        lines.extend(["", f"... and {len(issues) - MAX_WARNINGS_LISTED} more"])
    lines.extend(["", PROCEED_QUESTION])
    return "\n".join(lines)


def evaluate_gate(
    outcome: Optional[ReviewOutcome],
    review_settings: ReviewSettings,
    confirm: Confirm,
) -> GateDecision:
    """
    Decide whether to proceed given a review outcome.

    Args:
        outcome: Result of the review, or None when no review was started
            because another one was already running
        review_settings: Supplies the show-dialog toggle
        confirm: Asks the user a yes/no question; True means proceed

    Returns:
        GateDecision
    """
    if outcome is None:
        return GateDecision(proceed=True, reason="review already in progress")

    if outcome.state == ReviewState.TIMED_OUT:
        return _ask(
            confirm,
            f"Code review is taking too long. {PROCEED_QUESTION}",
            "timed out",
        )

    if outcome.report is None:
        error = outcome.error or "unknown error"
        return _ask(
            confirm,
            f"Code review failed: {error}\n{PROCEED_QUESTION}",
            outcome.state.value,
        )

    report = outcome.report
    if not report.has_issues():
        return GateDecision(proceed=True, reason=NO_ISSUES_MESSAGE)

    if report.has_critical_issues():
        blocking = [issue for issue in report.issues if issue.severity >= Severity.ERROR]
        return _ask(confirm, critical_issues_message(blocking), "critical issues")

    if not review_settings.show_review_dialog:
        return GateDecision(proceed=True, reason="warnings only, dialog disabled")

    return _ask(confirm, warning_issues_message(report.issues), "warnings")
