"""
Formatters for review output.

Converts a ReviewReport into markdown (API responses, chat tools) or plain
console text.
"""

import logging
from typing import List, Optional

from review_agent.config import ReviewSettings
from review_agent.llm.schemas import Issue, ReviewReport, Severity

logger = logging.getLogger(__name__)


SEVERITY_EMOJI = {
    Severity.CRITICAL: "🚨",
    Severity.ERROR: "❌",
    Severity.WARNING: "⚠️",
    Severity.INFO: "ℹ️",
}

# Most severe first
SEVERITY_ORDER = [Severity.CRITICAL, Severity.ERROR, Severity.WARNING, Severity.INFO]


def _visible_issues(report: ReviewReport, review_settings: Optional[ReviewSettings]) -> List[Issue]:
    if review_settings is None:
        return list(report.issues)
    return report.filter_for_display(review_settings)


def format_issue_markdown(
    issue: Issue,
    show_line_numbers: bool = True,
    show_suggestions: bool = True,
) -> str:
    """
    Format a single issue as markdown.

    Args:
        issue: Issue to format
        show_line_numbers: Include the line reference when known
        show_suggestions: Include the suggested fix when present

    Returns:
        Markdown-formatted issue
    """
    emoji = SEVERITY_EMOJI.get(issue.severity, "")
    header = f"{emoji} **{issue.severity.display_name.upper()}**"
    if show_line_numbers and issue.has_line_number():
        header += f" · Line {issue.line_number}"
    if issue.category:
        header += f" · *{issue.category}*"

    parts = [header, "", issue.message]

    if show_suggestions and issue.suggestion:
        parts.append("")
        parts.append("**Suggestion:**")
        parts.append(f"```\n{issue.suggestion}\n```")

    if issue.code_snippet:
        parts.append("")
        parts.append(f"```\n{issue.code_snippet}\n```")

    return "\n".join(parts)


def format_review_markdown(
    report: ReviewReport,
    review_settings: Optional[ReviewSettings] = None,
) -> str:
    """
    Format a whole report as markdown.

    When review settings are given, only the issues they allow are listed
    and the display toggles for line numbers and suggestions apply. The
    severity breakdown always covers every issue.
    """
    show_lines = review_settings.show_line_numbers if review_settings else True
    show_suggestions = review_settings.show_code_suggestions if review_settings else True
    issues = _visible_issues(report, review_settings)

    parts = []

    # Title
    parts.append(f"# AI Code Review: {report.file_name or 'Unknown'}")
    parts.append("")
    parts.append(f"*Reviewed {report.formatted_review_time()} in {report.formatted_duration()}*")
    parts.append("")

    # Summary
    parts.append("## Summary")
    parts.append(report.summary or "No summary available")
    parts.append("")

    # Issue breakdown
    parts.append("## Issue Breakdown")
    parts.append("")
    parts.append(f"**Total:** {report.total_issue_count()}")
    for severity in SEVERITY_ORDER:
        count = report.count_by_severity(severity)
        if count > 0:
            parts.append(f"- {SEVERITY_EMOJI[severity]} {severity.display_name.upper()}: {count}")
    parts.append("")

    category_counts = report.count_by_category()
    if category_counts:
        parts.append("**By Category:**")
        for category, count in sorted(category_counts.items(), key=lambda x: x[1], reverse=True):
            parts.append(f"- {category}: {count}")
        parts.append("")

    # Issues
    parts.append("## Issues")
    parts.append("")
    if not issues:
        parts.append("No issues found")
        parts.append("")
    for number, issue in enumerate(issues, start=1):
        parts.append(f"### {number}.")
        parts.append(format_issue_markdown(issue, show_lines, show_suggestions))
        parts.append("")

    hidden = report.total_issue_count() - len(issues)
    if hidden > 0:
        parts.append(f"*{hidden} issue(s) hidden by display settings*")
        parts.append("")

    # Footer
    parts.append("---")
    provenance = " / ".join(p for p in (report.llm_provider, report.llm_model) if p)
    footer = "*This review was generated by an AI code review agent"
    if provenance:
        footer += f" ({provenance})"
    parts.append(footer + ". Please use your judgment and verify critical findings.*")

    return "\n".join(parts)


def format_console_report(
    report: ReviewReport,
    review_settings: Optional[ReviewSettings] = None,
) -> str:
    """Plain-text report for console output."""
    show_lines = review_settings.show_line_numbers if review_settings else True
    show_suggestions = review_settings.show_code_suggestions if review_settings else True
    issues = _visible_issues(report, review_settings)

    lines = [
        "=== Code Review Report ===",
        f"File: {report.file_name or 'Unknown'}",
        f"Time: {report.formatted_review_time()}",
        f"Duration: {report.formatted_duration()}",
    ]
    if report.summary:
        lines.append(f"Summary: {report.summary}")

    lines.append("")
    lines.append("Issues:")
    if not issues:
        lines.append("No issues found")
    for number, issue in enumerate(issues, start=1):
        text = f"{number}. [{issue.severity.display_name}] {issue.message}"
        if show_lines and issue.has_line_number():
            text += f" (Line {issue.line_number})"
        if issue.category:
            text += f" [Category: {issue.category}]"
        lines.append(text)
        if show_suggestions and issue.suggestion:
            lines.append(f"   Suggestion: {issue.suggestion}")

    lines.append("")
    lines.append("Statistics:")
    lines.append(f"  Total Issues: {report.total_issue_count()}")
    lines.append("  " + ", ".join(
        f"{severity.display_name}: {report.count_by_severity(severity)}"
        for severity in SEVERITY_ORDER
    ))
    lines.append("==========================")

    return "\n".join(lines)


def format_report_summary(report: ReviewReport) -> str:
    """
    Format a brief summary for logging or notifications.

    Returns:
        Brief text summary
    """
    summary_parts = [
        f"Review: {report.file_name or 'Unknown'}",
        f"Issues: {report.total_issue_count()}",
        f"Duration: {report.formatted_duration()}",
    ]

    breakdown = ", ".join(
        f"{severity.value}: {report.count_by_severity(severity)}"
        for severity in SEVERITY_ORDER
        if report.count_by_severity(severity)
    )
    if breakdown:
        summary_parts.append(f"Breakdown: {breakdown}")

    return " | ".join(summary_parts)
