"""
Unit Tests: Report Formatters
=============================
"""
from review_agent.config import ReviewSettings
from review_agent.llm.schemas import Issue, ReviewReport, Severity
from review_agent.review.formatter import (
    format_console_report,
    format_issue_markdown,
    format_report_summary,
    format_review_markdown,
)


def sample_report():
    report = ReviewReport(
        file_name="UserDao.java",
        summary="Mostly fine.",
        review_duration_ms=1500,
        llm_provider="openai",
        llm_model="gpt-4o-mini",
    )
    report.add_issue(Issue(
        message="SQL built by concatenation",
        severity=Severity.CRITICAL,
        line_number=42,
        category="Security",
        suggestion="Use a prepared statement",
    ))
    report.add_issue(Issue(message="Unused import", severity=Severity.INFO, category="Code Quality"))
    return report


class TestMarkdown:

    def test_issue(self):
        text = format_issue_markdown(sample_report().issues[0])
        assert "**CRITICAL**" in text
        assert "Line 42" in text
        assert "*Security*" in text
        assert "Use a prepared statement" in text

    def test_issue_toggles(self):
        text = format_issue_markdown(sample_report().issues[0], show_line_numbers=False, show_suggestions=False)
        assert "Line 42" not in text
        assert "prepared statement" not in text

    def test_report(self):
        text = format_review_markdown(sample_report())
        assert text.startswith("# AI Code Review: UserDao.java")
        assert "Mostly fine." in text
        assert "**Total:** 2" in text
        assert "CRITICAL: 1" in text
        assert "- Security: 1" in text
        assert "1.5s" in text
        assert "(openai / gpt-4o-mini)" in text

    def test_report_respects_display_settings(self):
        settings = ReviewSettings(minimum_severity=Severity.WARNING)
        text = format_review_markdown(sample_report(), settings)
        assert "Unused import" not in text
        assert "1 issue(s) hidden by display settings" in text

    def test_empty_report(self):
        text = format_review_markdown(ReviewReport(file_name="a.py"))
        assert "No issues found" in text
        assert "No summary available" in text


class TestConsole:

    def test_console_report(self):
        text = format_console_report(sample_report())
        assert "=== Code Review Report ===" in text
        assert "1. [Critical] SQL built by concatenation (Line 42) [Category: Security]" in text
        assert "   Suggestion: Use a prepared statement" in text
        assert "2. [Info] Unused import [Category: Code Quality]" in text
        assert "Critical: 1, Error: 0, Warning: 0, Info: 1" in text

    def test_summary_line(self):
        assert format_report_summary(sample_report()) == \
            "Review: UserDao.java | Issues: 2 | Duration: 1.5s | Breakdown: critical: 1, info: 1"
