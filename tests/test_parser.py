"""
Unit Tests: Result Parser
=========================
Keyword classification of freeform replies, structured JSON replies,
and recovery from classification failures.
"""
import json
from unittest.mock import MagicMock

import pytest

from review_agent.llm.schemas import REVIEW_ERROR_RULE_ID, Severity
from review_agent.review.parser import (
    NO_ISSUES_SUMMARY,
    PARSE_FAILED_SUMMARY,
    REVIEW_COMPLETED_SUMMARY,
    Classifier,
    JsonFindingsClassifier,
    ParseRecoveryError,
    ReviewParser,
    classify_line,
)


# ---------------------------------------------------------------------------
# 1. Keyword precedence
# ---------------------------------------------------------------------------
class TestClassifyLine:

    @pytest.mark.parametrize("line,expected", [
        ("ERROR: null dereference", Severity.ERROR),
        ("错误：空指针", Severity.ERROR),
        ("Warning: unused import", Severity.WARNING),
        ("警告：未使用的变量", Severity.WARNING),
        ("CRITICAL: SQL injection", Severity.CRITICAL),
        ("严重：注入风险", Severity.CRITICAL),
        ("INFO: consider renaming", Severity.INFO),
        ("建议：使用常量", Severity.INFO),
        ("Overall the code is fine.", None),
    ])
    def test_families(self, line, expected):
        assert classify_line(line) == expected

    def test_error_beats_critical(self):
        assert classify_line("CRITICAL error in handler") == Severity.ERROR

    def test_warning_beats_critical(self):
        assert classify_line("critical warning") == Severity.WARNING

    def test_critical_beats_info(self):
        assert classify_line("critical info leak") == Severity.CRITICAL

    def test_substring_match(self):
        # "information" contains "info"
        assert classify_line("Some information here") == Severity.INFO


# ---------------------------------------------------------------------------
# 2. Keyword parsing
# ---------------------------------------------------------------------------
class TestReviewParser:

    def test_mixed_reply(self):
        raw = "WARNING: missing null check\nCRITICAL: SQL injection risk\nOverall looks okay."
        result = ReviewParser().parse(raw)

        assert [(i.severity, i.message) for i in result.issues] == [
            (Severity.WARNING, "WARNING: missing null check"),
            (Severity.CRITICAL, "CRITICAL: SQL injection risk"),
        ]
        assert result.summary == "Overall looks okay."

    @pytest.mark.parametrize("raw", ["", "   ", "\n\n  \t\n", None])
    def test_empty_reply(self, raw):
        result = ReviewParser().parse(raw)
        assert result.issues == []
        assert result.summary == NO_ISSUES_SUMMARY

    def test_issues_without_narrative(self):
        result = ReviewParser().parse("ERROR: a\nWARNING: b")
        assert len(result.issues) == 2
        assert result.summary == REVIEW_COMPLETED_SUMMARY

    def test_narrative_only(self):
        result = ReviewParser().parse("Looks good.\n\nNice tests.")
        assert result.issues == []
        assert result.summary == "Looks good.\nNice tests."

    def test_lines_are_trimmed(self):
        result = ReviewParser().parse("   ERROR: spaced out   \n")
        assert result.issues[0].message == "ERROR: spaced out"

    def test_issues_keep_defaults(self):
        issue = ReviewParser().parse("ERROR: x").issues[0]
        assert issue.line_number == -1
        assert issue.category is None

    def test_classifier_failure_is_recovered(self):
        classifier = MagicMock(spec=Classifier)
        classifier.classify.side_effect = RuntimeError("boom")

        result = ReviewParser(classifier).parse("anything")

        assert len(result.issues) == 1
        assert result.issues[0].severity == Severity.ERROR
        assert result.issues[0].rule_id == REVIEW_ERROR_RULE_ID
        assert "boom" in result.issues[0].message
        assert result.summary == PARSE_FAILED_SUMMARY

    @pytest.mark.parametrize("raw", [
        "\x00\x01 binary",
        "ERROR" * 10000,
        "```json\n{not json",
        "🚀\r\n\r\nCRITICAL: 💥",
    ])
    def test_never_raises(self, raw):
        ReviewParser().parse(raw)
        ReviewParser(JsonFindingsClassifier()).parse(raw)


# ---------------------------------------------------------------------------
# 3. Structured replies
# ---------------------------------------------------------------------------
class TestJsonFindingsClassifier:

    def test_fenced_json(self):
        payload = {
            "findings": [
                {
                    "severity": "ERROR",
                    "message": "Possible null dereference",
                    "line_number": 12,
                    "category": "Code Quality",
                    "suggestion": "Check for None first",
                },
                {"severity": "info", "message": "Consider a docstring"},
            ],
            "summary": "Two findings.",
        }
        raw = f"Here you go:\n```json\n{json.dumps(payload)}\n```"

        result = ReviewParser(JsonFindingsClassifier()).parse(raw)

        assert len(result.issues) == 2
        first = result.issues[0]
        assert first.severity == Severity.ERROR
        assert first.line_number == 12
        assert first.category == "Code Quality"
        assert first.suggestion == "Check for None first"
        assert result.issues[1].severity == Severity.INFO
        assert not result.issues[1].has_line_number()
        assert result.summary == "Two findings."

    def test_empty_findings(self):
        result = ReviewParser(JsonFindingsClassifier()).parse('{"findings": []}')
        assert result.issues == []
        assert result.summary == NO_ISSUES_SUMMARY

    def test_invalid_json_falls_back_to_keywords(self):
        result = ReviewParser(JsonFindingsClassifier()).parse("WARNING: plain text reply\nFine otherwise.")
        assert [i.severity for i in result.issues] == [Severity.WARNING]
        assert result.summary == "Fine otherwise."

    def test_non_object_is_recovered(self):
        result = ReviewParser(JsonFindingsClassifier()).parse("[1, 2, 3]")
        assert result.summary == PARSE_FAILED_SUMMARY
        assert result.issues[0].rule_id == REVIEW_ERROR_RULE_ID

    def test_malformed_finding_keeps_valid_siblings(self):
        raw = json.dumps({"findings": [
            {"severity": "CRITICAL", "message": "SQL injection", "line_number": 3},
            {"severity": "WARNING", "message": "Long method", "line_number": "12-15",
             "category": ["Style"], "suggestion": 42},
        ]})

        result = ReviewParser(JsonFindingsClassifier()).parse(raw)

        assert result.summary == REVIEW_COMPLETED_SUMMARY
        assert [(i.severity, i.message) for i in result.issues] == [
            (Severity.CRITICAL, "SQL injection"),
            (Severity.WARNING, "Long method"),
        ]
        assert result.issues[0].line_number == 3
        degraded = result.issues[1]
        assert not degraded.has_line_number()
        assert degraded.category == "['Style']"
        assert degraded.suggestion == "42"
        assert all(i.rule_id != REVIEW_ERROR_RULE_ID for i in result.issues)

    def test_findings_without_message_are_skipped(self):
        raw = json.dumps({"findings": ["oops", {"severity": "ERROR"}, {"message": "kept"}]})
        result = ReviewParser(JsonFindingsClassifier()).parse(raw)
        assert [i.message for i in result.issues] == ["kept"]

    def test_findings_not_a_list_is_recovered(self):
        raw = json.dumps({"findings": {"message": "x"}})
        result = ReviewParser(JsonFindingsClassifier()).parse(raw)
        assert result.summary == PARSE_FAILED_SUMMARY
        assert result.issues[0].rule_id == REVIEW_ERROR_RULE_ID

    def test_recovery_error_type(self):
        with pytest.raises(ParseRecoveryError):
            JsonFindingsClassifier().classify('"just a string"')
