"""
Parsing of model replies into structured issues.

The reply format is freeform text, so classification is keyword based:
each line carrying a severity keyword becomes one issue, everything else
becomes the narrative summary. Structured-output mode plugs a JSON reader
in through the Classifier interface.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

from review_agent.llm.schemas import REVIEW_ERROR_RULE_ID, Issue, Severity

logger = logging.getLogger(__name__)


NO_ISSUES_SUMMARY = "No obvious issues found"
REVIEW_COMPLETED_SUMMARY = "Code review completed"
PARSE_FAILED_SUMMARY = "Failed to parse review result"

# Tested in this order; the first family that matches wins
KEYWORD_FAMILIES: Sequence[Tuple[Severity, Tuple[str, ...]]] = (
    (Severity.ERROR, ("error", "错误")),
    (Severity.WARNING, ("warning", "警告")),
    (Severity.CRITICAL, ("critical", "严重")),
    (Severity.INFO, ("info", "信息", "建议")),
)


class ParseRecoveryError(Exception):
    """Raised inside classification; always recovered by ReviewParser."""
    pass


@dataclass
class ParsedReview:
    """Issues in discovery order plus the leftover narrative."""
    issues: List[Issue] = field(default_factory=list)
    summary: str = NO_ISSUES_SUMMARY


class Classifier(ABC):
    """Turns raw reply text into issues and a summary."""

    @abstractmethod
    def classify(self, raw_text: str) -> ParsedReview:
        """
        Classify a non-blank reply.

        Raises:
            ParseRecoveryError: If the text cannot be classified
        """
        pass


def classify_line(line: str) -> Optional[Severity]:
    """Severity for a single line, or None for narrative text."""
    lowered = line.lower()
    for severity, keywords in KEYWORD_FAMILIES:
        if any(keyword in lowered for keyword in keywords):
            return severity
    return None


class KeywordClassifier(Classifier):
    """One issue per line containing a severity keyword."""

    def classify(self, raw_text: str) -> ParsedReview:
        issues: List[Issue] = []
        summary_lines: List[str] = []

        for line in raw_text.splitlines():
            line = line.strip()
            if not line:
                continue

            severity = classify_line(line)
            if severity is None:
                summary_lines.append(line)
            else:
                issues.append(Issue(message=line, severity=severity))

        summary = "\n".join(summary_lines) if summary_lines else REVIEW_COMPLETED_SUMMARY
        return ParsedReview(issues=issues, summary=summary)


class JsonFindingsClassifier(Classifier):
    """
    Reads the structured-output reply:
    {"findings": [{severity, message, line_number, category, suggestion}], "summary": str}

    Replies that are not valid JSON are handed to the fallback classifier.
    """

    def __init__(self, fallback: Optional[Classifier] = None):
        self.fallback = fallback or KeywordClassifier()

    @staticmethod
    def _extract_json(text: str) -> str:
        """Strip markdown code fences around a JSON payload."""
        if "```json" in text:
            start = text.find("```json") + 7
            end = text.find("```", start)
            text = text[start:end] if end != -1 else text[start:]
        elif "```" in text:
            start = text.find("```") + 3
            end = text.find("```", start)
            text = text[start:end] if end != -1 else text[start:]
        return text.strip()

    @staticmethod
    def _line_number(value: Any) -> int:
        if value is None or isinstance(value, bool):
            return -1
        try:
            return int(value)
        except (TypeError, ValueError, OverflowError):
            logger.debug(f"Ignoring unusable line number {value!r}")
            return -1

    @staticmethod
    def _optional_text(value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        return value if isinstance(value, str) else str(value)

    def _finding_to_issue(self, finding: Any) -> Optional[Issue]:
        """
        Convert one finding to an Issue.

        Unusable line numbers are dropped and non-string text fields are
        stringified. Findings without a message, or that still fail
        validation, are skipped so the rest of the reply survives.
        """
        if not isinstance(finding, dict) or not finding.get("message"):
            return None
        try:
            return Issue(
                message=str(finding["message"]),
                severity=finding.get("severity", Severity.INFO),
                line_number=self._line_number(finding.get("line_number")),
                category=self._optional_text(finding.get("category")),
                suggestion=self._optional_text(finding.get("suggestion")),
            )
        except ValueError as e:
            logger.warning(f"Skipping invalid finding {finding!r}: {e}")
            return None

    def classify(self, raw_text: str) -> ParsedReview:
        try:
            review_data = json.loads(self._extract_json(raw_text))
        except json.JSONDecodeError:
            logger.info("Reply is not valid JSON, using keyword classification")
            return self.fallback.classify(raw_text)

        if not isinstance(review_data, dict):
            raise ParseRecoveryError("Structured reply must be a JSON object")

        findings = review_data.get("findings") or []
        if not isinstance(findings, list):
            raise ParseRecoveryError("Structured reply \"findings\" must be a JSON array")

        issues = []
        for finding in findings:
            issue = self._finding_to_issue(finding)
            if issue is not None:
                issues.append(issue)

        summary = str(review_data.get("summary") or "").strip()
        if not summary:
            summary = REVIEW_COMPLETED_SUMMARY if issues else NO_ISSUES_SUMMARY
        return ParsedReview(issues=issues, summary=summary)


class ReviewParser:
    """Never-failing front end over a Classifier."""

    def __init__(self, classifier: Optional[Classifier] = None):
        self.classifier = classifier or KeywordClassifier()

    def parse(self, raw_text: Optional[str]) -> ParsedReview:
        """
        Parse a model reply.

        Empty or blank input gives no issues and NO_ISSUES_SUMMARY. Any
        failure during classification is reported as a single ERROR issue
        instead of being raised.
        """
        if raw_text is None or not raw_text.strip():
            return ParsedReview(issues=[], summary=NO_ISSUES_SUMMARY)

        try:
            return self.classifier.classify(raw_text)
        except Exception as e:
            logger.error(f"Failed to parse review result: {e}", exc_info=True)
            error_issue = Issue(
                message=f"Error while parsing review result: {e}",
                severity=Severity.ERROR,
                rule_id=REVIEW_ERROR_RULE_ID,
            )
            return ParsedReview(issues=[error_issue], summary=PARSE_FAILED_SUMMARY)
