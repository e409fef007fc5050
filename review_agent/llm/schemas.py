"""
Structured schemas for LLM-based code review outputs.

These Pydantic models hold what the review pipeline extracts from a model
reply: individual issues with a severity, and the report that aggregates
them together with timing and provenance.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from review_agent.config import ReviewSettings


# Marks issues injected by the pipeline itself rather than found by the model
REVIEW_ERROR_RULE_ID = "review-error"


class Severity(str, Enum):
    """Issue severity levels, ordered INFO < WARNING < ERROR < CRITICAL."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def level(self) -> int:
        return _SEVERITY_META[self][0]

    @property
    def display_name(self) -> str:
        return _SEVERITY_META[self][1]

    @property
    def color(self) -> str:
        """Presentation hint only."""
        return _SEVERITY_META[self][2]

    @classmethod
    def from_level(cls, level: int) -> "Severity":
        """Look up a severity by its level, falling back to INFO."""
        for severity in cls:
            if severity.level == level:
                return severity
        return cls.INFO

    @classmethod
    def from_name(cls, name: Optional[str]) -> "Severity":
        """Look up a severity by name or display label, falling back to INFO."""
        if isinstance(name, Severity):
            return name
        if not name or not str(name).strip():
            return cls.INFO
        cleaned = str(name).strip()
        for severity in cls:
            if severity.name == cleaned.upper() or severity.display_name == cleaned:
                return severity
        return cls.INFO

    def is_more_severe_than(self, other: "Severity") -> bool:
        return self.level > other.level

    def is_less_severe_than(self, other: "Severity") -> bool:
        return self.level < other.level

    def meets_minimum_level(self, minimum: "Severity") -> bool:
        return self.level >= minimum.level

    def __lt__(self, other):
        if isinstance(other, Severity):
            return self.level < other.level
        return NotImplemented

    def __le__(self, other):
        if isinstance(other, Severity):
            return self.level <= other.level
        return NotImplemented

    def __gt__(self, other):
        if isinstance(other, Severity):
            return self.level > other.level
        return NotImplemented

    def __ge__(self, other):
        if isinstance(other, Severity):
            return self.level >= other.level
        return NotImplemented


_SEVERITY_META = {
    Severity.INFO: (1, "Info", "#2196F3"),
    Severity.WARNING: (2, "Warning", "#FF9800"),
    Severity.ERROR: (3, "Error", "#F44336"),
    Severity.CRITICAL: (4, "Critical", "#9C27B0"),
}


class ReviewFocus(str, Enum):
    """Thematic emphasis of a review."""
    COMPREHENSIVE = "comprehensive"
    SECURITY = "security"
    PERFORMANCE = "performance"
    MAINTAINABILITY = "maintainability"
    BUGS = "bugs"

    @classmethod
    def from_value(cls, value: Any) -> "ReviewFocus":
        """Unknown focus values mean a comprehensive review."""
        if isinstance(value, ReviewFocus):
            return value
        cleaned = str(value or "").strip().lower()
        for focus in cls:
            if focus.value == cleaned:
                return focus
        return cls.COMPREHENSIVE


class ReviewLanguage(str, Enum):
    """Natural language of the review instructions."""
    ENGLISH = "English"
    CHINESE = "Chinese"

    @classmethod
    def from_value(cls, value: Any) -> "ReviewLanguage":
        if isinstance(value, ReviewLanguage):
            return value
        cleaned = str(value or "").strip().lower()
        for language in cls:
            if language.value.lower() == cleaned:
                return language
        return cls.ENGLISH


class Issue(BaseModel):
    """One finding from a review."""

    model_config = ConfigDict(validate_assignment=True)

    message: str = Field(..., description="Finding text as reported")
    severity: Severity = Field(default=Severity.INFO)
    line_number: int = Field(default=-1, description="Positive when known")
    start_column: int = -1
    end_column: int = -1
    category: Optional[str] = None
    suggestion: Optional[str] = None
    code_snippet: Optional[str] = None
    rule_id: Optional[str] = None
    file_name: Optional[str] = None
    description: Optional[str] = None

    @field_validator("severity", mode="before")
    @classmethod
    def parse_severity(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return Severity.from_level(v)
        return Severity.from_name(v)

    def has_line_number(self) -> bool:
        return self.line_number > 0

    def has_column_range(self) -> bool:
        return self.start_column >= 0 and self.end_column >= self.start_column


class ReviewReport(BaseModel):
    """
    Complete output of one review run.

    Issues keep discovery order. Every statistic is computed from the
    current issue list on demand, so there is no cached state to go stale.
    """

    model_config = ConfigDict(validate_assignment=True)

    file_name: str = Field(default="", description="Reviewed file or context label")
    file_path: str = ""
    issues: List[Issue] = Field(default_factory=list)
    review_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    review_duration_ms: int = Field(default=0, ge=0)
    review_language: Optional[str] = None
    review_focus: Optional[str] = None
    llm_provider: Optional[str] = None
    llm_model: Optional[str] = None
    summary: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)
    reviewer_id: Optional[str] = None

    @field_validator("issues", mode="before")
    @classmethod
    def never_null_issues(cls, v):
        return [] if v is None else v

    def add_issue(self, issue: Issue) -> None:
        self.issues.append(issue)

    def add_issues(self, issues: Iterable[Issue]) -> None:
        self.issues.extend(issues)

    def add_metadata(self, key: str, value: Any) -> None:
        self.metadata[key] = value

    # Statistics

    def total_issue_count(self) -> int:
        return len(self.issues)

    def count_by_severity(self, severity: Severity) -> int:
        """Number of issues with exactly this severity."""
        return sum(1 for issue in self.issues if issue.severity == severity)

    def severity_statistics(self) -> Dict[Severity, int]:
        return {severity: self.count_by_severity(severity) for severity in Severity}

    def count_by_category(self) -> Dict[str, int]:
        """Issue counts per category; uncategorised issues are skipped."""
        counts: Dict[str, int] = {}
        for issue in self.issues:
            if issue.category:
                counts[issue.category] = counts.get(issue.category, 0) + 1
        return counts

    def issues_by_severity(self, severity: Severity) -> List[Issue]:
        return [issue for issue in self.issues if issue.severity == severity]

    def issues_by_category(self, category: str) -> List[Issue]:
        return [issue for issue in self.issues if issue.category == category]

    # Filtering

    def filter_by_severity(self, minimum: Severity) -> List[Issue]:
        """Issues at or above the minimum severity."""
        return [issue for issue in self.issues if issue.severity.meets_minimum_level(minimum)]

    def filter_by_category(self, enabled_categories: Set[str]) -> List[Issue]:
        """
        Issues whose category is enabled.

        An issue without a category is never filtered out, and an empty
        category set disables category filtering entirely.
        """
        if not enabled_categories:
            return list(self.issues)
        return [
            issue for issue in self.issues
            if not issue.category or issue.category in enabled_categories
        ]

    def filter_for_display(self, review_settings: "ReviewSettings") -> List[Issue]:
        """Apply the settings' severity and category policy, capped per file."""
        visible = [
            issue for issue in self.issues
            if review_settings.should_show_issue(issue.severity, issue.category)
        ]
        return visible[:review_settings.max_issues_per_file]

    # Checks

    def has_issues(self) -> bool:
        return bool(self.issues)

    def has_errors(self) -> bool:
        return self.count_by_severity(Severity.ERROR) > 0

    def has_warnings(self) -> bool:
        return self.count_by_severity(Severity.WARNING) > 0

    def has_critical_issues(self) -> bool:
        """ERROR and CRITICAL both block; WARNING and INFO never do."""
        return any(issue.severity >= Severity.ERROR for issue in self.issues)

    def is_empty(self) -> bool:
        return not self.issues

    def error_issues(self) -> List[Issue]:
        """Issues describing a pipeline failure rather than a code finding."""
        return [issue for issue in self.issues if issue.rule_id == REVIEW_ERROR_RULE_ID]

    # Formatting

    def formatted_review_time(self) -> str:
        return self.review_time.strftime("%Y-%m-%d %H:%M:%S")

    def formatted_duration(self) -> str:
        duration = self.review_duration_ms
        if duration <= 0:
            return "Unknown"
        if duration < 1000:
            return f"{duration}ms"
        if duration < 60000:
            return f"{duration / 1000:.1f}s"
        return f"{duration / 60000:.1f}m"

    def headline(self) -> str:
        """One-line overview, e.g. for notifications."""
        text = f"File: {self.file_name or 'Unknown'}, Issues: {self.total_issue_count()}"
        if self.has_errors():
            text += f" (Errors: {self.count_by_severity(Severity.ERROR)})"
        if self.has_warnings():
            text += f" (Warnings: {self.count_by_severity(Severity.WARNING)})"
        return text

    def copy_report(self) -> "ReviewReport":
        return self.model_copy(deep=True)
