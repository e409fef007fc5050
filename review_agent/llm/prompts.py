"""
Prompts for LLM-based code review.

The default prompt asks for one finding per line, each prefixed with a
severity marker, followed by an overall assessment. That line format is
what review.parser classifies. In structured-output mode the model is
asked for a JSON object instead.

All builders are pure: the same inputs always give the same prompt.
"""

from typing import TYPE_CHECKING, Dict

from review_agent.llm.schemas import ReviewFocus, ReviewLanguage

if TYPE_CHECKING:
    from review_agent.config import ReviewSettings


SEVERITY_MARKERS = ("CRITICAL:", "ERROR:", "WARNING:", "INFO:")

CODE_HEADER = "代码内容/Code content:"

FOCUS_CLAUSES: Dict[ReviewLanguage, Dict[ReviewFocus, str]] = {
    ReviewLanguage.ENGLISH: {
        ReviewFocus.SECURITY: "Security issues",
        ReviewFocus.PERFORMANCE: "Performance optimization",
        ReviewFocus.MAINTAINABILITY: "Maintainability",
        ReviewFocus.BUGS: "Potential bugs",
        ReviewFocus.COMPREHENSIVE: (
            "Comprehensive review (including security, performance, "
            "maintainability, potential bugs, etc.)"
        ),
    },
    ReviewLanguage.CHINESE: {
        ReviewFocus.SECURITY: "安全性问题",
        ReviewFocus.PERFORMANCE: "性能优化",
        ReviewFocus.MAINTAINABILITY: "可维护性",
        ReviewFocus.BUGS: "潜在错误",
        ReviewFocus.COMPREHENSIVE: "全面审查（包括安全性、性能、可维护性、潜在错误等）",
    },
}


LINE_FORMAT_INSTRUCTIONS = {
    ReviewLanguage.ENGLISH: (
        "Please return results in the following format:\n"
        "1. For issues found, please start with 'ERROR:', 'WARNING:', 'INFO:', or 'CRITICAL:'\n"
        "2. Each issue on a separate line\n"
        "3. Provide an overall assessment at the end\n"
    ),
    ReviewLanguage.CHINESE: (
        "请按以下格式返回结果：\n"
        "1. 对于发现的问题，请以'ERROR:'、'WARNING:'、'INFO:'或'CRITICAL:'开头\n"
        "2. 每个问题单独一行\n"
        "3. 在最后提供总体评价\n"
    ),
}


JSON_FORMAT_INSTRUCTIONS = {
    ReviewLanguage.ENGLISH: (
        "Respond with valid JSON only, matching this schema:\n"
        "{\n"
        '  "findings": [\n'
        "    {\n"
        '      "severity": "CRITICAL|ERROR|WARNING|INFO",\n'
        '      "message": "Specific, actionable finding",\n'
        '      "line_number": 42,\n'
        '      "category": "Security|Performance|Code Quality|Best Practices|Maintainability",\n'
        '      "suggestion": "Optional fix"\n'
        "    }\n"
        "  ],\n"
        '  "summary": "Overall assessment"\n'
        "}\n"
    ),
    ReviewLanguage.CHINESE: (
        "请只返回符合以下结构的合法JSON：\n"
        "{\n"
        '  "findings": [\n'
        "    {\n"
        '      "severity": "CRITICAL|ERROR|WARNING|INFO",\n'
        '      "message": "具体的问题描述",\n'
        '      "line_number": 42,\n'
        '      "category": "Security|Performance|Code Quality|Best Practices|Maintainability",\n'
        '      "suggestion": "可选的修改建议"\n'
        "    }\n"
        "  ],\n"
        '  "summary": "总体评价"\n'
        "}\n"
    ),
}


def focus_clause(language: ReviewLanguage, focus: ReviewFocus) -> str:
    """Instruction text for a review focus; unknown focus means comprehensive."""
    clauses = FOCUS_CLAUSES[ReviewLanguage.from_value(language)]
    return clauses[ReviewFocus.from_value(focus)]


def build_review_prompt(
    code: str,
    label: str,
    review_settings: "ReviewSettings",
) -> str:
    """
    Build the user prompt for a code review.

    Args:
        code: Source text to review
        label: File name or context label (e.g. "commit-review")
        review_settings: Language, focus and output-mode settings

    Returns:
        Formatted prompt string
    """
    language = ReviewLanguage.from_value(review_settings.review_language)
    focus = ReviewFocus.from_value(review_settings.review_focus)

    if language == ReviewLanguage.CHINESE:
        prompt_parts = [
            f"请对以下代码进行详细的代码审查，文件名：{label}\n",
            f"审查重点：{focus_clause(language, focus)}\n",
        ]
    else:
        prompt_parts = [
            f"Please conduct a detailed code review for the following code, file name: {label}\n",
            f"Review focus: {focus_clause(language, focus)}\n",
        ]

    if review_settings.structured_output:
        prompt_parts.append(JSON_FORMAT_INSTRUCTIONS[language])
    else:
        prompt_parts.append(LINE_FORMAT_INSTRUCTIONS[language])

    prompt_parts.append(f"{CODE_HEADER}\n```\n{code}\n```")

    return "\n".join(prompt_parts)
