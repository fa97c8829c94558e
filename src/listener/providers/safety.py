"""Prompt injection screening for user questions.

Questions typed by the user are the only free-form input templated into
provider prompts next to meeting content. Transcript text is passed through
untouched so meeting wording is never altered.
"""

from __future__ import annotations

import re

import structlog

logger = structlog.get_logger(__name__)

_INJECTION_PATTERNS: list[tuple[str, re.Pattern]] = [
    (
        "instruction_override",
        re.compile(
            r"ignore\s+(all\s+)?previous\s+instructions|"
            r"disregard\s+(all\s+)?(your\s+)?instructions|"
            r"forget\s+(all\s+)?(your\s+)?instructions|"
            r"override\s+(all\s+)?(your\s+)?instructions",
            re.IGNORECASE,
        ),
    ),
    (
        "prompt_exfiltration",
        re.compile(
            r"(reveal|show|display|output|print|repeat)\s+(your\s+)?(system\s+prompt|instructions|prompt)|"
            r"repeat\s+everything\s+above|"
            r"what\s+are\s+your\s+instructions",
            re.IGNORECASE,
        ),
    ),
    (
        "role_hijacking",
        re.compile(
            r"you\s+are\s+now\s+|"
            r"pretend\s+(to\s+be|you\s+are)|"
            r"from\s+now\s+on\s+you\s+are|"
            r"assume\s+the\s+role\s+of",
            re.IGNORECASE,
        ),
    ),
    (
        "control_characters",
        re.compile(
            r"[\x00-\x08\x0b\x0c\x0e-\x1f]{3,}",  # 3+ control chars in sequence
        ),
    ),
]


def detect_prompt_injection(text: str) -> tuple[bool, str | None]:
    """Check text for common prompt injection patterns.

    Returns:
        Tuple of (is_injection, pattern_name).
    """
    for pattern_name, pattern in _INJECTION_PATTERNS:
        if pattern.search(text):
            logger.warning(
                "prompt_injection_detected",
                pattern=pattern_name,
                text_preview=text[:100],
            )
            return True, pattern_name
    return False, None


def sanitize_question(question: str) -> str:
    """Replace injection phrases in a question with a [removed] marker."""
    is_injection, pattern_name = detect_prompt_injection(question)
    if not is_injection:
        return question

    cleaned = question
    for _, pattern in _INJECTION_PATTERNS:
        cleaned = pattern.sub("[removed]", cleaned)
    logger.warning(
        "prompt_injection_sanitized",
        pattern=pattern_name,
        original_length=len(question),
        cleaned_length=len(cleaned),
    )
    return cleaned
