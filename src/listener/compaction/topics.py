"""Keyword topic tagging for micro summaries."""

from __future__ import annotations

TOPIC_KEYWORDS: tuple[str, ...] = (
    "deadline",
    "decision",
    "task",
    "project",
    "feature",
    "issue",
    "bug",
    "release",
    "meeting",
)


def extract_topics(text: str) -> list[str]:
    """Return the vocabulary words contained in text, in vocabulary order.

    Matching is a case-insensitive substring test, so "bugs" counts as "bug".
    """
    lowered = text.casefold()
    return [keyword for keyword in TOPIC_KEYWORDS if keyword in lowered]
