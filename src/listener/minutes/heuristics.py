"""Keyword heuristics for decisions and action items.

These run without any provider, so minutes stay useful offline. Matching is
a plain case-insensitive substring test against fixed keyword lists, and the
assignee is pulled from a few regex patterns with the session's subject as
the default owner.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from src.listener.context.models import ActionItem, Decision, TranscriptChunk

DECISION_KEYWORDS: tuple[str, ...] = (
    "decided",
    "decide",
    "decision",
    "agreed",
    "agree",
    "will do",
    "going to",
    "confirmed",
    "finalized",
)

ACTION_KEYWORDS: tuple[str, ...] = (
    "will",
    "should",
    "need to",
    "have to",
    "must",
    "task",
    "assign",
    "responsible",
    "deadline",
    "by",
)

_ASSIGNEE_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"assigned to ([A-Za-z]+)", re.IGNORECASE),
    re.compile(r"([A-Za-z]+) will", re.IGNORECASE),
    re.compile(r"([A-Za-z]+) should", re.IGNORECASE),
)


def contains_keyword(text: str, keywords: Iterable[str]) -> bool:
    lowered = text.casefold()
    return any(keyword in lowered for keyword in keywords)


def extract_assignee(text: str, default_name: str) -> str:
    """First name captured by the assignee patterns, else default_name."""
    for pattern in _ASSIGNEE_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return default_name


def decision_from_chunk(chunk: TranscriptChunk) -> Decision | None:
    if not contains_keyword(chunk.text, DECISION_KEYWORDS):
        return None
    return Decision(description=chunk.text, timestamp_ms=chunk.timestamp_ms)


def action_item_from_chunk(chunk: TranscriptChunk, default_assignee: str) -> ActionItem | None:
    if not contains_keyword(chunk.text, ACTION_KEYWORDS):
        return None
    return ActionItem(
        task=chunk.text,
        assignee=extract_assignee(chunk.text, default_assignee),
        timestamp_ms=chunk.timestamp_ms,
    )


def scan_decisions(chunks: Iterable[TranscriptChunk]) -> list[Decision]:
    found = (decision_from_chunk(chunk) for chunk in chunks)
    return merge_decisions([d for d in found if d is not None])


def scan_action_items(chunks: Iterable[TranscriptChunk], default_assignee: str) -> list[ActionItem]:
    found = (action_item_from_chunk(chunk, default_assignee) for chunk in chunks)
    return merge_action_items([a for a in found if a is not None])


def merge_decisions(*groups: Iterable[Decision]) -> list[Decision]:
    """Concatenate groups, keeping the first decision for each normalized text."""
    seen: set[str] = set()
    merged: list[Decision] = []
    for group in groups:
        for decision in group:
            if decision.key in seen:
                continue
            seen.add(decision.key)
            merged.append(decision)
    return merged


def merge_action_items(*groups: Iterable[ActionItem]) -> list[ActionItem]:
    """Concatenate groups, keeping the first action item for each normalized task."""
    seen: set[str] = set()
    merged: list[ActionItem] = []
    for group in groups:
        for item in group:
            if item.key in seen:
                continue
            seen.add(item.key)
            merged.append(item)
    return merged
