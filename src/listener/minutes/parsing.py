"""Parse structured DECISION / ACTION_ITEM provider output.

Providers are asked for a JSON array of objects. Code fences and leading
prose are tolerated; anything else raises MalformedProviderOutput so the
caller can keep its keyword baseline.
"""

from __future__ import annotations

import json
import re

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from src.listener.context.models import ActionItem, Decision
from src.listener.core.errors import MalformedProviderOutput
from src.listener.providers.base import is_failed_summary


class ExtractedDecision(BaseModel):
    """Decision object as returned by a provider."""

    description: str = Field(min_length=1)
    topic: str | None = None


class ExtractedActionItem(BaseModel):
    """Action item object as returned by a provider."""

    task: str = Field(min_length=1)
    assignee: str | None = None
    deadline: str | None = None


_decisions_adapter = TypeAdapter(list[ExtractedDecision])
_action_items_adapter = TypeAdapter(list[ExtractedActionItem])


def extract_json_array(text: str) -> list:
    """Pull the first JSON array out of provider text.

    Raises:
        MalformedProviderOutput: No parseable array is present.
    """
    if is_failed_summary(text):
        raise MalformedProviderOutput("Provider returned no usable output", raw=text or "")

    cleaned = re.sub(r"^```(?:json)?\s*\n?", "", text.strip())
    cleaned = re.sub(r"\n?```\s*$", "", cleaned.strip())

    start = cleaned.find("[")
    end = cleaned.rfind("]")
    if start == -1 or end < start:
        raise MalformedProviderOutput(f"No JSON array in provider output: {text[:200]!r}", raw=text)

    try:
        data = json.loads(cleaned[start : end + 1])
    except json.JSONDecodeError as exc:
        raise MalformedProviderOutput(f"Invalid JSON in provider output: {exc}", raw=text) from exc

    if not isinstance(data, list):
        raise MalformedProviderOutput("Provider output is not a JSON array", raw=text)
    return data


def parse_decisions(text: str, timestamp_ms: int) -> list[Decision]:
    data = extract_json_array(text)
    try:
        extracted = _decisions_adapter.validate_python(data)
    except ValidationError as exc:
        raise MalformedProviderOutput(f"Decision objects failed validation: {exc}", raw=text) from exc
    return [
        Decision(
            description=item.description.strip(),
            timestamp_ms=timestamp_ms,
            related_topic=item.topic,
        )
        for item in extracted
        if item.description.strip()
    ]


def parse_action_items(text: str, default_assignee: str, timestamp_ms: int) -> list[ActionItem]:
    data = extract_json_array(text)
    try:
        extracted = _action_items_adapter.validate_python(data)
    except ValidationError as exc:
        raise MalformedProviderOutput(f"Action item objects failed validation: {exc}", raw=text) from exc
    return [
        ActionItem(
            task=item.task.strip(),
            assignee=(item.assignee or "").strip() or default_assignee,
            deadline=item.deadline,
            timestamp_ms=timestamp_ms,
        )
        for item in extracted
        if item.task.strip()
    ]
