"""Live meeting context.

Provides:
- MeetingContext and its immutable entries (TranscriptChunk, MicroSummary,
  Decision, ActionItem)
- ContextStore: thread-safe owner of the single active MeetingContext
"""

from src.listener.context.models import (
    ActionItem,
    Decision,
    MeetingContext,
    MeetingStats,
    MicroSummary,
    TranscriptChunk,
)
from src.listener.context.store import NO_ACTIVE_MEETING, ContextStore

__all__ = [
    "ActionItem",
    "ContextStore",
    "Decision",
    "MeetingContext",
    "MeetingStats",
    "MicroSummary",
    "NO_ACTIVE_MEETING",
    "TranscriptChunk",
]
