"""End-of-session minutes: heuristics, provider extraction and archival."""

from src.listener.minutes.archive import InMemoryMeetingArchive, MeetingArchive
from src.listener.minutes.generator import (
    MinutesGenerator,
    format_action_items,
    format_decisions,
)
from src.listener.minutes.schemas import ArchivedSession, MeetingRecord

__all__ = [
    "ArchivedSession",
    "InMemoryMeetingArchive",
    "MeetingArchive",
    "MeetingRecord",
    "MinutesGenerator",
    "format_action_items",
    "format_decisions",
]
