"""Session lifecycle: ingestion, background compaction and end-of-session minutes."""

from src.listener.sessions.ingest import CleanedFragment, TranscriptCleaner
from src.listener.sessions.service import MeetingSessionService
from src.listener.sessions.state import (
    SessionActive,
    SessionFinalizing,
    SessionIdle,
    SessionState,
    describe_state,
)

__all__ = [
    "CleanedFragment",
    "MeetingSessionService",
    "SessionActive",
    "SessionFinalizing",
    "SessionIdle",
    "SessionState",
    "TranscriptCleaner",
    "describe_state",
]
