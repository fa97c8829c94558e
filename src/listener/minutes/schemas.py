"""Pydantic v2 schemas for the end-of-session record.

MeetingRecord is the only object that outlives a session. ArchivedSession
pairs it with the raw chunks still held at session end for archival.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from src.listener.context.models import TranscriptChunk


class MeetingRecord(BaseModel):
    """Final minutes of one session."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    subject_name: str
    start_time_ms: int
    end_time_ms: int
    duration_minutes: int
    summary: str = Field(description="Final summary text")
    decisions: str = Field(description="Formatted decision list")
    action_items: str = Field(description="Formatted action item list")
    transcript_count: int = Field(description="Chunks ingested during the session")
    created_at_ms: int


class ArchivedSession(BaseModel):
    """Record plus raw chunks handed to the archive collaborator."""

    model_config = ConfigDict(frozen=True)

    record: MeetingRecord
    chunks: list[TranscriptChunk] = Field(default_factory=list)
