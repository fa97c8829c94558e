"""Pydantic v2 models for the live meeting context.

MeetingContext is the mutable aggregate owned by the ContextStore. Everything
it holds (chunks, micro summaries, decisions, action items) is immutable once
created; only the aggregate's lists and derived fields change.
"""

from __future__ import annotations

import re
import uuid

from pydantic import BaseModel, ConfigDict, Field

from src.listener.core.clock import elapsed_minutes

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Dedup key for decisions and action items."""
    return _WHITESPACE_RE.sub(" ", text).strip().casefold()


# ── Immutable Entries ────────────────────────────────────────────────────────


class TranscriptChunk(BaseModel):
    """A short unit of transcribed speech."""

    model_config = ConfigDict(frozen=True)

    text: str
    timestamp: str = Field(description="Readable HH:MM:SS label")
    timestamp_ms: int
    speaker: str | None = None


class MicroSummary(BaseModel):
    """Compressed summary of a contiguous window of recent chunks."""

    model_config = ConfigDict(frozen=True)

    summary: str
    start_time_ms: int
    end_time_ms: int
    topics: list[str] = Field(default_factory=list)


class Decision(BaseModel):
    """A decision made during the meeting."""

    model_config = ConfigDict(frozen=True)

    description: str
    timestamp_ms: int
    related_topic: str | None = None

    @property
    def key(self) -> str:
        return normalize_text(self.description)


class ActionItem(BaseModel):
    """A task mentioned or assigned during the meeting."""

    model_config = ConfigDict(frozen=True)

    task: str
    assignee: str
    deadline: str | None = None
    timestamp_ms: int

    @property
    def key(self) -> str:
        return normalize_text(self.task)


# ── Aggregate ────────────────────────────────────────────────────────────────


class MeetingContext(BaseModel):
    """Live context of the single active meeting.

    Holds hierarchical summaries so questions can be answered without
    sending the whole meeting history to a provider.
    """

    session_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    start_time_ms: int
    subject_name: str

    recent_chunks: list[TranscriptChunk] = Field(default_factory=list)
    micro_summaries: list[MicroSummary] = Field(default_factory=list)
    section_summaries: list[str] = Field(default_factory=list)
    decisions: list[Decision] = Field(default_factory=list)
    action_items: list[ActionItem] = Field(default_factory=list)

    current_topic: str | None = None
    duration_minutes: int = 0
    last_section_compaction_ms: int | None = None
    total_chunks: int = 0

    def recompute_duration(self, now_ms: int) -> int:
        self.duration_minutes = elapsed_minutes(self.start_time_ms, now_ms)
        return self.duration_minutes

    def last_micro_end_ms(self) -> int:
        """Reference instant for the micro compaction timer."""
        if self.micro_summaries:
            return self.micro_summaries[-1].end_time_ms
        return self.start_time_ms

    def last_section_ms(self) -> int:
        """Reference instant for the section compaction timer."""
        if self.last_section_compaction_ms is not None:
            return self.last_section_compaction_ms
        return self.start_time_ms

    def was_subject_mentioned(self, text: str | None = None) -> bool:
        """Check whether the subject's name appears in text, or in the recent chunks."""
        if not self.subject_name:
            return False
        needle = self.subject_name.casefold()
        if text is not None:
            return needle in text.casefold()
        return any(needle in chunk.text.casefold() for chunk in self.recent_chunks)

    def render_condensed(self, recent_window: int = 10, micro_window: int = 3) -> str:
        """Render the bounded textual view sent to providers.

        Sections appear in a fixed order; recent chunks and micro summaries
        show only their most recent window, everything else is shown in full,
        oldest first.
        """
        lines: list[str] = [f"Meeting Duration: {self.duration_minutes} minutes"]
        if self.current_topic is not None:
            lines.append(f"Current Topic: {self.current_topic}")
        lines.append("")

        if self.recent_chunks:
            lines.append("=== Recent Conversation ===")
            for chunk in self.recent_chunks[-recent_window:]:
                lines.append(f"[{chunk.timestamp}] {chunk.text}")
            lines.append("")

        if self.micro_summaries:
            lines.append("=== Previous Discussion Summaries ===")
            for micro in self.micro_summaries[-micro_window:]:
                lines.append(f"• {micro.summary}")
            lines.append("")

        if self.section_summaries:
            lines.append("=== Earlier Meeting Highlights ===")
            for section in self.section_summaries:
                lines.append(f"• {section}")
            lines.append("")

        if self.decisions:
            lines.append("=== Decisions Made ===")
            for decision in self.decisions:
                lines.append(f"• {decision.description}")
            lines.append("")

        if self.action_items:
            lines.append("=== Action Items ===")
            for item in self.action_items:
                lines.append(f"• {item.task} (Assigned to: {item.assignee})")

        return "\n".join(lines).rstrip("\n") + "\n"


class MeetingStats(BaseModel):
    """Point-in-time counters for the UI collaborator."""

    is_active: bool
    session_id: str | None = None
    duration_minutes: int = 0
    transcript_chunks: int = 0
    micro_summaries: int = 0
    section_summaries: int = 0
    decisions: int = 0
    action_items: int = 0
