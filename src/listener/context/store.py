"""ContextStore -- sole mutable owner of the active meeting.

Every read and write goes through one re-entrant lock. Critical sections are
short and synchronous; callers that need a provider take a snapshot, release
the lock, call out, and come back with a session-scoped mutation. Mutations
tagged with a session id that is no longer active are discarded, which is how
cancelled or superseded compaction results are dropped.
"""

from __future__ import annotations

import threading

import structlog

from src.listener.context.models import (
    ActionItem,
    Decision,
    MeetingContext,
    MeetingStats,
    MicroSummary,
    TranscriptChunk,
)
from src.listener.core.clock import Clock, elapsed_minutes, now_ms
from src.listener.core.errors import NoActiveSession

logger = structlog.get_logger(__name__)

NO_ACTIVE_MEETING = "No active meeting"


class ContextStore:
    """Thread-safe holder of the single active MeetingContext.

    Usage:
        store = ContextStore(max_recent=20)
        store.start_session("Alice")
        store.append_chunk(chunk)
        text = store.get_condensed_context()
        ended = store.end_session()

    Args:
        max_recent: Upper bound on recent_chunks after trim_recent().
        recent_window: Recent chunks shown in the condensed context.
        micro_window: Micro summaries shown in the condensed context.
        clock: Epoch-millis time source.
    """

    def __init__(
        self,
        max_recent: int = 20,
        recent_window: int = 10,
        micro_window: int = 3,
        clock: Clock = now_ms,
    ) -> None:
        self._max_recent = max_recent
        self._recent_window = recent_window
        self._micro_window = micro_window
        self._clock = clock
        self._active: MeetingContext | None = None
        self._lock = threading.RLock()

    @property
    def max_recent(self) -> int:
        return self._max_recent

    # ── Lifecycle ────────────────────────────────────────────────────────

    def start_session(self, subject_name: str) -> MeetingContext:
        """End any existing session and install a new one.

        Returns:
            A snapshot of the freshly created session.
        """
        with self._lock:
            self.end_session()
            context = MeetingContext(
                start_time_ms=self._clock(),
                subject_name=subject_name,
            )
            self._active = context
            logger.info(
                "context.session_started",
                session_id=context.session_id,
                start_time_ms=context.start_time_ms,
            )
            return context.model_copy(deep=True)

    def end_session(self, session_id: str | None = None) -> MeetingContext | None:
        """Detach the active session and return it, or None if there was none.

        When session_id is given, only that session is ended; a newer session
        is left in place and None is returned.
        """
        with self._lock:
            context = self._active
            if context is None:
                return None
            if session_id is not None and context.session_id != session_id:
                return None
            context.recompute_duration(self._clock())
            self._active = None
            logger.info(
                "context.session_ended",
                session_id=context.session_id,
                duration_minutes=context.duration_minutes,
            )
            return context

    def is_active(self) -> bool:
        with self._lock:
            return self._active is not None

    def active_session_id(self) -> str | None:
        with self._lock:
            return self._active.session_id if self._active else None

    def active_subject_name(self) -> str | None:
        with self._lock:
            return self._active.subject_name if self._active else None

    def snapshot(self) -> MeetingContext | None:
        """Deep copy of the active session, safe to read outside the lock."""
        with self._lock:
            if self._active is None:
                return None
            self._active.recompute_duration(self._clock())
            return self._active.model_copy(deep=True)

    def require_session(self) -> MeetingContext:
        """Like snapshot(), but raises NoActiveSession instead of returning None."""
        context = self.snapshot()
        if context is None:
            raise NoActiveSession()
        return context

    # ── Ingestion ────────────────────────────────────────────────────────

    def append_chunk(self, chunk: TranscriptChunk) -> bool:
        """Append a chunk to the active session. No-op without a session."""
        with self._lock:
            context = self._active
            if context is None:
                return False
            context.recent_chunks.append(chunk)
            context.total_chunks += 1
            context.recompute_duration(self._clock())
            logger.debug(
                "context.chunk_added",
                recent=len(context.recent_chunks),
                duration_minutes=context.duration_minutes,
            )
            return True

    def trim_recent(self) -> int:
        """Drop the oldest recent chunks beyond max_recent.

        Returns:
            Number of chunks removed.
        """
        with self._lock:
            context = self._active
            if context is None:
                return 0
            excess = len(context.recent_chunks) - self._max_recent
            if excess <= 0:
                return 0
            del context.recent_chunks[:excess]
            logger.debug("context.recent_trimmed", removed=excess)
            return excess

    def refresh_duration(self) -> int:
        """Recompute the derived duration. Idempotent."""
        with self._lock:
            if self._active is None:
                return 0
            return self._active.recompute_duration(self._clock())

    # ── Session-scoped mutations ─────────────────────────────────────────

    def _context_for(self, session_id: str) -> MeetingContext | None:
        context = self._active
        if context is None or context.session_id != session_id:
            logger.info(
                "context.stale_mutation_discarded",
                session_id=session_id,
                active_session_id=context.session_id if context else None,
            )
            return None
        return context

    def add_micro_summary(self, session_id: str, summary: MicroSummary) -> bool:
        with self._lock:
            context = self._context_for(session_id)
            if context is None:
                return False
            context.micro_summaries.append(summary)
            logger.debug("context.micro_summary_added", count=len(context.micro_summaries))
            return True

    def apply_section_summary(
        self,
        session_id: str,
        summary: str,
        consumed: list[MicroSummary],
        compacted_at_ms: int,
    ) -> bool:
        """Append a section summary and evict the micro summaries it covers.

        The consumed summaries must still be the oldest entries of the list;
        otherwise nothing changes.
        """
        with self._lock:
            context = self._context_for(session_id)
            if context is None:
                return False
            head = context.micro_summaries[: len(consumed)]
            if head != consumed:
                logger.warning(
                    "context.section_source_changed",
                    session_id=session_id,
                    expected=len(consumed),
                )
                return False
            context.section_summaries.append(summary)
            del context.micro_summaries[: len(consumed)]
            context.last_section_compaction_ms = compacted_at_ms
            logger.debug(
                "context.section_summary_added",
                sections=len(context.section_summaries),
                micro_remaining=len(context.micro_summaries),
            )
            return True

    def add_decision(self, decision: Decision, session_id: str | None = None) -> bool:
        """Record a decision unless one with the same text already exists."""
        with self._lock:
            context = self._active if session_id is None else self._context_for(session_id)
            if context is None:
                return False
            if any(d.key == decision.key for d in context.decisions):
                return False
            context.decisions.append(decision)
            logger.debug("context.decision_added", description=decision.description[:80])
            return True

    def add_action_item(self, item: ActionItem, session_id: str | None = None) -> bool:
        """Record an action item unless one with the same task already exists."""
        with self._lock:
            context = self._active if session_id is None else self._context_for(session_id)
            if context is None:
                return False
            if any(a.key == item.key for a in context.action_items):
                return False
            context.action_items.append(item)
            logger.debug("context.action_item_added", task=item.task[:80], assignee=item.assignee)
            return True

    def update_current_topic(self, topic: str, session_id: str | None = None) -> bool:
        with self._lock:
            context = self._active if session_id is None else self._context_for(session_id)
            if context is None:
                return False
            context.current_topic = topic
            return True

    # ── Reads ────────────────────────────────────────────────────────────

    def get_condensed_context(self) -> str:
        with self._lock:
            if self._active is None:
                return NO_ACTIVE_MEETING
            self._active.recompute_duration(self._clock())
            return self._active.render_condensed(self._recent_window, self._micro_window)

    def get_chunks(self) -> list[TranscriptChunk]:
        with self._lock:
            if self._active is None:
                return []
            return list(self._active.recent_chunks)

    def was_subject_mentioned(self, text: str | None = None) -> bool:
        """Check the given text, or the recent chunks when text is None."""
        with self._lock:
            return self._active.was_subject_mentioned(text) if self._active else False

    def get_meeting_duration(self) -> int:
        with self._lock:
            if self._active is None:
                return 0
            return elapsed_minutes(self._active.start_time_ms, self._clock())

    def get_meeting_stats(self) -> MeetingStats:
        with self._lock:
            context = self._active
            if context is None:
                return MeetingStats(is_active=False)
            return MeetingStats(
                is_active=True,
                session_id=context.session_id,
                duration_minutes=elapsed_minutes(context.start_time_ms, self._clock()),
                transcript_chunks=len(context.recent_chunks),
                micro_summaries=len(context.micro_summaries),
                section_summaries=len(context.section_summaries),
                decisions=len(context.decisions),
                action_items=len(context.action_items),
            )
