"""MeetingSessionService -- lifecycle of the single listening session.

Wires the ContextStore, CompactionScheduler, ProviderOrchestrator,
MinutesGenerator and MeetingArchive together and owns every background task
the session needs:

- one compaction task at a time; a cycle requested while one is running is
  coalesced into a single re-run once it finishes
- a duration refresher that periodically recomputes the derived duration
- fire-and-forget mention notifications

Ingestion never awaits a provider. Ending a session gives in-flight
compaction a bounded grace period, then cancels it.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog

from src.listener.compaction.scheduler import CompactionScheduler
from src.listener.config import Settings
from src.listener.context.models import MeetingContext, MeetingStats, TranscriptChunk
from src.listener.context.store import ContextStore
from src.listener.core.clock import Clock, format_clock_time, now_ms
from src.listener.minutes.archive import InMemoryMeetingArchive, MeetingArchive
from src.listener.minutes.generator import MinutesGenerator
from src.listener.minutes.heuristics import action_item_from_chunk, decision_from_chunk
from src.listener.minutes.schemas import ArchivedSession, MeetingRecord
from src.listener.providers.base import LLMResponse
from src.listener.providers.orchestrator import ProviderOrchestrator
from src.listener.sessions.ingest import TranscriptCleaner
from src.listener.sessions.state import SessionActive, SessionFinalizing, SessionIdle

logger = structlog.get_logger(__name__)

MentionCallback = Callable[[str, TranscriptChunk], Awaitable[None]]


class MeetingSessionService:
    """Start, feed, query and end the active meeting.

    Args:
        store: ContextStore holding the active session.
        orchestrator: ProviderOrchestrator for question answering.
        scheduler: CompactionScheduler run after each ingestion.
        minutes_generator: Builds the record at session end.
        archive: Receives finished sessions.
        grace_seconds: How long end() waits for in-flight compaction.
        duration_refresh_seconds: Period of the duration refresher; 0 disables it.
        on_mention: Awaited with (subject_name, chunk) when the subject's
            name appears in a new chunk.
        clock: Epoch-millis time source.
    """

    def __init__(
        self,
        store: ContextStore,
        orchestrator: ProviderOrchestrator,
        scheduler: CompactionScheduler,
        minutes_generator: MinutesGenerator,
        archive: MeetingArchive,
        grace_seconds: float = 10.0,
        duration_refresh_seconds: float = 60.0,
        on_mention: MentionCallback | None = None,
        clock: Clock = now_ms,
    ) -> None:
        self._store = store
        self._orchestrator = orchestrator
        self._scheduler = scheduler
        self._minutes = minutes_generator
        self._archive = archive
        self._grace_seconds = grace_seconds
        self._duration_refresh_seconds = duration_refresh_seconds
        self._on_mention = on_mention
        self._clock = clock

        self._cleaner = TranscriptCleaner()
        self._finalizing_session_id: str | None = None
        self._compaction_task: asyncio.Task | None = None
        self._compaction_rerun = False
        self._refresh_task: asyncio.Task | None = None
        self._notification_tasks: set[asyncio.Task] = set()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        archive: MeetingArchive | None = None,
        on_mention: MentionCallback | None = None,
        clock: Clock = now_ms,
    ) -> MeetingSessionService:
        store = ContextStore(
            max_recent=settings.MAX_RECENT_CHUNKS,
            recent_window=settings.CONTEXT_RECENT_WINDOW,
            micro_window=settings.CONTEXT_MICRO_WINDOW,
            clock=clock,
        )
        orchestrator = ProviderOrchestrator.from_settings(settings)
        return cls(
            store=store,
            orchestrator=orchestrator,
            scheduler=CompactionScheduler.from_settings(store, orchestrator, settings, clock=clock),
            minutes_generator=MinutesGenerator.from_settings(orchestrator, settings, clock=clock),
            archive=archive or InMemoryMeetingArchive(),
            grace_seconds=settings.END_SESSION_GRACE_SECONDS,
            duration_refresh_seconds=settings.DURATION_REFRESH_SECONDS,
            on_mention=on_mention,
            clock=clock,
        )

    @property
    def store(self) -> ContextStore:
        return self._store

    @property
    def orchestrator(self) -> ProviderOrchestrator:
        return self._orchestrator

    @property
    def archive(self) -> MeetingArchive:
        return self._archive

    # ── State ────────────────────────────────────────────────────────────

    @property
    def state(self) -> SessionIdle | SessionActive | SessionFinalizing:
        snapshot = self._store.snapshot()
        finalizing = self._finalizing_session_id
        if finalizing is not None and (snapshot is None or snapshot.session_id == finalizing):
            return SessionFinalizing(session_id=finalizing)
        if snapshot is None:
            return SessionIdle()
        return SessionActive(
            session_id=snapshot.session_id,
            subject_name=snapshot.subject_name,
            start_time_ms=snapshot.start_time_ms,
            duration_minutes=snapshot.duration_minutes,
        )

    # ── Lifecycle ────────────────────────────────────────────────────────

    async def start(self, subject_name: str) -> MeetingContext:
        """Begin a new session, discarding any previous one without minutes."""
        await self._cancel_background()
        self._cleaner.reset()
        context = self._store.start_session(subject_name)
        if self._duration_refresh_seconds > 0:
            self._refresh_task = asyncio.create_task(
                self._refresh_duration_loop(), name="listener_duration_refresh"
            )
        logger.info("session.started", session_id=context.session_id, subject_name=subject_name)
        return context

    async def end(self) -> MeetingRecord | None:
        """Finish the active session and archive its minutes.

        Returns:
            The MeetingRecord, or None when no session was active.
        """
        session_id = self._store.active_session_id()
        if session_id is None or session_id == self._finalizing_session_id:
            return None

        self._finalizing_session_id = session_id
        try:
            await self._cancel_task(self._refresh_task)
            self._refresh_task = None
            await self._await_compaction(self._grace_seconds)

            context = self._store.end_session(session_id)
            if context is None:
                logger.info("session.end_superseded", session_id=session_id)
                return None

            record = await self._minutes.generate(context, end_time_ms=self._clock())
            archived = ArchivedSession(record=record, chunks=list(context.recent_chunks))
            try:
                await self._archive.save(archived)
            except Exception:
                logger.error("session.archive_failed", session_id=session_id, exc_info=True)

            logger.info(
                "session.ended",
                session_id=session_id,
                duration_minutes=record.duration_minutes,
                transcript_count=record.transcript_count,
            )
            return record
        finally:
            if self._finalizing_session_id == session_id:
                self._finalizing_session_id = None
            # a session started while this one was finalizing keeps its cleaner state
            if self._store.active_session_id() is None:
                self._cleaner.reset()

    async def cancel(self) -> bool:
        """Abort the active session without producing minutes.

        Returns:
            True if a session was active.
        """
        await self._cancel_background()
        context = self._store.end_session()
        self._cleaner.reset()
        if context is not None:
            logger.info("session.cancelled", session_id=context.session_id)
        return context is not None

    async def shutdown(self) -> None:
        """Cancel all background work. The active session, if any, is left in place."""
        await self._cancel_background()
        for task in list(self._notification_tasks):
            await self._cancel_task(task)

    # ── Ingestion ────────────────────────────────────────────────────────

    async def ingest(self, raw_text: str, speaker: str | None = None) -> TranscriptChunk | None:
        """Record one transcript fragment.

        Returns:
            The stored chunk, or None when the fragment was skipped (no active
            session, finalizing, empty or a consecutive duplicate).
        """
        session_id = self._store.active_session_id()
        if session_id is None or session_id == self._finalizing_session_id:
            logger.debug("session.ingest_ignored", reason="not_listening")
            return None

        cleaned = self._cleaner.clean(raw_text, speaker)
        if cleaned is None:
            return None

        timestamp_ms = self._clock()
        chunk = TranscriptChunk(
            text=cleaned.text,
            timestamp=format_clock_time(timestamp_ms),
            timestamp_ms=timestamp_ms,
            speaker=cleaned.speaker,
        )
        if not self._store.append_chunk(chunk):
            return None

        subject = self._store.active_subject_name() or ""
        self._track_items(chunk, session_id, subject)
        self._notify_mention(chunk, subject)
        self._schedule_compaction()
        return chunk

    def _track_items(self, chunk: TranscriptChunk, session_id: str, subject: str) -> None:
        decision = decision_from_chunk(chunk)
        if decision is not None:
            self._store.add_decision(decision, session_id=session_id)
        action_item = action_item_from_chunk(chunk, subject)
        if action_item is not None:
            self._store.add_action_item(action_item, session_id=session_id)

    def _notify_mention(self, chunk: TranscriptChunk, subject: str) -> None:
        if not subject or not self._store.was_subject_mentioned(chunk.text):
            return
        logger.info("session.subject_mentioned", subject_name=subject, timestamp=chunk.timestamp)
        if self._on_mention is None:
            return
        task = asyncio.create_task(self._deliver_mention(subject, chunk), name="listener_mention")
        self._notification_tasks.add(task)
        task.add_done_callback(self._notification_tasks.discard)

    async def _deliver_mention(self, subject: str, chunk: TranscriptChunk) -> None:
        try:
            await self._on_mention(subject, chunk)
        except Exception:
            logger.warning("session.mention_callback_failed", exc_info=True)

    # ── Queries ──────────────────────────────────────────────────────────

    async def ask(self, question: str) -> LLMResponse:
        """Answer a question against the condensed context of the active session."""
        context = self._store.get_condensed_context()
        response = await self._orchestrator.answer_question(question, context)
        logger.info(
            "session.question_answered",
            provider=response.provider,
            success=response.success,
            error_code=response.error_code,
        )
        return response

    def stats(self) -> MeetingStats:
        return self._store.get_meeting_stats()

    def condensed_context(self) -> str:
        return self._store.get_condensed_context()

    # ── Background Work ──────────────────────────────────────────────────

    def _schedule_compaction(self) -> None:
        task = self._compaction_task
        if task is not None and not task.done():
            self._compaction_rerun = True
            return
        self._compaction_rerun = False
        self._compaction_task = asyncio.create_task(self._compaction_loop(), name="listener_compaction")

    async def _compaction_loop(self) -> None:
        while True:
            self._compaction_rerun = False
            try:
                outcome = await self._scheduler.run_cycle()
                logger.debug(
                    "session.compaction_cycle",
                    micro_created=outcome.micro_created,
                    section_created=outcome.section_created,
                    skipped=outcome.skipped,
                    trimmed=outcome.trimmed,
                )
            except asyncio.CancelledError:
                logger.info("session.compaction_cancelled")
                raise
            except Exception:
                logger.error("session.compaction_failed", exc_info=True)
            if not self._compaction_rerun:
                return

    async def wait_for_compaction(self) -> None:
        """Block until the current compaction task, including re-runs, is done."""
        task = self._compaction_task
        if task is not None and not task.done():
            await task

    async def _await_compaction(self, timeout: float) -> None:
        task = self._compaction_task
        if task is None or task.done():
            return
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout)
            if not done:
                logger.warning("session.compaction_grace_expired", grace_seconds=timeout)
                await self._cancel_task(task)
        finally:
            if self._compaction_task is task:
                self._compaction_task = None
                self._compaction_rerun = False

    async def _refresh_duration_loop(self) -> None:
        while True:
            try:
                await asyncio.sleep(self._duration_refresh_seconds)
                self._store.refresh_duration()
            except asyncio.CancelledError:
                logger.debug("session.duration_refresh_stopped")
                break

    async def _cancel_background(self) -> None:
        await self._cancel_task(self._compaction_task)
        self._compaction_task = None
        self._compaction_rerun = False
        await self._cancel_task(self._refresh_task)
        self._refresh_task = None

    @staticmethod
    async def _cancel_task(task: asyncio.Task | None) -> None:
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
