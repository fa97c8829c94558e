"""CompactionScheduler -- hierarchical summarization of the live context.

Strategy:
- Raw chunks -> micro summary once at least MICRO_SUMMARY_MIN_CHUNKS chunks
  are held and MICRO_SUMMARY_INTERVAL has passed since the last micro
  summary ended (or since session start).
- Three oldest micro summaries -> one section summary once
  SECTION_SUMMARY_INTERVAL has passed since the last section compaction
  (or since session start).
- Every cycle ends by trimming recent chunks to the store's bound.

Provider calls happen outside the store lock: the scheduler snapshots,
calls the orchestrator, then applies the result through a session-scoped
store mutation that is dropped if the session changed meanwhile. A failed
attempt is logged and not retried until the next cycle; source material is
never discarded without a successful compression.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from src.listener.compaction.topics import extract_topics
from src.listener.config import Settings
from src.listener.context.models import MeetingContext, MicroSummary
from src.listener.context.store import ContextStore
from src.listener.core.clock import Clock, now_ms
from src.listener.core.errors import CompactionSkipped
from src.listener.core.monitoring import record_compaction
from src.listener.providers.base import SummaryRequest, SummaryType, is_failed_summary
from src.listener.providers.orchestrator import ProviderOrchestrator

logger = structlog.get_logger(__name__)

MICRO_SUMMARY_INTERVAL_MS = 5 * 60 * 1000
SECTION_SUMMARY_INTERVAL_MS = 30 * 60 * 1000
MICRO_SUMMARY_MIN_CHUNKS = 5
SECTION_SUMMARY_BATCH = 3
MICRO_SUMMARY_MAX_WORDS = 100
SECTION_SUMMARY_MAX_WORDS = 50


@dataclass
class CompactionOutcome:
    """What one scheduler cycle did."""

    micro_created: bool = False
    section_created: bool = False
    skipped: list[str] = field(default_factory=list)
    trimmed: int = 0


class CompactionScheduler:
    """Decides after each ingestion whether to compact, and performs it.

    Args:
        store: ContextStore holding the active session.
        orchestrator: ProviderOrchestrator used for summary generation.
        micro_interval_ms: Minimum gap between micro summaries.
        section_interval_ms: Minimum gap between section compactions.
        micro_min_chunks: Recent chunks required before a micro summary.
        section_batch: Micro summaries folded into one section summary.
        clock: Epoch-millis time source.
    """

    def __init__(
        self,
        store: ContextStore,
        orchestrator: ProviderOrchestrator,
        micro_interval_ms: int = MICRO_SUMMARY_INTERVAL_MS,
        section_interval_ms: int = SECTION_SUMMARY_INTERVAL_MS,
        micro_min_chunks: int = MICRO_SUMMARY_MIN_CHUNKS,
        section_batch: int = SECTION_SUMMARY_BATCH,
        clock: Clock = now_ms,
    ) -> None:
        self._store = store
        self._orchestrator = orchestrator
        self._micro_interval_ms = micro_interval_ms
        self._section_interval_ms = section_interval_ms
        self._micro_min_chunks = micro_min_chunks
        self._section_batch = section_batch
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        store: ContextStore,
        orchestrator: ProviderOrchestrator,
        settings: Settings,
        clock: Clock = now_ms,
    ) -> CompactionScheduler:
        return cls(
            store,
            orchestrator,
            micro_interval_ms=settings.MICRO_SUMMARY_INTERVAL_SECONDS * 1000,
            section_interval_ms=settings.SECTION_SUMMARY_INTERVAL_SECONDS * 1000,
            micro_min_chunks=settings.MICRO_SUMMARY_MIN_CHUNKS,
            section_batch=settings.SECTION_SUMMARY_BATCH,
            clock=clock,
        )

    # ── Eligibility ──────────────────────────────────────────────────────

    def micro_due(self, context: MeetingContext, now: int) -> bool:
        if len(context.recent_chunks) < self._micro_min_chunks:
            return False
        return now - context.last_micro_end_ms() >= self._micro_interval_ms

    def section_due(self, context: MeetingContext, now: int) -> bool:
        if len(context.micro_summaries) < self._section_batch:
            return False
        return now - context.last_section_ms() >= self._section_interval_ms

    # ── Cycle ────────────────────────────────────────────────────────────

    async def run_cycle(self) -> CompactionOutcome:
        """Run one eligibility check and any due compactions, then trim."""
        outcome = CompactionOutcome()
        try:
            snapshot = self._store.snapshot()
            if snapshot is None:
                return outcome

            if self.micro_due(snapshot, self._clock()):
                try:
                    await self._compact_micro(snapshot)
                    outcome.micro_created = True
                except CompactionSkipped as exc:
                    logger.info("compaction.skipped", level=exc.level, reason=exc.reason)
                    outcome.skipped.append(exc.level)

            snapshot = self._store.snapshot()
            if snapshot is not None and self.section_due(snapshot, self._clock()):
                try:
                    await self._compact_section(snapshot)
                    outcome.section_created = True
                except CompactionSkipped as exc:
                    logger.info("compaction.skipped", level=exc.level, reason=exc.reason)
                    outcome.skipped.append(exc.level)
        finally:
            outcome.trimmed = self._store.trim_recent()

        return outcome

    async def _compact_micro(self, snapshot: MeetingContext) -> MicroSummary:
        chunks = snapshot.recent_chunks
        content = "\n".join(f"[{chunk.timestamp}] {chunk.text}" for chunk in chunks)
        logger.info("compaction.micro_started", chunks=len(chunks), session_id=snapshot.session_id)

        summary = await self._orchestrator.generate_summary(
            SummaryRequest(
                content=content,
                summary_type=SummaryType.MICRO,
                max_length=MICRO_SUMMARY_MAX_WORDS,
            )
        )
        if is_failed_summary(summary):
            record_compaction("micro", "skipped")
            raise CompactionSkipped("micro", (summary or "empty summary")[:120])

        summary = summary.strip()
        micro = MicroSummary(
            summary=summary,
            start_time_ms=chunks[0].timestamp_ms,
            end_time_ms=self._clock(),
            topics=extract_topics(summary),
        )
        if not self._store.add_micro_summary(snapshot.session_id, micro):
            record_compaction("micro", "discarded")
            raise CompactionSkipped("micro", "session changed during compaction")

        if micro.topics:
            self._store.update_current_topic(micro.topics[0], session_id=snapshot.session_id)

        record_compaction("micro", "created")
        logger.info("compaction.micro_created", topics=micro.topics, summary_preview=summary[:80])
        return micro

    async def _compact_section(self, snapshot: MeetingContext) -> str:
        consumed = snapshot.micro_summaries[: self._section_batch]
        content = "\n".join(micro.summary for micro in consumed)
        logger.info("compaction.section_started", micro_summaries=len(consumed))

        summary = await self._orchestrator.generate_summary(
            SummaryRequest(
                content=content,
                summary_type=SummaryType.SECTION,
                max_length=SECTION_SUMMARY_MAX_WORDS,
            )
        )
        if is_failed_summary(summary):
            record_compaction("section", "skipped")
            raise CompactionSkipped("section", (summary or "empty summary")[:120])

        summary = summary.strip()
        applied = self._store.apply_section_summary(
            snapshot.session_id,
            summary,
            consumed,
            compacted_at_ms=self._clock(),
        )
        if not applied:
            record_compaction("section", "discarded")
            raise CompactionSkipped("section", "micro summaries changed during compaction")

        record_compaction("section", "created")
        logger.info("compaction.section_created", summary_preview=summary[:80])
        return summary
