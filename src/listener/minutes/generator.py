"""MinutesGenerator -- turns an ended session into a MeetingRecord.

Decisions and action items always start from a keyword baseline (items
tracked live during the session plus a scan of the remaining recent chunks).
For sessions past the short-session threshold with at least one provider
configured, structured DECISION / ACTION_ITEM extraction is layered on top;
unparseable output is logged and the baseline stands.
"""

from __future__ import annotations

import structlog

from src.listener.config import Settings
from src.listener.context.models import ActionItem, Decision, MeetingContext, TranscriptChunk
from src.listener.core.clock import Clock, elapsed_minutes, now_ms
from src.listener.core.errors import MalformedProviderOutput
from src.listener.minutes.heuristics import (
    merge_action_items,
    merge_decisions,
    scan_action_items,
    scan_decisions,
)
from src.listener.minutes.parsing import parse_action_items, parse_decisions
from src.listener.minutes.schemas import MeetingRecord
from src.listener.providers.base import SummaryRequest, SummaryType, is_failed_summary
from src.listener.providers.orchestrator import ProviderOrchestrator

logger = structlog.get_logger(__name__)

SHORT_SESSION_MINUTES = 2
MAX_LISTED_ITEMS = 10
DECISION_CHAR_LIMIT = 200
ACTION_ITEM_CHAR_LIMIT = 150
FINAL_SUMMARY_MAX_WORDS = 200
EXTRACTION_MAX_WORDS = 150

NO_DECISIONS = "No decisions made"
NO_ACTION_ITEMS = "No action items"


def format_decisions(decisions: list[Decision]) -> str:
    if not decisions:
        return NO_DECISIONS
    return "\n\n".join(
        f"• {decision.description[:DECISION_CHAR_LIMIT]}"
        for decision in decisions[:MAX_LISTED_ITEMS]
    )


def format_action_items(items: list[ActionItem]) -> str:
    if not items:
        return NO_ACTION_ITEMS
    return "\n\n".join(
        f"• {item.task[:ACTION_ITEM_CHAR_LIMIT]} → {item.assignee}"
        for item in items[:MAX_LISTED_ITEMS]
    )


def brief_summary(chunks: list[TranscriptChunk]) -> str:
    """Synthetic summary for sessions too short to be worth a provider call."""
    if not chunks:
        return "Brief meeting with no transcribed discussion."
    return "Brief meeting covering: " + ", ".join(chunk.text[:50] for chunk in chunks[:3])


def fallback_summary(duration_minutes: int, chunks: list[TranscriptChunk]) -> str:
    """Template summary used when no provider produced one."""
    summary = f"Meeting lasted {duration_minutes} minutes."
    if not chunks:
        return summary
    topics = ", ".join(chunk.text[:30] for chunk in chunks[:5])
    return f"{summary} Topics: {topics}."


class MinutesGenerator:
    """Produces the final minutes for an ended session.

    Args:
        orchestrator: ProviderOrchestrator for summary and extraction calls.
        short_session_minutes: Sessions shorter than this get a synthetic
            summary and no provider calls at all.
        recent_window: Recent chunks shown in the condensed context.
        micro_window: Micro summaries shown in the condensed context.
        clock: Epoch-millis time source.
    """

    def __init__(
        self,
        orchestrator: ProviderOrchestrator,
        short_session_minutes: int = SHORT_SESSION_MINUTES,
        recent_window: int = 10,
        micro_window: int = 3,
        clock: Clock = now_ms,
    ) -> None:
        self._orchestrator = orchestrator
        self._short_session_minutes = short_session_minutes
        self._recent_window = recent_window
        self._micro_window = micro_window
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        orchestrator: ProviderOrchestrator,
        settings: Settings,
        clock: Clock = now_ms,
    ) -> MinutesGenerator:
        return cls(
            orchestrator,
            short_session_minutes=settings.SHORT_SESSION_MINUTES,
            recent_window=settings.CONTEXT_RECENT_WINDOW,
            micro_window=settings.CONTEXT_MICRO_WINDOW,
            clock=clock,
        )

    async def generate(self, context: MeetingContext, end_time_ms: int | None = None) -> MeetingRecord:
        """Build the MeetingRecord for a detached session.

        The passed context is not modified.
        """
        context = context.model_copy(deep=True)
        end = end_time_ms if end_time_ms is not None else self._clock()
        context.duration_minutes = elapsed_minutes(context.start_time_ms, end)
        chunks = context.recent_chunks
        is_short = context.duration_minutes < self._short_session_minutes

        decisions = merge_decisions(context.decisions, scan_decisions(chunks))
        action_items = merge_action_items(
            context.action_items,
            scan_action_items(chunks, context.subject_name),
        )

        use_providers = not is_short and self._orchestrator.has_available_provider()
        if use_providers:
            condensed = context.render_condensed(self._recent_window, self._micro_window)
            decisions = merge_decisions(decisions, await self._extract_decisions(condensed, end))
            action_items = merge_action_items(
                action_items,
                await self._extract_action_items(condensed, context.subject_name, end),
            )
            summary = await self._final_summary(context, condensed)
        elif is_short:
            summary = brief_summary(chunks)
        else:
            summary = fallback_summary(context.duration_minutes, chunks)

        record = MeetingRecord(
            session_id=context.session_id,
            subject_name=context.subject_name,
            start_time_ms=context.start_time_ms,
            end_time_ms=end,
            duration_minutes=context.duration_minutes,
            summary=summary,
            decisions=format_decisions(decisions),
            action_items=format_action_items(action_items),
            transcript_count=context.total_chunks,
            created_at_ms=self._clock(),
        )
        logger.info(
            "minutes.generated",
            session_id=record.session_id,
            duration_minutes=record.duration_minutes,
            short_session=is_short,
            used_providers=use_providers,
            decisions=len(decisions),
            action_items=len(action_items),
        )
        return record

    async def _final_summary(self, context: MeetingContext, condensed: str) -> str:
        summary = await self._orchestrator.generate_summary(
            SummaryRequest(
                content=condensed,
                summary_type=SummaryType.FINAL,
                max_length=FINAL_SUMMARY_MAX_WORDS,
            )
        )
        if is_failed_summary(summary):
            logger.warning("minutes.final_summary_failed", reason=(summary or "")[:120])
            return fallback_summary(context.duration_minutes, context.recent_chunks)
        return summary.strip()

    async def _extract_decisions(self, condensed: str, timestamp_ms: int) -> list[Decision]:
        raw = await self._orchestrator.generate_summary(
            SummaryRequest(
                content=condensed,
                summary_type=SummaryType.DECISION,
                max_length=EXTRACTION_MAX_WORDS,
            )
        )
        try:
            return parse_decisions(raw, timestamp_ms)
        except MalformedProviderOutput as exc:
            logger.warning("minutes.decision_extraction_malformed", error=str(exc))
            return []

    async def _extract_action_items(
        self, condensed: str, default_assignee: str, timestamp_ms: int
    ) -> list[ActionItem]:
        raw = await self._orchestrator.generate_summary(
            SummaryRequest(
                content=condensed,
                summary_type=SummaryType.ACTION_ITEM,
                max_length=EXTRACTION_MAX_WORDS,
            )
        )
        try:
            return parse_action_items(raw, default_assignee, timestamp_ms)
        except MalformedProviderOutput as exc:
            logger.warning("minutes.action_item_extraction_malformed", error=str(exc))
            return []
