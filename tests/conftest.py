"""Shared fixtures and in-memory test doubles.

Provides:
- FakeClock: injectable epoch-millis clock advanced explicitly by tests
- FakeProvider: scripted ProviderClient that records every call
- store / orchestrator / scheduler / generator / service fixtures wired
  to the fake clock
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import pytest

from src.listener.compaction.scheduler import CompactionScheduler
from src.listener.context.models import TranscriptChunk
from src.listener.context.store import ContextStore
from src.listener.core.clock import format_clock_time
from src.listener.minutes.archive import InMemoryMeetingArchive
from src.listener.minutes.generator import MinutesGenerator
from src.listener.providers.base import LLMResponse, ProviderClient, SummaryRequest, SummaryType
from src.listener.providers.orchestrator import ProviderOrchestrator
from src.listener.sessions.service import MeetingSessionService

START_MS = 1_700_000_000_000


class FakeClock:
    """Callable clock returning a controllable epoch-millis value."""

    def __init__(self, start_ms: int = START_MS) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, minutes: float = 0, seconds: float = 0) -> int:
        self.now += int(minutes * 60_000 + seconds * 1000)
        return self.now


class FakeProvider(ProviderClient):
    """Scripted provider.

    Args:
        name: Provider name used by the orchestrator.
        answer: Content returned by answer_question on success.
        summary: Default text returned by generate_summary on success.
        summaries: Per-type overrides for generate_summary.
        fail: Return failure results instead of content.
        error: Exception raised from every call.
        delay: Seconds to sleep before answering.
        before_summary: Hook awaited at the start of generate_summary.
    """

    def __init__(
        self,
        name: str,
        answer: str = "Fake answer",
        summary: str = "Fake summary about the project",
        summaries: dict[SummaryType, str] | None = None,
        fail: bool = False,
        error: Exception | None = None,
        delay: float = 0.0,
        before_summary: Callable[[SummaryRequest], Awaitable[None]] | None = None,
    ) -> None:
        self.name = name
        self.display_name = name.title()
        self.answer = answer
        self.summary = summary
        self.summaries = summaries or {}
        self.fail = fail
        self.error = error
        self.delay = delay
        self.before_summary = before_summary
        self.question_calls: list[tuple[str, str]] = []
        self.summary_calls: list[SummaryRequest] = []

    async def answer_question(self, question: str, context: str) -> LLMResponse:
        self.question_calls.append((question, context))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.fail:
            return LLMResponse(content="", provider=self.name, success=False, error_message="boom")
        return LLMResponse(content=self.answer, provider=self.name, success=True)

    async def generate_summary(self, request: SummaryRequest) -> str:
        self.summary_calls.append(request)
        if self.before_summary is not None:
            await self.before_summary(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.fail:
            return "Error generating summary: boom"
        return self.summaries.get(request.summary_type, self.summary)


def make_chunk(text: str, timestamp_ms: int = START_MS, speaker: str | None = None) -> TranscriptChunk:
    return TranscriptChunk(
        text=text,
        timestamp=format_clock_time(timestamp_ms),
        timestamp_ms=timestamp_ms,
        speaker=speaker,
    )


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> ContextStore:
    return ContextStore(max_recent=20, clock=clock)


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider("claude")


@pytest.fixture
def orchestrator(provider) -> ProviderOrchestrator:
    return ProviderOrchestrator([provider], preferred="claude", timeout=5.0)


@pytest.fixture
def scheduler(store, orchestrator, clock) -> CompactionScheduler:
    return CompactionScheduler(store, orchestrator, clock=clock)


@pytest.fixture
def generator(orchestrator, clock) -> MinutesGenerator:
    return MinutesGenerator(orchestrator, clock=clock)


@pytest.fixture
def archive() -> InMemoryMeetingArchive:
    return InMemoryMeetingArchive()


@pytest.fixture
async def service(store, orchestrator, scheduler, generator, archive, clock):
    svc = MeetingSessionService(
        store=store,
        orchestrator=orchestrator,
        scheduler=scheduler,
        minutes_generator=generator,
        archive=archive,
        grace_seconds=1.0,
        duration_refresh_seconds=0,
        clock=clock,
    )
    yield svc
    await svc.shutdown()
