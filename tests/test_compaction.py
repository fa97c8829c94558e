"""CompactionScheduler tests: eligibility, micro/section compaction and trimming."""

from __future__ import annotations

import pytest

from src.listener.compaction.scheduler import CompactionScheduler
from src.listener.compaction.topics import extract_topics
from src.listener.context.models import MicroSummary
from src.listener.context.store import ContextStore
from src.listener.providers.base import SummaryType
from src.listener.providers.orchestrator import ProviderOrchestrator

from tests.conftest import FakeProvider, make_chunk


def _append(store, clock, count, text="We discussed the release plan"):
    for i in range(count):
        store.append_chunk(make_chunk(f"{text} {i}", clock.now))


def _seed_micros(store, clock, count):
    session_id = store.active_session_id()
    micros = []
    for i in range(count):
        micro = MicroSummary(
            summary=f"micro {i}",
            start_time_ms=clock.now + i,
            end_time_ms=clock.now + i,
        )
        store.add_micro_summary(session_id, micro)
        micros.append(micro)
    return micros


# ── Topics ───────────────────────────────────────────────────────────────────


class TestExtractTopics:
    def test_vocabulary_order_and_case(self):
        assert extract_topics("Release BUG triage before the deadline") == ["deadline", "bug", "release"]

    def test_substring_matches(self):
        assert extract_topics("several bugs and features") == ["feature", "bug"]

    def test_no_topics(self):
        assert extract_topics("lunch plans") == []


# ── Micro Compaction ─────────────────────────────────────────────────────────


class TestMicroCompaction:
    async def test_not_before_five_chunks(self, store, scheduler, provider, clock):
        store.start_session("Alice")
        _append(store, clock, 4)
        clock.advance(minutes=10)

        outcome = await scheduler.run_cycle()

        assert outcome.micro_created is False
        assert provider.summary_calls == []
        assert store.snapshot().micro_summaries == []

    async def test_not_before_interval(self, store, scheduler, provider, clock):
        store.start_session("Alice")
        clock.advance(minutes=4, seconds=59)
        _append(store, clock, 5)

        outcome = await scheduler.run_cycle()

        assert outcome.micro_created is False
        assert provider.summary_calls == []

    async def test_exactly_one_micro_per_trigger(self, store, scheduler, provider, clock):
        store.start_session("Alice")
        _append(store, clock, 5)
        clock.advance(minutes=5)

        first = await scheduler.run_cycle()
        second = await scheduler.run_cycle()

        assert first.micro_created is True
        assert second.micro_created is False
        micros = store.snapshot().micro_summaries
        assert len(micros) == 1
        assert micros[0].summary == "Fake summary about the project"
        assert micros[0].end_time_ms == clock.now
        assert micros[0].start_time_ms == store.get_chunks()[0].timestamp_ms
        assert provider.summary_calls[0].summary_type is SummaryType.MICRO
        assert provider.summary_calls[0].max_length == 100

    async def test_micro_sets_topics_and_current_topic(self, store, scheduler, clock):
        store.start_session("Alice")
        _append(store, clock, 5)
        clock.advance(minutes=6)

        await scheduler.run_cycle()

        snapshot = store.snapshot()
        assert snapshot.micro_summaries[0].topics == ["project"]
        assert snapshot.current_topic == "project"

    async def test_content_uses_timestamped_lines(self, store, scheduler, provider, clock):
        store.start_session("Alice")
        _append(store, clock, 5, text="Point")
        clock.advance(minutes=5)

        await scheduler.run_cycle()

        lines = provider.summary_calls[0].content.splitlines()
        assert len(lines) == 5
        assert lines[0].startswith("[") and lines[0].endswith("] Point 0")

    async def test_failure_leaves_context_unchanged(self, clock):
        store = ContextStore(clock=clock)
        failing = FakeProvider("claude", fail=True)
        scheduler = CompactionScheduler(store, ProviderOrchestrator([failing]), clock=clock)
        store.start_session("Alice")
        _append(store, clock, 5)
        clock.advance(minutes=5)

        outcome = await scheduler.run_cycle()

        assert outcome.micro_created is False
        assert outcome.skipped == ["micro"]
        assert store.snapshot().micro_summaries == []
        assert len(store.get_chunks()) == 5

    async def test_no_providers_skips_micro(self, clock):
        store = ContextStore(clock=clock)
        scheduler = CompactionScheduler(store, ProviderOrchestrator(), clock=clock)
        store.start_session("Alice")
        _append(store, clock, 5)
        clock.advance(minutes=5)

        outcome = await scheduler.run_cycle()

        assert outcome.skipped == ["micro"]
        assert store.snapshot().micro_summaries == []

    async def test_result_discarded_when_session_changes(self, clock):
        store = ContextStore(clock=clock)

        async def restart_session(_request):
            store.start_session("Bob")

        provider = FakeProvider("claude", before_summary=restart_session)
        scheduler = CompactionScheduler(store, ProviderOrchestrator([provider]), clock=clock)
        store.start_session("Alice")
        _append(store, clock, 5)
        clock.advance(minutes=5)

        outcome = await scheduler.run_cycle()

        snapshot = store.snapshot()
        assert outcome.micro_created is False
        assert snapshot.subject_name == "Bob"
        assert snapshot.micro_summaries == []


# ── Section Compaction ───────────────────────────────────────────────────────


class TestSectionCompaction:
    async def test_consumes_three_oldest(self, store, scheduler, provider, clock):
        store.start_session("Alice")
        micros = _seed_micros(store, clock, 4)
        clock.advance(minutes=30)

        outcome = await scheduler.run_cycle()

        snapshot = store.snapshot()
        assert outcome.section_created is True
        assert snapshot.section_summaries == ["Fake summary about the project"]
        assert snapshot.micro_summaries == micros[3:]
        assert snapshot.last_section_compaction_ms == clock.now
        request = provider.summary_calls[-1]
        assert request.summary_type is SummaryType.SECTION
        assert request.content == "micro 0\nmicro 1\nmicro 2"

    async def test_failure_keeps_micro_summaries(self, clock):
        store = ContextStore(clock=clock)
        failing = FakeProvider("claude", fail=True)
        scheduler = CompactionScheduler(store, ProviderOrchestrator([failing]), clock=clock)
        store.start_session("Alice")
        micros = _seed_micros(store, clock, 3)
        clock.advance(minutes=31)

        outcome = await scheduler.run_cycle()

        snapshot = store.snapshot()
        assert outcome.section_created is False
        assert "section" in outcome.skipped
        assert snapshot.micro_summaries == micros
        assert snapshot.section_summaries == []

    async def test_needs_three_micro_summaries(self, store, scheduler, clock):
        store.start_session("Alice")
        _seed_micros(store, clock, 2)
        clock.advance(minutes=45)

        outcome = await scheduler.run_cycle()

        assert outcome.section_created is False

    async def test_interval_measured_from_last_section(self, store, scheduler, clock):
        store.start_session("Alice")
        _seed_micros(store, clock, 3)
        clock.advance(minutes=30)
        await scheduler.run_cycle()

        _seed_micros(store, clock, 3)
        clock.advance(minutes=29)
        early = await scheduler.run_cycle()
        clock.advance(minutes=1)
        due = await scheduler.run_cycle()

        assert early.section_created is False
        assert due.section_created is True
        assert len(store.snapshot().section_summaries) == 2


# ── Trimming ─────────────────────────────────────────────────────────────────


class TestTrimming:
    async def test_cycle_trims_to_bound(self, clock, orchestrator):
        store = ContextStore(max_recent=20, clock=clock)
        scheduler = CompactionScheduler(store, orchestrator, clock=clock)
        store.start_session("Alice")

        for i in range(35):
            store.append_chunk(make_chunk(f"chunk {i}", clock.now))
            clock.advance(seconds=20)
            await scheduler.run_cycle()
            assert len(store.get_chunks()) <= 20

    async def test_trim_runs_even_when_compaction_fails(self, clock):
        store = ContextStore(max_recent=5, clock=clock)
        failing = FakeProvider("claude", error=RuntimeError("down"))
        scheduler = CompactionScheduler(store, ProviderOrchestrator([failing]), clock=clock)
        store.start_session("Alice")
        _append(store, clock, 8)
        clock.advance(minutes=5)

        outcome = await scheduler.run_cycle()

        assert outcome.trimmed == 3
        assert len(store.get_chunks()) == 5

    async def test_idle_cycle_is_noop(self, scheduler):
        outcome = await scheduler.run_cycle()
        assert outcome.micro_created is False
        assert outcome.trimmed == 0


@pytest.mark.parametrize("minutes,expected", [(4, False), (5, True), (12, True)])
def test_micro_due_boundaries(store, scheduler, clock, minutes, expected):
    store.start_session("Alice")
    _append(store, clock, 5)
    snapshot = store.snapshot()
    assert scheduler.micro_due(snapshot, clock.now + minutes * 60_000) is expected
