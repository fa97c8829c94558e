"""ProviderOrchestrator tests: fallback order and failure markers."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from src.listener.config import Settings
from src.listener.core.errors import ProviderExhausted, ProviderUnavailable, UnknownProvider
from src.listener.providers.base import SummaryRequest, SummaryType, is_failed_summary
from src.listener.providers.orchestrator import (
    PROVIDER_FALLBACK_FAILED,
    PROVIDER_NONE,
    SUMMARY_EXHAUSTED,
    SUMMARY_NOT_CONFIGURED,
    ProviderOrchestrator,
)

from tests.conftest import FakeProvider


def _settings(**overrides) -> Settings:
    values = {"ANTHROPIC_API_KEY": "", "GEMINI_API_KEY": "", "EURON_API_KEY": ""}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def _request(summary_type: SummaryType = SummaryType.MICRO) -> SummaryRequest:
    return SummaryRequest(content="some meeting content", summary_type=summary_type)


# ── Fallback Order ───────────────────────────────────────────────────────────


class TestFallbackOrder:
    def test_preferred_first_then_registration_order(self):
        a, b, c = FakeProvider("claude"), FakeProvider("gemini"), FakeProvider("euron")
        orchestrator = ProviderOrchestrator([a, b, c], preferred="euron")

        assert [p.name for p in orchestrator.fallback_order()] == ["euron", "claude", "gemini"]

    def test_unconfigured_preferred_is_ignored(self):
        a, b = FakeProvider("claude"), FakeProvider("gemini")
        orchestrator = ProviderOrchestrator([a, b], preferred="euron")

        assert [p.name for p in orchestrator.fallback_order()] == ["claude", "gemini"]

    @pytest.mark.parametrize("preferred", [None, "claude", "gemini", "euron", "missing"])
    def test_each_provider_exactly_once(self, preferred):
        providers = [FakeProvider("claude"), FakeProvider("gemini"), FakeProvider("euron")]
        orchestrator = ProviderOrchestrator(providers, preferred=preferred)

        names = [p.name for p in orchestrator.fallback_order()]

        assert sorted(names) == ["claude", "euron", "gemini"]
        if preferred in {"claude", "gemini", "euron"}:
            assert names[0] == preferred

    def test_duplicate_name_replaces_earlier(self):
        first, second = FakeProvider("claude", answer="old"), FakeProvider("claude", answer="new")
        orchestrator = ProviderOrchestrator([first, second])

        assert orchestrator.providers == [second]

    def test_display_name(self):
        orchestrator = ProviderOrchestrator([FakeProvider("gemini")], preferred="gemini")
        assert orchestrator.preferred_display_name() == "Gemini"
        assert ProviderOrchestrator().preferred_display_name() == "None"

    def test_has_available_provider(self):
        assert ProviderOrchestrator().has_available_provider() is False
        assert ProviderOrchestrator([FakeProvider("claude")]).has_available_provider() is True


# ── Question Answering ───────────────────────────────────────────────────────


class TestAnswerQuestion:
    async def test_no_providers_is_distinguishable_from_exhausted(self):
        empty = await ProviderOrchestrator().answer_question("What?", "context")
        exhausted = await ProviderOrchestrator([FakeProvider("claude", fail=True)]).answer_question(
            "What?", "context"
        )

        assert empty.success is False and exhausted.success is False
        assert empty.provider == PROVIDER_NONE
        assert exhausted.provider == PROVIDER_FALLBACK_FAILED
        assert empty.error_code == ProviderUnavailable.code
        assert exhausted.error_code == ProviderExhausted.code
        assert empty.error_code != exhausted.error_code

    async def test_third_provider_answers_after_two_failures(self):
        first = FakeProvider("claude", fail=True)
        second = FakeProvider("gemini", error=RuntimeError("connection reset"))
        third = FakeProvider("euron", answer="They chose Friday.")
        orchestrator = ProviderOrchestrator([first, second, third], preferred="claude")

        response = await orchestrator.answer_question("When do we ship?", "context")

        assert response.success is True
        assert response.content == "They chose Friday."
        assert response.provider == "euron"
        assert len(first.question_calls) == 1
        assert len(second.question_calls) == 1

    async def test_stops_after_first_success(self):
        first = FakeProvider("claude", answer="first")
        second = FakeProvider("gemini", answer="second")
        orchestrator = ProviderOrchestrator([first, second])

        response = await orchestrator.answer_question("q", "c")

        assert response.content == "first"
        assert second.question_calls == []

    async def test_timeout_counts_as_failure(self):
        slow = FakeProvider("claude", delay=0.5)
        fast = FakeProvider("gemini", answer="fast answer")
        orchestrator = ProviderOrchestrator([slow, fast], preferred="claude", timeout=0.05)

        response = await orchestrator.answer_question("q", "c")

        assert response.provider == "gemini"
        assert response.content == "fast answer"

    async def test_question_and_context_forwarded(self):
        provider = FakeProvider("claude")
        orchestrator = ProviderOrchestrator([provider])

        await orchestrator.answer_question("Who owns the report?", "Meeting Duration: 3 minutes\n")

        assert provider.question_calls == [("Who owns the report?", "Meeting Duration: 3 minutes\n")]


# ── Summary Generation ───────────────────────────────────────────────────────


class TestGenerateSummary:
    async def test_sentinels_are_failed_summaries(self):
        assert await ProviderOrchestrator().generate_summary(_request()) == SUMMARY_NOT_CONFIGURED
        assert is_failed_summary(SUMMARY_NOT_CONFIGURED)
        assert is_failed_summary(SUMMARY_EXHAUSTED)

    async def test_error_prefixed_text_triggers_fallback(self):
        first = FakeProvider("claude", fail=True)
        second = FakeProvider("gemini", summary="Second summary")
        orchestrator = ProviderOrchestrator([first, second])

        assert await orchestrator.generate_summary(_request()) == "Second summary"

    async def test_empty_summary_triggers_fallback(self):
        first = FakeProvider("claude", summary="   ")
        second = FakeProvider("gemini", summary="Usable")
        orchestrator = ProviderOrchestrator([first, second])

        assert await orchestrator.generate_summary(_request()) == "Usable"

    async def test_all_failing_returns_exhausted_sentinel(self):
        orchestrator = ProviderOrchestrator(
            [FakeProvider("claude", fail=True), FakeProvider("gemini", error=ValueError("bad"))]
        )

        assert await orchestrator.generate_summary(_request()) == SUMMARY_EXHAUSTED

    async def test_run_fallback_reports_attempted_providers(self):
        orchestrator = ProviderOrchestrator(
            [FakeProvider("claude", fail=True), FakeProvider("gemini", fail=True)],
            preferred="gemini",
        )

        with pytest.raises(ProviderExhausted) as exc_info:
            await orchestrator._run_fallback(
                "summary",
                lambda p: p.generate_summary(_request()),
                accept=lambda s: not is_failed_summary(s),
                describe_failure=lambda s: s,
            )

        assert exc_info.value.attempted == ["gemini", "claude"]


# ── Configuration ────────────────────────────────────────────────────────────


class TestFromSettings:
    def test_no_keys_means_no_providers(self):
        orchestrator = ProviderOrchestrator.from_settings(_settings())
        assert orchestrator.providers == []

    def test_refresh_picks_up_new_keys(self):
        orchestrator = ProviderOrchestrator.from_settings(_settings())
        orchestrator.refresh(
            _settings(GEMINI_API_KEY="g-key", PREFERRED_PROVIDER="gemini", LLM_TIMEOUT=9)
        )

        assert [p.name for p in orchestrator.providers] == ["gemini"]
        assert orchestrator.preferred == "gemini"
        assert orchestrator.timeout == 9.0

    def test_timeout_from_settings(self):
        with patch("src.listener.providers.registry.build_providers", return_value=[]):
            orchestrator = ProviderOrchestrator.from_settings(_settings(LLM_TIMEOUT=12))
        assert orchestrator.timeout == 12.0


class TestSetPreferred:
    def test_switches_first_provider(self):
        claude, gemini = FakeProvider("claude"), FakeProvider("gemini")
        orchestrator = ProviderOrchestrator([claude, gemini], preferred="claude")

        orchestrator.set_preferred("gemini")

        assert orchestrator.fallback_order() == [gemini, claude]
        assert orchestrator.preferred_display_name() == "Gemini"

    def test_none_restores_registration_order(self):
        claude, gemini = FakeProvider("claude"), FakeProvider("gemini")
        orchestrator = ProviderOrchestrator([claude, gemini], preferred="gemini")

        orchestrator.set_preferred(None)

        assert orchestrator.fallback_order() == [claude, gemini]

    def test_unknown_name_is_rejected(self):
        orchestrator = ProviderOrchestrator([FakeProvider("claude")], preferred="claude")

        with pytest.raises(UnknownProvider):
            orchestrator.set_preferred("euron")

        assert orchestrator.preferred == "claude"

    async def test_answer_uses_new_preference(self):
        claude, gemini = FakeProvider("claude"), FakeProvider("gemini")
        orchestrator = ProviderOrchestrator([claude, gemini], preferred="claude")
        orchestrator.set_preferred("gemini")

        response = await orchestrator.answer_question("Status?", "context")

        assert response.provider == "gemini"
        assert claude.question_calls == []
