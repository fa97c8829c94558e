"""Settings tests: defaults, environment overrides and wiring into components."""

from __future__ import annotations

from src.listener.compaction.scheduler import CompactionScheduler
from src.listener.config import Environment, Settings, get_settings
from src.listener.context.models import MeetingContext
from src.listener.sessions.service import MeetingSessionService

from tests.conftest import FakeClock, make_chunk


def _settings(**overrides) -> Settings:
    values = {"ANTHROPIC_API_KEY": "", "GEMINI_API_KEY": "", "EURON_API_KEY": ""}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("ENVIRONMENT", "PREFERRED_PROVIDER", "MAX_RECENT_CHUNKS", "LLM_TIMEOUT"):
            monkeypatch.delenv(name, raising=False)
        settings = _settings()

        assert settings.ENVIRONMENT == Environment.development
        assert settings.PREFERRED_PROVIDER == "claude"
        assert settings.MAX_RECENT_CHUNKS == 20
        assert settings.MICRO_SUMMARY_INTERVAL_SECONDS == 300
        assert settings.SECTION_SUMMARY_INTERVAL_SECONDS == 1800
        assert settings.SHORT_SESSION_MINUTES == 2
        assert settings.LLM_TIMEOUT == 30

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("MAX_RECENT_CHUNKS", "7")
        monkeypatch.setenv("ENVIRONMENT", "production")

        settings = _settings()

        assert settings.MAX_RECENT_CHUNKS == 7
        assert settings.ENVIRONMENT == Environment.production

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


class TestFromSettings:
    def test_scheduler_intervals(self):
        clock = FakeClock()
        settings = _settings(MICRO_SUMMARY_INTERVAL_SECONDS=60, MICRO_SUMMARY_MIN_CHUNKS=2)
        service = MeetingSessionService.from_settings(settings, clock=clock)
        scheduler = CompactionScheduler.from_settings(service.store, service.orchestrator, settings, clock=clock)
        context = MeetingContext(
            start_time_ms=clock.now,
            subject_name="Alice",
            recent_chunks=[make_chunk("one", clock.now), make_chunk("two", clock.now)],
        )

        assert scheduler.micro_due(context, clock.now + 59_000) is False
        assert scheduler.micro_due(context, clock.now + 60_000) is True
        assert service.store.max_recent == settings.MAX_RECENT_CHUNKS
        assert service.orchestrator.has_available_provider() is False
