"""Build provider clients from configured credentials.

Only providers with a non-empty API key are created, in a fixed
registration order (Claude, Gemini, Euron). Zero credentials yields an
empty list and the orchestrator degrades to "not configured" responses.
"""

from __future__ import annotations

import structlog

from src.listener.config import Settings
from src.listener.providers.base import ProviderClient
from src.listener.providers.clients import ClaudeClient, EuronClient, GeminiClient

logger = structlog.get_logger(__name__)


def build_providers(settings: Settings) -> list[ProviderClient]:
    common = {
        "max_tokens": settings.LLM_MAX_TOKENS,
        "temperature": settings.LLM_TEMPERATURE,
        "timeout": float(settings.LLM_TIMEOUT),
    }
    providers: list[ProviderClient] = []

    if settings.ANTHROPIC_API_KEY:
        providers.append(
            ClaudeClient(api_key=settings.ANTHROPIC_API_KEY, model=settings.CLAUDE_MODEL, **common)
        )

    if settings.GEMINI_API_KEY:
        providers.append(
            GeminiClient(api_key=settings.GEMINI_API_KEY, model=settings.GEMINI_MODEL, **common)
        )

    if settings.EURON_API_KEY:
        providers.append(
            EuronClient(
                api_key=settings.EURON_API_KEY,
                model=settings.EURON_MODEL,
                api_base=settings.EURON_API_BASE,
                **common,
            )
        )

    if not providers:
        logger.warning("No LLM API keys configured -- provider-backed answers will be unavailable")
    else:
        logger.info("providers.configured", providers=[p.name for p in providers])

    return providers
