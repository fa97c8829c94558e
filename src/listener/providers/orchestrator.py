"""ProviderOrchestrator -- ordered fail-over across text-generation providers.

The preferred provider is tried first, then every other configured provider
in registration order. The first acceptable result wins and the remaining
providers are never called. Each attempt is bounded by a timeout so a hung
provider cannot stall session end.

Two distinct failure outcomes reach callers:
- ProviderUnavailable: nothing is configured (provider="none")
- ProviderExhausted: everything was tried and failed (provider="fallback_failed")
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

import structlog

from src.listener.core.errors import ProviderExhausted, ProviderUnavailable, UnknownProvider
from src.listener.providers.base import (
    ERROR_PREFIX,
    LLMResponse,
    ProviderClient,
    SummaryRequest,
    is_failed_summary,
)

if TYPE_CHECKING:
    from src.listener.config import Settings

logger = structlog.get_logger(__name__)

T = TypeVar("T")

PROVIDER_NONE = "none"
PROVIDER_FALLBACK_FAILED = "fallback_failed"

NOT_CONFIGURED_ANSWER = "No API keys configured. Please add an API key in settings."
EXHAUSTED_ANSWER = (
    "Unable to answer question. All LLM providers failed. "
    "Please check your API keys and internet connection."
)

# Both sentinels carry the error prefix so is_failed_summary() rejects them.
SUMMARY_NOT_CONFIGURED = f"{ERROR_PREFIX}: no API keys configured"
SUMMARY_EXHAUSTED = f"{ERROR_PREFIX}: failed to generate summary with all providers"


class ProviderOrchestrator:
    """Holds the configured providers and runs the fallback protocol.

    Usage:
        orchestrator = ProviderOrchestrator([claude, gemini], preferred="gemini")
        response = await orchestrator.answer_question("What was decided?", context)
        summary = await orchestrator.generate_summary(request)

    Args:
        providers: Provider clients in registration order. Names must be unique;
            a later provider with a duplicate name replaces the earlier one.
        preferred: Name of the provider to try first.
        timeout: Seconds allowed per provider attempt; None disables the bound.
    """

    def __init__(
        self,
        providers: list[ProviderClient] | None = None,
        preferred: str | None = None,
        timeout: float | None = 30.0,
    ) -> None:
        self._providers: dict[str, ProviderClient] = {}
        for provider in providers or []:
            self.register(provider)
        self._preferred = preferred
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> ProviderOrchestrator:
        from src.listener.providers.registry import build_providers

        return cls(
            providers=build_providers(settings),
            preferred=settings.PREFERRED_PROVIDER,
            timeout=float(settings.LLM_TIMEOUT),
        )

    # ── Configuration ────────────────────────────────────────────────────

    def register(self, provider: ProviderClient) -> None:
        self._providers[provider.name] = provider

    def refresh(self, settings: Settings) -> None:
        """Rebuild provider clients after credentials or provider settings change."""
        from src.listener.providers.registry import build_providers

        self._providers = {}
        for provider in build_providers(settings):
            self.register(provider)
        self._preferred = settings.PREFERRED_PROVIDER
        self._timeout = float(settings.LLM_TIMEOUT)
        logger.info(
            "orchestrator.providers_refreshed",
            providers=list(self._providers),
            preferred=self._preferred,
            timeout=self._timeout,
        )

    def set_preferred(self, name: str | None) -> None:
        """Select the provider tried first; None restores registration order.

        Raises:
            UnknownProvider: name is not a registered provider.
        """
        if name is not None and name not in self._providers:
            raise UnknownProvider(name)
        self._preferred = name
        logger.info("orchestrator.preferred_changed", preferred=name)

    @property
    def preferred(self) -> str | None:
        return self._preferred

    @property
    def timeout(self) -> float | None:
        return self._timeout

    @property
    def providers(self) -> list[ProviderClient]:
        return list(self._providers.values())

    def has_available_provider(self) -> bool:
        return bool(self._providers)

    def preferred_display_name(self) -> str:
        order = self.fallback_order()
        if not order:
            return "None"
        return order[0].display_name or order[0].name

    def fallback_order(self) -> list[ProviderClient]:
        """Preferred provider first (when configured), then the rest in registration order."""
        ordered: list[ProviderClient] = []
        preferred = self._providers.get(self._preferred) if self._preferred else None
        if preferred is not None:
            ordered.append(preferred)
        for name, provider in self._providers.items():
            if name != self._preferred:
                ordered.append(provider)
        return ordered

    # ── Fallback Protocol ────────────────────────────────────────────────

    async def _attempt(self, call: Awaitable[T]) -> T:
        if self._timeout is None:
            return await call
        return await asyncio.wait_for(call, timeout=self._timeout)

    async def _run_fallback(
        self,
        operation: str,
        call: Callable[[ProviderClient], Awaitable[T]],
        accept: Callable[[T], bool],
        describe_failure: Callable[[T], str | None],
    ) -> tuple[ProviderClient, T]:
        """Try providers in fallback order until one result is accepted.

        Raises:
            ProviderUnavailable: No provider is configured.
            ProviderExhausted: Every provider raised, timed out or was rejected.
        """
        order = self.fallback_order()
        if not order:
            raise ProviderUnavailable("No API keys available")

        attempted: list[str] = []
        for provider in order:
            attempted.append(provider.name)
            logger.debug("orchestrator.attempt", operation=operation, provider=provider.name)
            try:
                result = await self._attempt(call(provider))
            except asyncio.TimeoutError:
                logger.warning(
                    "orchestrator.provider_timeout",
                    operation=operation,
                    provider=provider.name,
                    timeout=self._timeout,
                )
                continue
            except Exception:
                logger.error(
                    "orchestrator.provider_exception",
                    operation=operation,
                    provider=provider.name,
                    exc_info=True,
                )
                continue

            if accept(result):
                logger.info("orchestrator.provider_succeeded", operation=operation, provider=provider.name)
                return provider, result

            logger.warning(
                "orchestrator.provider_failed",
                operation=operation,
                provider=provider.name,
                error=describe_failure(result),
            )

        raise ProviderExhausted(attempted)

    async def answer_question(self, question: str, context: str) -> LLMResponse:
        """Answer a question with automatic provider fallback.

        Never raises; failures come back as success=False responses whose
        provider and error_code tell "not configured" apart from "all failed".
        """
        try:
            _, response = await self._run_fallback(
                "question",
                lambda provider: provider.answer_question(question, context),
                accept=lambda r: r is not None and r.success,
                describe_failure=lambda r: r.error_message if r is not None else "no response",
            )
        except ProviderUnavailable as exc:
            return LLMResponse(
                content=NOT_CONFIGURED_ANSWER,
                provider=PROVIDER_NONE,
                success=False,
                error_message=str(exc),
                error_code=ProviderUnavailable.code,
            )
        except ProviderExhausted as exc:
            return LLMResponse(
                content=EXHAUSTED_ANSWER,
                provider=PROVIDER_FALLBACK_FAILED,
                success=False,
                error_message=str(exc),
                error_code=ProviderExhausted.code,
            )
        return response

    async def generate_summary(self, request: SummaryRequest) -> str:
        """Generate summary text with automatic provider fallback.

        Returns:
            Accepted summary text, or SUMMARY_NOT_CONFIGURED / SUMMARY_EXHAUSTED.
        """
        try:
            _, summary = await self._run_fallback(
                f"summary:{request.summary_type.value}",
                lambda provider: provider.generate_summary(request),
                accept=lambda s: not is_failed_summary(s),
                describe_failure=lambda s: (s or "empty summary")[:200],
            )
        except ProviderUnavailable:
            logger.info("orchestrator.summary_not_configured", summary_type=request.summary_type.value)
            return SUMMARY_NOT_CONFIGURED
        except ProviderExhausted as exc:
            logger.warning(
                "orchestrator.summary_exhausted",
                summary_type=request.summary_type.value,
                attempted=exc.attempted,
            )
            return SUMMARY_EXHAUSTED
        return summary
