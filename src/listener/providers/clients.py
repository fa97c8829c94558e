"""Concrete provider clients backed by LiteLLM.

Each client wraps one text-generation service behind the ProviderClient
capability. The wire format of every service is left to LiteLLM; a client
only owns its model id, credentials and prompt templating. Clients never let
provider exceptions escape: questions come back as success=False responses,
summaries as text starting with ERROR_PREFIX.
"""

from __future__ import annotations

import litellm
import structlog

from src.listener.core.monitoring import track_llm_call
from src.listener.providers.base import (
    ERROR_PREFIX,
    LLMResponse,
    ProviderClient,
    SummaryRequest,
    SummaryType,
)
from src.listener.providers.prompts import (
    COMPACT_QUESTION_PROMPT,
    COMPACT_SUMMARY_PROMPTS,
    DETAILED_SUMMARY_PROMPTS,
    GENERIC_SUMMARY_PROMPTS,
    QUESTION_PROMPT,
    render_question_prompt,
    render_summary_prompt,
)
from src.listener.providers.safety import sanitize_question

logger = structlog.get_logger(__name__)

PROVIDER_CLAUDE = "claude"
PROVIDER_GEMINI = "gemini"
PROVIDER_EURON = "euron"


class LiteLLMProviderClient(ProviderClient):
    """ProviderClient that issues single-message completions via litellm.acompletion.

    Subclasses set name, display_name and the two template attributes.

    Args:
        api_key: Credential for the service.
        model: LiteLLM model id (e.g. "anthropic/claude-sonnet-4-20250514").
        api_base: Optional base URL for OpenAI-compatible services.
        max_tokens: Maximum tokens in the response.
        temperature: Sampling temperature.
        timeout: Per-request network timeout in seconds.
    """

    question_template: str = QUESTION_PROMPT
    summary_templates: dict[SummaryType, str] = DETAILED_SUMMARY_PROMPTS

    def __init__(
        self,
        api_key: str,
        model: str,
        api_base: str | None = None,
        max_tokens: int = 1000,
        temperature: float = 0.7,
        timeout: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._api_base = api_base
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._timeout = timeout

    @property
    def model(self) -> str:
        return self._model

    def build_question_prompt(self, question: str, context: str) -> str:
        return render_question_prompt(
            self.question_template, sanitize_question(question), context
        )

    def build_summary_prompt(self, request: SummaryRequest) -> str:
        return render_summary_prompt(self.summary_templates, request)

    async def _complete(self, prompt: str, operation: str) -> tuple[str, int | None, int]:
        """Run one completion and return (text, completion_tokens, latency_ms)."""
        kwargs: dict = {
            "model": self._model,
            "messages": [{"role": "user", "content": prompt}],
            "api_key": self._api_key,
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
            "timeout": self._timeout,
        }
        if self._api_base:
            kwargs["api_base"] = self._api_base

        async with track_llm_call(self.name, operation) as tracker:
            response = await litellm.acompletion(**kwargs)

            completion_tokens = None
            usage = getattr(response, "usage", None)
            if usage:
                tracker["prompt_tokens"] = usage.prompt_tokens or 0
                tracker["completion_tokens"] = usage.completion_tokens or 0
                completion_tokens = usage.completion_tokens

            content = response.choices[0].message.content or ""

        return content.strip(), completion_tokens, tracker["latency_ms"]

    async def answer_question(self, question: str, context: str) -> LLMResponse:
        prompt = self.build_question_prompt(question, context)
        try:
            content, tokens, latency_ms = await self._complete(prompt, "question")
        except Exception as exc:
            logger.warning(
                "provider.question_failed",
                provider=self.name,
                model=self._model,
                error=str(exc),
            )
            return LLMResponse(
                content="",
                provider=self.name,
                success=False,
                error_message=str(exc) or type(exc).__name__,
            )

        if not content:
            return LLMResponse(
                content="",
                provider=self.name,
                success=False,
                error_message="Empty response",
                latency_ms=latency_ms,
            )

        return LLMResponse(
            content=content,
            provider=self.name,
            success=True,
            tokens_used=tokens,
            latency_ms=latency_ms,
        )

    async def generate_summary(self, request: SummaryRequest) -> str:
        prompt = self.build_summary_prompt(request)
        try:
            content, _, _ = await self._complete(prompt, request.summary_type.value)
        except Exception as exc:
            logger.warning(
                "provider.summary_failed",
                provider=self.name,
                summary_type=request.summary_type.value,
                error=str(exc),
            )
            return f"{ERROR_PREFIX} generating summary: {exc}"
        return content


class ClaudeClient(LiteLLMProviderClient):
    """Anthropic Claude with the detailed instruction templates."""

    name = PROVIDER_CLAUDE
    display_name = "Claude"
    question_template = QUESTION_PROMPT
    summary_templates = DETAILED_SUMMARY_PROMPTS


class GeminiClient(LiteLLMProviderClient):
    """Google Gemini with compact one-line templates."""

    name = PROVIDER_GEMINI
    display_name = "Gemini"
    question_template = COMPACT_QUESTION_PROMPT
    summary_templates = COMPACT_SUMMARY_PROMPTS


class EuronClient(LiteLLMProviderClient):
    """Euron's OpenAI-compatible endpoint with a generic summarize template."""

    name = PROVIDER_EURON
    display_name = "Euron"
    question_template = COMPACT_QUESTION_PROMPT
    summary_templates = GENERIC_SUMMARY_PROMPTS
