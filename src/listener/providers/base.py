"""Provider capability interface and the request/response contracts it uses.

Every text-generation provider implements ProviderClient so the orchestrator
can hold a homogeneous, ordered list of them. Providers report back only a
success flag, text, an optional error, and optional token/latency telemetry.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum

from pydantic import BaseModel, Field

# Reserved prefix marking a summary string as a failure.
ERROR_PREFIX = "Error"


class SummaryType(str, Enum):
    """Kind of summary requested; each maps to its own instruction template."""

    MICRO = "micro"
    SECTION = "section"
    FINAL = "final"
    DECISION = "decision"
    ACTION_ITEM = "action_item"


class SummaryRequest(BaseModel):
    """Input for generating one summary."""

    content: str
    summary_type: SummaryType
    max_length: int = Field(default=150, description="Maximum summary length in words")


class LLMResponse(BaseModel):
    """Uniform response wrapper for every provider."""

    content: str
    provider: str
    success: bool
    error_message: str | None = None
    error_code: str | None = None
    tokens_used: int | None = None
    latency_ms: int | None = None


def is_failed_summary(text: str | None) -> bool:
    """True for empty text or text carrying the reserved error prefix."""
    if text is None:
        return True
    stripped = text.strip()
    return not stripped or stripped.startswith(ERROR_PREFIX)


class ProviderClient(ABC):
    """Abstract capability shared by all text-generation providers.

    Methods:
        answer_question: Answer a question against a condensed context.
            Must not raise for provider errors; return success=False instead.
        generate_summary: Produce summary text. Provider errors come back as
            text starting with ERROR_PREFIX.
    """

    name: str = ""
    display_name: str = ""

    @abstractmethod
    async def answer_question(self, question: str, context: str) -> LLMResponse:
        """Answer a user's question from meeting context."""
        ...

    @abstractmethod
    async def generate_summary(self, request: SummaryRequest) -> str:
        """Summarize content according to the request's summary type."""
        ...
