"""Text-generation providers and the fallback orchestrator.

ProviderClient is the capability every provider implements; the concrete
clients call their services through LiteLLM. ProviderOrchestrator runs the
ordered fallback protocol over whichever clients are configured.
"""

from src.listener.providers.base import (
    ERROR_PREFIX,
    LLMResponse,
    ProviderClient,
    SummaryRequest,
    SummaryType,
    is_failed_summary,
)
from src.listener.providers.orchestrator import ProviderOrchestrator

__all__ = [
    "ERROR_PREFIX",
    "LLMResponse",
    "ProviderClient",
    "ProviderOrchestrator",
    "SummaryRequest",
    "SummaryType",
    "is_failed_summary",
]
