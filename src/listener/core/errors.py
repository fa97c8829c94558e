"""Error taxonomy for the listener core.

None of these are fatal to a session. Provider errors are converted into
response markers at the orchestrator boundary, malformed output and skipped
compactions are recovered locally, and NoActiveSession only escapes through
ContextStore.require_session().
"""

from __future__ import annotations


class ListenerError(Exception):
    """Base class for all listener core errors."""


class ProviderUnavailable(ListenerError):
    """No provider credentials are configured."""

    code = "provider_unavailable"


class ProviderExhausted(ListenerError):
    """Every configured provider was tried and none succeeded."""

    code = "provider_exhausted"

    def __init__(self, attempted: list[str]) -> None:
        self.attempted = attempted
        super().__init__(f"All providers failed: {', '.join(attempted)}")


class UnknownProvider(ListenerError):
    """A provider name that is not registered was selected."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Provider not configured: {name}")


class MalformedProviderOutput(ListenerError):
    """Structured extraction could not be parsed from provider text."""

    def __init__(self, message: str, raw: str = "") -> None:
        self.raw = raw
        super().__init__(message)


class CompactionSkipped(ListenerError):
    """A single compaction attempt produced nothing usable."""

    def __init__(self, level: str, reason: str) -> None:
        self.level = level
        self.reason = reason
        super().__init__(f"{level} compaction skipped: {reason}")


class NoActiveSession(ListenerError):
    """An operation that needs a session was invoked with none active."""

    def __init__(self) -> None:
        super().__init__("No active meeting")
