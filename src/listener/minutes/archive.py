"""Archive interface for finished sessions.

Storage format is up to the implementation. InMemoryMeetingArchive keeps
records for the lifetime of the process and backs the HTTP records endpoint.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import structlog

from src.listener.minutes.schemas import ArchivedSession, MeetingRecord

logger = structlog.get_logger(__name__)


class MeetingArchive(ABC):
    """Destination for finished session records."""

    @abstractmethod
    async def save(self, archived: ArchivedSession) -> None:
        """Persist a finished session."""
        ...

    @abstractmethod
    async def get(self, session_id: str) -> ArchivedSession | None:
        """Fetch a finished session by id."""
        ...

    @abstractmethod
    async def list_records(self) -> list[MeetingRecord]:
        """All stored records, newest first."""
        ...


class InMemoryMeetingArchive(MeetingArchive):
    def __init__(self) -> None:
        self._sessions: dict[str, ArchivedSession] = {}

    async def save(self, archived: ArchivedSession) -> None:
        self._sessions[archived.record.session_id] = archived
        logger.info(
            "archive.session_saved",
            session_id=archived.record.session_id,
            chunks=len(archived.chunks),
        )

    async def get(self, session_id: str) -> ArchivedSession | None:
        return self._sessions.get(session_id)

    async def list_records(self) -> list[MeetingRecord]:
        records = [s.record for s in self._sessions.values()]
        return sorted(records, key=lambda r: r.end_time_ms, reverse=True)
