"""REST endpoints for the listening session.

There is at most one session at a time, addressed as /sessions/current.
Operations that need an active session return 409 when there is none;
provider failures are not HTTP errors and come back as success=false bodies.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field

import structlog

from src.listener.context.models import MeetingStats, TranscriptChunk
from src.listener.core.errors import NoActiveSession
from src.listener.minutes.schemas import MeetingRecord
from src.listener.providers.base import LLMResponse
from src.listener.sessions.service import MeetingSessionService
from src.listener.sessions.state import SessionState, describe_state

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


# ── Request / Response Schemas ───────────────────────────────────────────────


class StartSessionRequest(BaseModel):
    subject_name: str = Field(min_length=1, max_length=100)


class SessionStartedResponse(BaseModel):
    session_id: str
    subject_name: str
    start_time_ms: int


class IngestChunkRequest(BaseModel):
    text: str
    speaker: str | None = None


class IngestChunkResponse(BaseModel):
    accepted: bool
    chunk: TranscriptChunk | None = None


class QuestionRequest(BaseModel):
    question: str = Field(min_length=1, max_length=2000)


class ContextResponse(BaseModel):
    context: str


class StateResponse(BaseModel):
    state: SessionState
    description: str


class CancelResponse(BaseModel):
    cancelled: bool


# ── Dependency Injection Helpers ─────────────────────────────────────────────


def _get_session_service(request: Request) -> MeetingSessionService:
    """Retrieve MeetingSessionService from app.state, 503 if not available."""
    service = getattr(request.app.state, "session_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Session service not initialized",
        )
    return service


def _require_active(service: MeetingSessionService) -> None:
    try:
        service.store.require_session()
    except NoActiveSession as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc


# ── Endpoints ────────────────────────────────────────────────────────────────


@router.post("/", response_model=SessionStartedResponse, status_code=status.HTTP_201_CREATED)
async def start_session(
    body: StartSessionRequest,
    service: MeetingSessionService = Depends(_get_session_service),
) -> SessionStartedResponse:
    """Start listening. Any session already running is discarded without minutes."""
    context = await service.start(body.subject_name.strip())
    return SessionStartedResponse(
        session_id=context.session_id,
        subject_name=context.subject_name,
        start_time_ms=context.start_time_ms,
    )


@router.post("/current/chunks", response_model=IngestChunkResponse)
async def ingest_chunk(
    body: IngestChunkRequest,
    service: MeetingSessionService = Depends(_get_session_service),
) -> IngestChunkResponse:
    _require_active(service)
    chunk = await service.ingest(body.text, speaker=body.speaker)
    return IngestChunkResponse(accepted=chunk is not None, chunk=chunk)


@router.post("/current/questions", response_model=LLMResponse)
async def ask_question(
    body: QuestionRequest,
    service: MeetingSessionService = Depends(_get_session_service),
) -> LLMResponse:
    _require_active(service)
    return await service.ask(body.question)


@router.get("/current/stats", response_model=MeetingStats)
async def get_stats(
    service: MeetingSessionService = Depends(_get_session_service),
) -> MeetingStats:
    return service.stats()


@router.get("/current/context", response_model=ContextResponse)
async def get_context(
    service: MeetingSessionService = Depends(_get_session_service),
) -> ContextResponse:
    return ContextResponse(context=service.condensed_context())


@router.get("/current/state", response_model=StateResponse)
async def get_state(
    service: MeetingSessionService = Depends(_get_session_service),
) -> StateResponse:
    state = service.state
    return StateResponse(state=state, description=describe_state(state))


@router.post("/current/end", response_model=MeetingRecord)
async def end_session(
    service: MeetingSessionService = Depends(_get_session_service),
) -> MeetingRecord:
    """Stop listening and return the generated minutes."""
    record = await service.end()
    if record is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(NoActiveSession()))
    return record


@router.delete("/current", response_model=CancelResponse)
async def cancel_session(
    service: MeetingSessionService = Depends(_get_session_service),
) -> CancelResponse:
    """Abort the session without generating minutes."""
    cancelled = await service.cancel()
    logger.info("api.session_cancel_requested", cancelled=cancelled)
    return CancelResponse(cancelled=cancelled)


@router.get("/records", response_model=list[MeetingRecord])
async def list_records(
    service: MeetingSessionService = Depends(_get_session_service),
) -> list[MeetingRecord]:
    return await service.archive.list_records()
