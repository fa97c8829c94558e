"""Session lifecycle state as a discriminated union.

    SessionIdle -> SessionActive -> SessionFinalizing -> SessionIdle

SessionFinalizing covers the window between an end request and the minutes
being archived; ingestion is refused while it lasts.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class SessionIdle(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["idle"] = "idle"


class SessionActive(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["active"] = "active"
    session_id: str
    subject_name: str
    start_time_ms: int
    duration_minutes: int = 0


class SessionFinalizing(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["finalizing"] = "finalizing"
    session_id: str


SessionState = Annotated[
    Union[SessionIdle, SessionActive, SessionFinalizing],
    Field(discriminator="status"),
]


def describe_state(state: SessionIdle | SessionActive | SessionFinalizing) -> str:
    """Human-readable status line for the UI."""
    if isinstance(state, SessionIdle):
        return "Not listening"
    if isinstance(state, SessionActive):
        return f"Listening for {state.subject_name} ({state.duration_minutes} min)"
    if isinstance(state, SessionFinalizing):
        return "Generating meeting minutes"
    raise TypeError(f"Unknown session state: {type(state).__name__}")
