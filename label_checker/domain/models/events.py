"""Progress events pushed from the verification pipeline to the caller."""

from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field


class ProgressEvent(BaseModel):
    """Intermediate progress notification."""

    type: Literal["progress"] = "progress"
    message: str
    progress: int = Field(..., ge=0, le=100)
    data: Optional[Dict[str, Any]] = None


class ErrorEvent(BaseModel):
    """Terminal failure notification."""

    type: Literal["error"] = "error"
    message: str


class CompleteEvent(BaseModel):
    """Terminal success notification carrying the verification view."""

    type: Literal["complete"] = "complete"
    message: str = "✅ Verifica completata!"
    progress: int = 100
    data: Dict[str, Any]


VerificationEvent = Union[ProgressEvent, ErrorEvent, CompleteEvent]


def is_terminal(event: VerificationEvent) -> bool:
    """Whether the event ends the stream."""
    return event.type in ("error", "complete")


def to_sse(event: VerificationEvent) -> str:
    """Encode an event as one server-sent-events message."""
    return f"data: {event.model_dump_json(exclude_none=True)}\n\n"
