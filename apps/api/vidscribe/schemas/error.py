"""API error response schemas."""

from typing import Any
from typing import Literal

from pydantic import BaseModel

from vidscribe.schemas.video import TranscriptionStatus


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: dict[str, Any] | None = None


class TransitionErrorDetails(BaseModel):
    current_status: TranscriptionStatus
    attempted_status: TranscriptionStatus
    allowed_next_statuses: list[TranscriptionStatus] | None = None


class TranscriptionConflictError(BaseModel):
    code: Literal["TRANSCRIPTION_CONFLICT"]
    message: str
    details: TransitionErrorDetails | dict[str, Any] | None = None


class NoLeakNotFoundError(BaseModel):
    code: Literal["RESOURCE_NOT_FOUND"]
    message: str


class UpstreamSubmissionError(BaseModel):
    code: Literal["TRANSCRIPTION_SUBMISSION_FAILED"]
    message: str
    details: dict[str, Any] | None = None


class UpstreamTransportError(BaseModel):
    code: Literal["TRANSCRIPTION_TRANSPORT_ERROR"]
    message: str
    details: dict[str, Any] | None = None
