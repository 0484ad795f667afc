"""Video and transcription API schemas."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, model_validator

MAX_ALTERNATIVES = 3


class TranscriptionStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class RemoteJobStatus(str, Enum):
    """Job status vocabulary shared with the recognition service."""

    PENDING = "PENDING"
    QUEUED = "QUEUED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class TranscriptionOptions(BaseModel):
    speaker_labels: bool = False
    max_speaker_labels: int = Field(default=2, ge=2, le=30)
    automatic_punctuation: bool = True
    max_alternatives: int = Field(default=MAX_ALTERNATIVES, ge=0)

    def to_settings(self) -> dict[str, Any]:
        """Return the settings passed verbatim to the recognition service."""
        settings: dict[str, Any] = {
            "speaker_labels": self.speaker_labels,
            "automatic_punctuation": self.automatic_punctuation,
            "max_alternatives": min(self.max_alternatives, MAX_ALTERNATIVES),
        }
        if self.speaker_labels:
            settings["max_speaker_labels"] = self.max_speaker_labels
        return settings


class CreateVideoRequest(BaseModel):
    title: str = Field(min_length=1)
    media_location: str = Field(min_length=1)
    language: str = "english"


class Video(BaseModel):
    id: str
    title: str
    media_location: str
    language_code: str
    transcription_status: TranscriptionStatus
    transcription_job_name: str | None = None
    transcription_text: str | None = None
    transcription_confidence: float | None = None
    transcription_word_count: int | None = None
    transcription_error: str | None = None
    transcription_started_at: datetime | None = None
    transcription_completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None


class TranscriptionJob(BaseModel):
    job_name: str
    video_id: str
    media_location: str
    language_code: str
    status: RemoteJobStatus
    output_location: str
    settings: dict[str, Any]
    created_at: datetime
    submitted_at: datetime | None = None
    completed_at: datetime | None = None
    transcription_text: str | None = None
    confidence: float | None = None
    word_count: int | None = None
    error_message: str | None = None


class StartTranscriptionRequest(BaseModel):
    media_location: str | None = None
    language: str | None = None
    options: TranscriptionOptions = Field(default_factory=TranscriptionOptions)
    watch: bool = False


class TranscriptionAccepted(BaseModel):
    video_id: str
    job_name: str
    status: TranscriptionStatus
    watching: bool = False


class ProgressSnapshot(BaseModel):
    """Synthetic status returned by a single progress check; never persisted as-is."""

    status: TranscriptionStatus
    progress_percent: int = Field(ge=0, le=100)
    message: str
    job_name: str | None = None
    text: str | None = None
    confidence: float | None = None
    word_count: int | None = None
    error: str | None = None

    @model_validator(mode="after")
    def _terminal_payload(self) -> "ProgressSnapshot":
        if self.status is TranscriptionStatus.FAILED and not self.error:
            self.error = self.message
        return self


class WatchState(BaseModel):
    video_id: str
    polling: bool
    outcome: ProgressSnapshot | None = None
    timed_out: bool = False
    last_error: str | None = None


class LanguageOption(BaseModel):
    language: str
    language_code: str
