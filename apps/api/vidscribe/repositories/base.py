"""Record store contract for videos and transcription jobs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from vidscribe.domain.transcription_fsm import ensure_job_transition, ensure_transition
from vidscribe.errors import NotFoundError
from vidscribe.schemas.video import RemoteJobStatus, TranscriptionStatus


@dataclass(slots=True)
class VideoRecord:
    id: str
    title: str
    media_location: str
    language_code: str
    transcription_status: TranscriptionStatus
    created_at: datetime
    updated_at: datetime | None = None
    transcription_job_name: str | None = None
    transcription_output_key: str | None = None
    transcription_text: str | None = None
    transcription_confidence: float | None = None
    transcription_word_count: int | None = None
    transcription_error: str | None = None
    transcription_started_at: datetime | None = None
    transcription_completed_at: datetime | None = None


@dataclass(slots=True)
class TranscriptionJobRecord:
    job_name: str
    video_id: str
    media_location: str
    language_code: str
    status: RemoteJobStatus
    output_location: str
    created_at: datetime
    settings: dict[str, Any] = field(default_factory=dict)
    updated_at: datetime | None = None
    submitted_at: datetime | None = None
    completed_at: datetime | None = None
    transcription_text: str | None = None
    confidence: float | None = None
    word_count: int | None = None
    error_message: str | None = None


class RecordStore(ABC):
    """Durable storage for ``VideoRecord`` and ``TranscriptionJobRecord``.

    Each call either succeeds or raises ``StoreError``. Nothing is
    transactional across two calls. ``get_*`` returns a snapshot that callers
    must write back through ``update_*``.
    """

    @abstractmethod
    def create_video(self, *, title: str, media_location: str, language_code: str) -> VideoRecord: ...

    @abstractmethod
    def get_video(self, video_id: str) -> VideoRecord | None: ...

    @abstractmethod
    def update_video(self, video_id: str, fields: dict[str, Any]) -> VideoRecord: ...

    @abstractmethod
    def create_transcription_job(self, record: TranscriptionJobRecord) -> TranscriptionJobRecord: ...

    @abstractmethod
    def get_transcription_job(self, job_name: str) -> TranscriptionJobRecord | None: ...

    @abstractmethod
    def update_transcription_job(self, job_name: str, fields: dict[str, Any]) -> TranscriptionJobRecord: ...

    @abstractmethod
    def list_transcription_jobs_for_video(self, video_id: str) -> list[TranscriptionJobRecord]: ...

    def require_video(self, video_id: str) -> VideoRecord:
        video = self.get_video(video_id)
        if video is None:
            raise NotFoundError()
        return video

    def transition_video_status(
        self,
        video_id: str,
        new_status: TranscriptionStatus,
        **fields: Any,
    ) -> VideoRecord:
        """Apply an FSM-validated video status change together with its side fields."""
        video = self.require_video(video_id)
        ensure_transition(video.transcription_status, new_status)
        return self.update_video(video_id, {**fields, "transcription_status": new_status})

    def transition_job_status(
        self,
        job_name: str,
        new_status: RemoteJobStatus,
        **fields: Any,
    ) -> TranscriptionJobRecord:
        """Apply an FSM-validated job status change together with its side fields."""
        job = self.get_transcription_job(job_name)
        if job is None:
            raise NotFoundError()
        ensure_job_transition(job.status, new_status)
        return self.update_transcription_job(job_name, {**fields, "status": new_status})
