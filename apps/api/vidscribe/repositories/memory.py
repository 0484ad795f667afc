"""In-memory record store used by the API scaffold and tests."""

from __future__ import annotations

from dataclasses import dataclass, field, fields as dataclass_fields, replace
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from vidscribe.errors import NotFoundError, StoreError
from vidscribe.repositories.base import RecordStore, TranscriptionJobRecord, VideoRecord
from vidscribe.schemas.video import TranscriptionStatus

_VIDEO_FIELDS = frozenset(f.name for f in dataclass_fields(VideoRecord)) - {"id", "created_at"}
_JOB_FIELDS = frozenset(f.name for f in dataclass_fields(TranscriptionJobRecord)) - {"job_name", "video_id", "created_at"}


@dataclass(slots=True)
class InMemoryStore(RecordStore):
    """Simple, deterministic persistence layer for scaffolding and tests."""

    videos: dict[str, VideoRecord] = field(default_factory=dict)
    jobs: dict[str, TranscriptionJobRecord] = field(default_factory=dict)
    video_write_count: int = 0
    job_write_count: int = 0
    write_failure_message: str | None = None

    def create_video(self, *, title: str, media_location: str, language_code: str) -> VideoRecord:
        self._maybe_raise_write_failure()
        now = datetime.now(UTC)
        video = VideoRecord(
            id=str(uuid4()),
            title=title,
            media_location=media_location,
            language_code=language_code,
            transcription_status=TranscriptionStatus.NOT_STARTED,
            created_at=now,
            updated_at=now,
        )
        self.videos[video.id] = video
        self.video_write_count += 1
        return replace(video)

    def get_video(self, video_id: str) -> VideoRecord | None:
        video = self.videos.get(video_id)
        return replace(video) if video is not None else None

    def update_video(self, video_id: str, fields: dict[str, Any]) -> VideoRecord:
        video = self.videos.get(video_id)
        if video is None:
            raise NotFoundError()
        self._reject_unknown_fields(fields, _VIDEO_FIELDS, entity="Video")
        self._maybe_raise_write_failure()

        for key, value in fields.items():
            setattr(video, key, value)
        video.updated_at = datetime.now(UTC)
        self.video_write_count += 1
        return replace(video)

    def create_transcription_job(self, record: TranscriptionJobRecord) -> TranscriptionJobRecord:
        if record.job_name in self.jobs:
            raise StoreError(f"Transcription job already exists: {record.job_name}")
        self._maybe_raise_write_failure()

        stored = replace(record, settings=dict(record.settings), updated_at=record.created_at)
        self.jobs[stored.job_name] = stored
        self.job_write_count += 1
        return replace(stored)

    def get_transcription_job(self, job_name: str) -> TranscriptionJobRecord | None:
        job = self.jobs.get(job_name)
        return replace(job) if job is not None else None

    def update_transcription_job(self, job_name: str, fields: dict[str, Any]) -> TranscriptionJobRecord:
        job = self.jobs.get(job_name)
        if job is None:
            raise NotFoundError()
        self._reject_unknown_fields(fields, _JOB_FIELDS, entity="TranscriptionJob")
        self._maybe_raise_write_failure()

        for key, value in fields.items():
            setattr(job, key, value)
        job.updated_at = datetime.now(UTC)
        self.job_write_count += 1
        return replace(job)

    def list_transcription_jobs_for_video(self, video_id: str) -> list[TranscriptionJobRecord]:
        jobs = [replace(record) for record in self.jobs.values() if record.video_id == video_id]
        jobs.sort(key=lambda record: record.created_at)
        jobs.reverse()
        return jobs

    @staticmethod
    def _reject_unknown_fields(fields: dict[str, Any], allowed: frozenset[str], *, entity: str) -> None:
        unknown = sorted(set(fields) - allowed)
        if unknown:
            raise StoreError(f"Unknown {entity} fields: {', '.join(unknown)}")

    def _maybe_raise_write_failure(self) -> None:
        if self.write_failure_message is None:
            return
        message = self.write_failure_message
        self.write_failure_message = None
        raise StoreError(message)
