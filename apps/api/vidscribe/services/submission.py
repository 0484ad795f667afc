"""Transcription job submission."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
import logging
from typing import Any

from vidscribe.adapters.artifacts.base import InvalidLocationError, ObjectLocation
from vidscribe.adapters.recognition.base import RecognitionClient
from vidscribe.core.config import Settings
from vidscribe.core.languages import resolve_language_code
from vidscribe.core.logging_safety import safe_log_identifier, safe_log_location
from vidscribe.domain.transcription_fsm import ensure_transition, is_terminal_job
from vidscribe.errors import ApiError, ConflictError, SubmissionError
from vidscribe.repositories.base import RecordStore, TranscriptionJobRecord, VideoRecord
from vidscribe.schemas.video import RemoteJobStatus, TranscriptionOptions, TranscriptionStatus

logger = logging.getLogger(__name__)


def build_job_name(video_id: str, created_at: datetime) -> str:
    return f"transcribe_{video_id}_{int(created_at.timestamp() * 1000)}"


def _failure_reason(exc: Exception) -> str:
    if isinstance(exc, ApiError):
        return exc.message
    return str(exc) or type(exc).__name__


class SubmissionManager:
    def __init__(
        self,
        store: RecordStore,
        recognition: RecognitionClient,
        *,
        settings: Settings,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._recognition = recognition
        self._settings = settings
        self._now = now or (lambda: datetime.now(UTC))

    def start(
        self,
        *,
        video_id: str,
        media_location: str | None = None,
        language_code: str | None = None,
        options: TranscriptionOptions | None = None,
    ) -> str:
        video = self._store.require_video(video_id)
        self.ensure_startable(video)
        settings = (options or TranscriptionOptions()).to_settings()
        return self.submit(
            video=video,
            media_location=media_location or video.media_location,
            language_code=language_code or video.language_code,
            settings=settings,
        )

    @staticmethod
    def ensure_startable(video: VideoRecord) -> None:
        if video.transcription_status is TranscriptionStatus.IN_PROGRESS:
            raise ConflictError(
                "A transcription job is already running for this video.",
                details={
                    "current_status": video.transcription_status,
                    "job_name": video.transcription_job_name,
                },
            )
        ensure_transition(video.transcription_status, TranscriptionStatus.IN_PROGRESS)

    def submit(
        self,
        *,
        video: VideoRecord,
        media_location: str,
        language_code: str,
        settings: dict[str, Any],
    ) -> str:
        """Create the job bookkeeping and hand the job to the recognition service.

        The caller has already checked that ``video`` may enter ``in_progress``.
        Any failure from here on leaves the video ``failed`` and re-raises.
        """
        created_at = self._now()
        job_name = self._unique_job_name(video.id, created_at)
        output = ObjectLocation(
            bucket=self._settings.output_bucket,
            key=f"{self._settings.output_prefix}{job_name}.json",
        )
        resolved_language = resolve_language_code(language_code, default=self._settings.default_language_code)
        safe_video_id = safe_log_identifier(video.id, prefix="vid")
        job_created = False

        try:
            self._validate_media_location(media_location)
            self._store.create_transcription_job(
                TranscriptionJobRecord(
                    job_name=job_name,
                    video_id=video.id,
                    media_location=media_location,
                    language_code=resolved_language,
                    status=RemoteJobStatus.PENDING,
                    output_location=output.uri,
                    created_at=created_at,
                    settings=dict(settings),
                )
            )
            job_created = True
            self._store.transition_video_status(
                video.id,
                TranscriptionStatus.IN_PROGRESS,
                transcription_job_name=job_name,
                transcription_output_key=output.key,
                media_location=media_location,
                language_code=resolved_language,
                transcription_started_at=created_at,
                transcription_completed_at=None,
                transcription_text=None,
                transcription_confidence=None,
                transcription_word_count=None,
                transcription_error=None,
            )
            accepted_status = self._recognition.submit(
                job_name=job_name,
                media_uri=media_location,
                language_code=resolved_language,
                output_uri=output.uri,
                settings=dict(settings),
            )
            self._store.transition_job_status(job_name, accepted_status, submitted_at=self._now())
        except Exception as exc:
            self._rollback(video_id=video.id, job_name=job_name, job_created=job_created, reason=_failure_reason(exc))
            raise

        logger.info(
            "submit.accepted video_id=%s job_name=%s media=%s language_code=%s status=%s",
            safe_video_id,
            job_name,
            safe_log_location(media_location),
            resolved_language,
            accepted_status.value,
        )
        return job_name

    def _unique_job_name(self, video_id: str, created_at: datetime) -> str:
        job_name = build_job_name(video_id, created_at)
        suffix = 1
        while self._store.get_transcription_job(job_name) is not None:
            job_name = f"{build_job_name(video_id, created_at)}-{suffix}"
            suffix += 1
        return job_name

    @staticmethod
    def _validate_media_location(media_location: str) -> None:
        try:
            ObjectLocation.parse(media_location)
        except InvalidLocationError as exc:
            raise SubmissionError(str(exc), details={"media_location": media_location}) from exc

    def _rollback(self, *, video_id: str, job_name: str, job_created: bool, reason: str) -> None:
        safe_video_id = safe_log_identifier(video_id, prefix="vid")
        failed_at = self._now()
        try:
            if job_created:
                job = self._store.get_transcription_job(job_name)
                if job is not None and not is_terminal_job(job.status):
                    self._store.transition_job_status(
                        job_name,
                        RemoteJobStatus.FAILED,
                        error_message=reason,
                        completed_at=failed_at,
                    )

            video = self._store.require_video(video_id)
            owns_video = (
                video.transcription_status is not TranscriptionStatus.IN_PROGRESS
                or video.transcription_job_name == job_name
            )
            if owns_video:
                self._store.transition_video_status(
                    video_id,
                    TranscriptionStatus.FAILED,
                    transcription_error=reason,
                    transcription_completed_at=failed_at,
                )
        except Exception:
            logger.exception("submit.rollback_failed video_id=%s job_name=%s", safe_video_id, job_name)
            return

        logger.warning("submit.failed video_id=%s job_name=%s reason=%s", safe_video_id, job_name, reason)
