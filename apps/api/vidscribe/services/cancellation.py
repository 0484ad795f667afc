"""Transcription cancellation and retry."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
import logging

from vidscribe.adapters.recognition.base import RecognitionClient
from vidscribe.core.logging_safety import safe_log_identifier
from vidscribe.domain.transcription_fsm import is_terminal_job
from vidscribe.errors import ApiError, ConflictError
from vidscribe.repositories.base import RecordStore, VideoRecord
from vidscribe.schemas.video import RemoteJobStatus, TranscriptionOptions, TranscriptionStatus
from vidscribe.services.submission import SubmissionManager

logger = logging.getLogger(__name__)

CANCELED_BY_USER = "canceled by user"


class CancellationManager:
    def __init__(
        self,
        store: RecordStore,
        recognition: RecognitionClient,
        submission: SubmissionManager,
        *,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._recognition = recognition
        self._submission = submission
        self._now = now or (lambda: datetime.now(UTC))

    def cancel(self, video_id: str) -> VideoRecord:
        video = self._store.require_video(video_id)
        safe_video_id = safe_log_identifier(video_id, prefix="vid")
        if video.transcription_status is TranscriptionStatus.FAILED:
            logger.info("cancel.replayed video_id=%s", safe_video_id)
            return video
        if video.transcription_status is not TranscriptionStatus.IN_PROGRESS:
            raise ConflictError(
                "Only an in-progress transcription can be canceled.",
                details={"current_status": video.transcription_status},
            )

        job_name = video.transcription_job_name
        canceled_at = self._now()
        if job_name:
            try:
                self._recognition.cancel(job_name)
            except ApiError as exc:
                logger.warning(
                    "cancel.remote_failed video_id=%s job_name=%s code=%s",
                    safe_video_id,
                    job_name,
                    exc.payload.code,
                )

            job = self._store.get_transcription_job(job_name)
            if job is not None and not is_terminal_job(job.status):
                self._store.transition_job_status(
                    job_name,
                    RemoteJobStatus.FAILED,
                    error_message=CANCELED_BY_USER,
                    completed_at=canceled_at,
                )

        video = self._store.transition_video_status(
            video_id,
            TranscriptionStatus.FAILED,
            transcription_error=CANCELED_BY_USER,
            transcription_completed_at=canceled_at,
        )
        logger.info("cancel.applied video_id=%s job_name=%s", safe_video_id, job_name)
        return video

    def retry(self, video_id: str) -> str:
        video = self._store.require_video(video_id)
        if video.transcription_status is not TranscriptionStatus.FAILED:
            raise ConflictError(
                "Retry is allowed only from failed.",
                details={
                    "current_status": video.transcription_status,
                    "attempted_status": TranscriptionStatus.IN_PROGRESS,
                },
            )

        previous_job = (
            self._store.get_transcription_job(video.transcription_job_name)
            if video.transcription_job_name
            else None
        )
        settings = previous_job.settings if previous_job is not None else TranscriptionOptions().to_settings()
        job_name = self._submission.submit(
            video=video,
            media_location=video.media_location,
            language_code=video.language_code,
            settings=settings,
        )
        logger.info(
            "retry.dispatched video_id=%s job_name=%s previous_job_name=%s",
            safe_log_identifier(video_id, prefix="vid"),
            job_name,
            video.transcription_job_name,
        )
        return job_name
