"""Transcription progress polling."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
import logging

from vidscribe.adapters.artifacts.base import ArtifactStore
from vidscribe.adapters.recognition.base import RecognitionClient, RemoteJobState
from vidscribe.core.logging_safety import safe_log_identifier
from vidscribe.domain.result_parser import ParsedTranscript, parse
from vidscribe.domain.transcription_fsm import is_terminal, is_terminal_job
from vidscribe.errors import MalformedArtifactError, NotFoundError
from vidscribe.repositories.base import RecordStore, VideoRecord
from vidscribe.schemas.video import ProgressSnapshot, RemoteJobStatus, TranscriptionStatus
from vidscribe.services.locks import VideoLocks

logger = logging.getLogger(__name__)

# Coarse synthetic estimates; the service does not report real progress.
_RUNNING_PROGRESS: dict[str, tuple[int, str]] = {
    RemoteJobStatus.IN_PROGRESS.value: (50, "Speech recognition service is processing the audio"),
    RemoteJobStatus.QUEUED.value: (25, "Queued at the speech recognition service"),
}
_UNKNOWN_STATUS_PROGRESS = 10
_MISSING_REMOTE_JOB_REASON = "Transcription job no longer exists on the recognition service"
_MISSING_ARTIFACT_REASON = "Recognition service reported no transcript location"


class StatusPoller:
    def __init__(
        self,
        store: RecordStore,
        recognition: RecognitionClient,
        artifacts: ArtifactStore,
        *,
        locks: VideoLocks | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._recognition = recognition
        self._artifacts = artifacts
        self._locks = locks or VideoLocks()
        self._now = now or (lambda: datetime.now(UTC))

    def check_progress(self, video_id: str) -> ProgressSnapshot:
        video = self._store.require_video(video_id)
        if is_terminal(video.transcription_status):
            return snapshot_from_video(video)
        job_name = video.transcription_job_name
        if not job_name:
            return ProgressSnapshot(
                status=TranscriptionStatus.NOT_STARTED,
                progress_percent=0,
                message="Transcription not started",
            )

        try:
            state = self._recognition.get_status(job_name)
        except NotFoundError:
            return self._record_failure(video_id, job_name, _MISSING_REMOTE_JOB_REASON)

        remote_status = state.status.upper()
        if remote_status == RemoteJobStatus.COMPLETED.value:
            return self._handle_completed(video_id, job_name, state)
        if remote_status == RemoteJobStatus.FAILED.value:
            return self._record_failure(video_id, job_name, state.failure_reason or "Unknown error")

        self._mirror_running_status(video_id, job_name, remote_status)
        progress, message = _RUNNING_PROGRESS.get(
            remote_status,
            (_UNKNOWN_STATUS_PROGRESS, f"Remote status: {state.status or 'unknown'}"),
        )
        return ProgressSnapshot(
            status=TranscriptionStatus.IN_PROGRESS,
            progress_percent=progress,
            message=message,
            job_name=job_name,
        )

    def _handle_completed(self, video_id: str, job_name: str, state: RemoteJobState) -> ProgressSnapshot:
        if not state.artifact_uri:
            return self._record_failure(video_id, job_name, _MISSING_ARTIFACT_REASON)

        try:
            parsed = parse(self._artifacts.fetch(state.artifact_uri))
        except (MalformedArtifactError, NotFoundError) as exc:
            logger.warning(
                "poll.artifact_rejected video_id=%s job_name=%s code=%s",
                safe_log_identifier(video_id, prefix="vid"),
                job_name,
                exc.payload.code,
            )
            return self._record_failure(video_id, job_name, f"Transcription result could not be processed: {exc.message}")

        return self._record_completion(video_id, job_name, parsed)

    def _record_completion(self, video_id: str, job_name: str, parsed: ParsedTranscript) -> ProgressSnapshot:
        with self._locks.hold(video_id):
            video = self._store.require_video(video_id)
            if not self._is_active(video, job_name):
                return snapshot_from_video(video)

            completed_at = self._now()
            job = self._store.get_transcription_job(job_name)
            if job is not None and not is_terminal_job(job.status):
                self._store.transition_job_status(
                    job_name,
                    RemoteJobStatus.COMPLETED,
                    completed_at=completed_at,
                    transcription_text=parsed.text,
                    confidence=parsed.average_confidence,
                    word_count=parsed.word_count,
                )
            video = self._store.transition_video_status(
                video_id,
                TranscriptionStatus.COMPLETED,
                transcription_text=parsed.text,
                transcription_confidence=parsed.average_confidence,
                transcription_word_count=parsed.word_count,
                transcription_completed_at=completed_at,
                transcription_error=None,
            )

        logger.info(
            "poll.completed video_id=%s job_name=%s word_count=%s confidence=%.2f",
            safe_log_identifier(video_id, prefix="vid"),
            job_name,
            parsed.word_count,
            parsed.average_confidence,
        )
        return snapshot_from_video(video)

    def _record_failure(self, video_id: str, job_name: str, reason: str) -> ProgressSnapshot:
        with self._locks.hold(video_id):
            video = self._store.require_video(video_id)
            if not self._is_active(video, job_name):
                return snapshot_from_video(video)

            failed_at = self._now()
            job = self._store.get_transcription_job(job_name)
            if job is not None and not is_terminal_job(job.status):
                self._store.transition_job_status(
                    job_name,
                    RemoteJobStatus.FAILED,
                    completed_at=failed_at,
                    error_message=reason,
                )
            video = self._store.transition_video_status(
                video_id,
                TranscriptionStatus.FAILED,
                transcription_error=reason,
                transcription_completed_at=failed_at,
            )

        logger.warning(
            "poll.failed video_id=%s job_name=%s reason=%s",
            safe_log_identifier(video_id, prefix="vid"),
            job_name,
            reason,
        )
        return snapshot_from_video(video)

    @staticmethod
    def _is_active(video: VideoRecord, job_name: str) -> bool:
        # A cancel or a newer attempt may have landed while the remote call was in flight.
        return (
            video.transcription_status is TranscriptionStatus.IN_PROGRESS
            and video.transcription_job_name == job_name
        )

    def _mirror_running_status(self, video_id: str, job_name: str, remote_status: str) -> None:
        with self._locks.hold(video_id):
            job = self._store.get_transcription_job(job_name)
            if job is None:
                return
            if remote_status == RemoteJobStatus.IN_PROGRESS.value and job.status in (
                RemoteJobStatus.PENDING,
                RemoteJobStatus.QUEUED,
            ):
                self._store.transition_job_status(job_name, RemoteJobStatus.IN_PROGRESS)
            elif remote_status == RemoteJobStatus.QUEUED.value and job.status is RemoteJobStatus.PENDING:
                self._store.transition_job_status(job_name, RemoteJobStatus.QUEUED)


def snapshot_from_video(video: VideoRecord) -> ProgressSnapshot:
    """Rebuild a progress snapshot from persisted video fields without remote calls."""
    status = video.transcription_status
    if status is TranscriptionStatus.COMPLETED:
        return ProgressSnapshot(
            status=status,
            progress_percent=100,
            message="Transcription completed",
            job_name=video.transcription_job_name,
            text=video.transcription_text,
            confidence=video.transcription_confidence,
            word_count=video.transcription_word_count,
        )
    if status is TranscriptionStatus.FAILED:
        error = video.transcription_error or "Unknown error"
        return ProgressSnapshot(
            status=status,
            progress_percent=0,
            message=f"Transcription failed: {error}",
            job_name=video.transcription_job_name,
            error=error,
        )
    if status is TranscriptionStatus.IN_PROGRESS:
        return ProgressSnapshot(
            status=status,
            progress_percent=_UNKNOWN_STATUS_PROGRESS,
            message="Transcription in progress",
            job_name=video.transcription_job_name,
        )
    return ProgressSnapshot(status=status, progress_percent=0, message="Transcription not started")
