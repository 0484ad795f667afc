"""Transcription orchestrator facade."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime
import logging

from vidscribe.adapters.artifacts.base import ArtifactStore
from vidscribe.adapters.recognition.base import RecognitionClient
from vidscribe.core.config import Settings
from vidscribe.core.languages import resolve_language_code
from vidscribe.core.logging_safety import safe_log_identifier
from vidscribe.errors import ConflictError
from vidscribe.repositories.base import RecordStore, TranscriptionJobRecord, VideoRecord
from vidscribe.schemas.video import ProgressSnapshot, TranscriptionOptions, TranscriptionStatus, WatchState
from vidscribe.services.cancellation import CancellationManager
from vidscribe.services.locks import VideoLocks
from vidscribe.services.poller import StatusPoller
from vidscribe.services.polling_supervisor import PollingSupervisor
from vidscribe.services.submission import SubmissionManager

logger = logging.getLogger(__name__)


class TranscriptionOrchestrator:
    """Owns the collaborators and exposes start, check_progress, cancel and retry."""

    def __init__(
        self,
        store: RecordStore,
        recognition: RecognitionClient,
        artifacts: ArtifactStore,
        *,
        settings: Settings,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        clock = now or (lambda: datetime.now(UTC))
        self._store = store
        self._settings = settings
        self._locks = VideoLocks()
        self.submission = SubmissionManager(store, recognition, settings=settings, now=clock)
        self.poller = StatusPoller(store, recognition, artifacts, locks=self._locks, now=clock)
        self.cancellation = CancellationManager(store, recognition, self.submission, now=clock)
        self.supervisor = PollingSupervisor(
            self.check_progress,
            interval_seconds=settings.poll_interval_seconds,
            timeout_seconds=settings.poll_timeout_seconds,
        )

    def register_video(self, *, title: str, media_location: str, language: str | None = None) -> VideoRecord:
        language_code = resolve_language_code(language, default=self._settings.default_language_code)
        return self._store.create_video(title=title, media_location=media_location, language_code=language_code)

    def get_video(self, video_id: str) -> VideoRecord:
        return self._store.require_video(video_id)

    def list_jobs(self, video_id: str) -> list[TranscriptionJobRecord]:
        self._store.require_video(video_id)
        return self._store.list_transcription_jobs_for_video(video_id)

    def get_transcript(self, video_id: str) -> VideoRecord:
        video = self._store.require_video(video_id)
        if video.transcription_status is not TranscriptionStatus.COMPLETED:
            raise ConflictError(
                "Transcript is not available for this transcription state.",
                details={"current_status": video.transcription_status},
            )
        return video

    def start(
        self,
        video_id: str,
        *,
        media_location: str | None = None,
        language_code: str | None = None,
        options: TranscriptionOptions | None = None,
    ) -> str:
        with self._locks.hold(video_id):
            return self.submission.start(
                video_id=video_id,
                media_location=media_location,
                language_code=language_code,
                options=options,
            )

    def check_progress(self, video_id: str) -> ProgressSnapshot:
        return self.poller.check_progress(video_id)

    def cancel(self, video_id: str) -> VideoRecord:
        with self._locks.hold(video_id):
            video = self.cancellation.cancel(video_id)
        if self.supervisor.stop(video_id):
            logger.info("cancel.poll_stopped video_id=%s", safe_log_identifier(video_id, prefix="vid"))
        return video

    def retry(self, video_id: str) -> str:
        with self._locks.hold(video_id):
            return self.cancellation.retry(video_id)

    def watch(self, video_id: str) -> asyncio.Task:
        self._store.require_video(video_id)
        return self.supervisor.watch(video_id)

    def watch_state(self, video_id: str) -> WatchState:
        self._store.require_video(video_id)
        return self.supervisor.state(video_id)
