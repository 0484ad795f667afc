"""Deterministic recognition and artifact doubles shared by the test modules."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
import time
from typing import Any

from vidscribe.adapters.artifacts.base import ArtifactStore
from vidscribe.adapters.recognition.base import RecognitionClient, RemoteJobState
from vidscribe.core.config import Settings
from vidscribe.errors import ApiError, NotFoundError
from vidscribe.repositories.memory import InMemoryStore
from vidscribe.schemas.video import RemoteJobStatus
from vidscribe.services.orchestrator import TranscriptionOrchestrator

MEDIA_URI = "s3://media-bucket/uploads/lecture.mp4"


class FakeRecognitionClient(RecognitionClient):
    def __init__(self) -> None:
        self.accept_status = RemoteJobStatus.QUEUED
        self.states: dict[str, RemoteJobState] = {}
        self.submissions: list[dict[str, Any]] = []
        self.cancelled: list[str] = []
        self.status_calls = 0
        self.submit_delay_seconds = 0.0
        self.submit_error: Exception | None = None
        self.status_errors: list[ApiError] = []
        self.cancel_error: ApiError | None = None

    def submit(
        self,
        *,
        job_name: str,
        media_uri: str,
        language_code: str,
        output_uri: str,
        settings: dict[str, Any],
    ) -> RemoteJobStatus:
        if self.submit_delay_seconds:
            time.sleep(self.submit_delay_seconds)
        if self.submit_error is not None:
            raise self.submit_error
        self.submissions.append(
            {
                "job_name": job_name,
                "media_uri": media_uri,
                "language_code": language_code,
                "output_uri": output_uri,
                "settings": settings,
            }
        )
        self.states[job_name] = RemoteJobState(status=self.accept_status.value)
        return self.accept_status

    def get_status(self, job_name: str) -> RemoteJobState:
        self.status_calls += 1
        if self.status_errors:
            raise self.status_errors.pop(0)
        state = self.states.get(job_name)
        if state is None:
            raise NotFoundError(f"Transcription job not found: {job_name}")
        return state

    def cancel(self, job_name: str) -> None:
        self.cancelled.append(job_name)
        if self.cancel_error is not None:
            raise self.cancel_error

    def set_status(self, job_name: str, status: str) -> None:
        self.states[job_name] = RemoteJobState(status=status)

    def complete(self, job_name: str, artifact_uri: str | None) -> None:
        self.states[job_name] = RemoteJobState(status=RemoteJobStatus.COMPLETED.value, artifact_uri=artifact_uri)

    def fail(self, job_name: str, reason: str | None) -> None:
        self.states[job_name] = RemoteJobState(status=RemoteJobStatus.FAILED.value, failure_reason=reason)


class FakeArtifactStore(ArtifactStore):
    def __init__(self) -> None:
        self.documents: dict[str, Any] = {}
        self.errors: dict[str, ApiError] = {}
        self.fetch_calls = 0

    def fetch(self, uri: str) -> dict[str, Any]:
        self.fetch_calls += 1
        if uri in self.errors:
            raise self.errors[uri]
        if uri not in self.documents:
            raise NotFoundError(f"Artifact not found: {uri}")
        return self.documents[uri]


class TickingClock:
    """Returns a strictly increasing time so consecutive job names never collide."""

    def __init__(self, start: datetime | None = None) -> None:
        self._current = start or datetime(2024, 3, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        self._current += timedelta(seconds=1)
        return self._current


def transcribe_document(transcript: str, confidences: list[Any]) -> dict[str, Any]:
    return {
        "jobName": "ignored",
        "results": {
            "transcripts": [{"transcript": transcript}],
            "items": [
                {"type": "pronunciation", "alternatives": [{"confidence": value, "content": "w"}]}
                for value in confidences
            ],
        },
    }


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "output_bucket": "test-transcripts",
        "output_prefix": "transcriptions/",
        "poll_interval_seconds": 0.01,
        "poll_timeout_seconds": 2.0,
    }
    values.update(overrides)
    return Settings(**values)


def build_orchestrator(
    **setting_overrides: Any,
) -> tuple[TranscriptionOrchestrator, InMemoryStore, FakeRecognitionClient, FakeArtifactStore]:
    store = InMemoryStore()
    recognition = FakeRecognitionClient()
    artifacts = FakeArtifactStore()
    orchestrator = TranscriptionOrchestrator(
        store,
        recognition,
        artifacts,
        settings=make_settings(**setting_overrides),
        now=TickingClock(),
    )
    return orchestrator, store, recognition, artifacts
