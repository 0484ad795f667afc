"""Speech recognition service interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from vidscribe.schemas.video import RemoteJobStatus


@dataclass(frozen=True, slots=True)
class RemoteJobState:
    status: str
    artifact_uri: str | None = None
    failure_reason: str | None = None


class RecognitionClient(ABC):
    """Provider-neutral batch transcription interface."""

    @abstractmethod
    def submit(
        self,
        *,
        job_name: str,
        media_uri: str,
        language_code: str,
        output_uri: str,
        settings: dict[str, Any],
    ) -> RemoteJobStatus:
        """Start a job and return the status the service accepted it with.

        Raises ``SubmissionError`` when the service rejects the job or cannot
        be reached.
        """

    @abstractmethod
    def get_status(self, job_name: str) -> RemoteJobState:
        """Return the remote job state.

        Raises ``NotFoundError`` for unknown jobs and ``TransportError`` for
        transient failures.
        """

    @abstractmethod
    def cancel(self, job_name: str) -> None:
        """Best-effort cancellation; raises ``NotFoundError`` or ``TransportError``."""


__all__ = ["RecognitionClient", "RemoteJobState"]
