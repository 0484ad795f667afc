"""Amazon Transcribe batch job adapter."""

from __future__ import annotations

import logging
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from vidscribe.adapters.artifacts.base import InvalidLocationError, ObjectLocation
from vidscribe.adapters.aws import build_client, client_error_code, client_error_message
from vidscribe.adapters.recognition.base import RecognitionClient, RemoteJobState
from vidscribe.core.logging_safety import safe_log_identifier
from vidscribe.errors import NotFoundError, SubmissionError, TransportError
from vidscribe.schemas.video import RemoteJobStatus

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = frozenset({"NotFoundException"})


def _is_missing_job(exc: ClientError) -> bool:
    code = client_error_code(exc)
    if code in _NOT_FOUND_CODES:
        return True
    # Transcribe reports unknown job names as a BadRequestException.
    return code == "BadRequestException" and "couldn't be found" in client_error_message(exc)


class TranscribeRecognitionClient(RecognitionClient):
    def __init__(self, client: Any = None, *, region: str = "us-east-1", timeout_seconds: float = 10.0) -> None:
        self._client = client or build_client("transcribe", region=region, timeout_seconds=timeout_seconds)

    def submit(
        self,
        *,
        job_name: str,
        media_uri: str,
        language_code: str,
        output_uri: str,
        settings: dict[str, Any],
    ) -> RemoteJobStatus:
        try:
            output = ObjectLocation.parse(output_uri)
        except InvalidLocationError as exc:
            raise SubmissionError(str(exc)) from exc

        args: dict[str, Any] = {
            "TranscriptionJobName": job_name,
            "LanguageCode": language_code,
            "Media": {"MediaFileUri": media_uri},
            "OutputBucketName": output.bucket,
            "OutputKey": output.key,
        }
        job_settings = self._build_settings(settings)
        if job_settings:
            args["Settings"] = job_settings

        safe_job_name = safe_log_identifier(job_name, prefix="job")
        try:
            response = self._client.start_transcription_job(**args)
        except ClientError as exc:
            code = client_error_code(exc)
            logger.warning("transcribe.submit_rejected job_name=%s code=%s", safe_job_name, code)
            raise SubmissionError(
                f"Transcription job rejected: {client_error_message(exc)}",
                details={"service_code": code},
            ) from exc
        except BotoCoreError as exc:
            logger.warning("transcribe.submit_failed job_name=%s reason=%s", safe_job_name, type(exc).__name__)
            raise SubmissionError("Speech recognition service unreachable") from exc

        status = ((response or {}).get("TranscriptionJob") or {}).get("TranscriptionJobStatus")
        if status == RemoteJobStatus.QUEUED.value:
            return RemoteJobStatus.QUEUED
        return RemoteJobStatus.IN_PROGRESS

    def get_status(self, job_name: str) -> RemoteJobState:
        try:
            response = self._client.get_transcription_job(TranscriptionJobName=job_name)
        except ClientError as exc:
            if _is_missing_job(exc):
                raise NotFoundError(f"Transcription job not found: {job_name}") from exc
            raise TransportError(f"Transcription status query failed: {client_error_code(exc)}") from exc
        except BotoCoreError as exc:
            raise TransportError("Speech recognition service unreachable") from exc

        job = (response or {}).get("TranscriptionJob") or {}
        transcript = job.get("Transcript") or {}
        return RemoteJobState(
            status=str(job.get("TranscriptionJobStatus") or ""),
            artifact_uri=transcript.get("TranscriptFileUri") or None,
            failure_reason=job.get("FailureReason") or None,
        )

    def cancel(self, job_name: str) -> None:
        # Transcribe has no stop call for batch jobs; deleting the job is the cancel.
        try:
            self._client.delete_transcription_job(TranscriptionJobName=job_name)
        except ClientError as exc:
            if _is_missing_job(exc):
                raise NotFoundError(f"Transcription job not found: {job_name}") from exc
            raise TransportError(f"Transcription cancel failed: {client_error_code(exc)}") from exc
        except BotoCoreError as exc:
            raise TransportError("Speech recognition service unreachable") from exc

    @staticmethod
    def _build_settings(settings: dict[str, Any]) -> dict[str, Any]:
        # Batch jobs are always punctuated; automatic_punctuation is kept on the job record only.
        job_settings: dict[str, Any] = {}
        if settings.get("speaker_labels"):
            job_settings["ShowSpeakerLabels"] = True
            job_settings["MaxSpeakerLabels"] = int(settings.get("max_speaker_labels") or 2)
        max_alternatives = int(settings.get("max_alternatives") or 0)
        if max_alternatives >= 2:
            job_settings["ShowAlternatives"] = True
            job_settings["MaxAlternatives"] = max_alternatives
        return job_settings
