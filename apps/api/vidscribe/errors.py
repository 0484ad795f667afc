"""Application exception types.

Every error the orchestrator raises is an ``ApiError`` so the HTTP layer can
render it without translation; the subclasses carry the transcription error
taxonomy and their default status code and contract code.
"""

from typing import Any

from vidscribe.schemas.error import ErrorResponse


class ApiError(Exception):
    """Structured API error that maps directly to contract error payloads."""

    def __init__(self, status_code: int, code: str, message: str, details: dict | None = None) -> None:
        self.status_code = status_code
        self.payload = ErrorResponse(code=code, message=message, details=details)
        super().__init__(message)

    @property
    def message(self) -> str:
        return self.payload.message


class _TaxonomyError(ApiError):
    default_status_code = 500
    default_code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            status_code=self.default_status_code,
            code=self.default_code,
            message=message,
            details=details,
        )


class ConflictError(_TaxonomyError):
    """An invalid transcription state transition was attempted."""

    default_status_code = 409
    default_code = "TRANSCRIPTION_CONFLICT"


class SubmissionError(_TaxonomyError):
    """The recognition service rejected the job or could not be reached during submit."""

    default_status_code = 502
    default_code = "TRANSCRIPTION_SUBMISSION_FAILED"


class TransportError(_TaxonomyError):
    """Transient failure reaching the recognition service or artifact store."""

    default_status_code = 503
    default_code = "TRANSCRIPTION_TRANSPORT_ERROR"


class MalformedArtifactError(_TaxonomyError):
    """The recognition result document violates its structural contract."""

    default_status_code = 502
    default_code = "TRANSCRIPTION_ARTIFACT_MALFORMED"


class StoreError(_TaxonomyError):
    """Durable record storage failed."""

    default_status_code = 500
    default_code = "STORE_ERROR"


class NotFoundError(_TaxonomyError):
    """A referenced video, remote job or artifact does not exist."""

    default_status_code = 404
    default_code = "RESOURCE_NOT_FOUND"

    def __init__(self, message: str = "Resource not found", details: dict[str, Any] | None = None) -> None:
        super().__init__(message, details)


__all__ = [
    "ApiError",
    "ConflictError",
    "MalformedArtifactError",
    "NotFoundError",
    "StoreError",
    "SubmissionError",
    "TransportError",
]
