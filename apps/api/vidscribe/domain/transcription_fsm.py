"""Transcription lifecycle transition rules."""

from vidscribe.errors import ConflictError
from vidscribe.schemas.video import RemoteJobStatus, TranscriptionStatus

_TERMINAL_STATES: set[TranscriptionStatus] = {
    TranscriptionStatus.COMPLETED,
    TranscriptionStatus.FAILED,
}

# FAILED is terminal for polling but re-enterable through start/retry.
_ALLOWED_TRANSITIONS: dict[TranscriptionStatus, set[TranscriptionStatus]] = {
    TranscriptionStatus.NOT_STARTED: {TranscriptionStatus.IN_PROGRESS, TranscriptionStatus.FAILED},
    TranscriptionStatus.IN_PROGRESS: {TranscriptionStatus.COMPLETED, TranscriptionStatus.FAILED},
    TranscriptionStatus.COMPLETED: set(),
    TranscriptionStatus.FAILED: {TranscriptionStatus.IN_PROGRESS, TranscriptionStatus.FAILED},
}

_TERMINAL_JOB_STATES: set[RemoteJobStatus] = {
    RemoteJobStatus.COMPLETED,
    RemoteJobStatus.FAILED,
}

_ALLOWED_JOB_TRANSITIONS: dict[RemoteJobStatus, set[RemoteJobStatus]] = {
    RemoteJobStatus.PENDING: {
        RemoteJobStatus.QUEUED,
        RemoteJobStatus.IN_PROGRESS,
        RemoteJobStatus.COMPLETED,
        RemoteJobStatus.FAILED,
    },
    RemoteJobStatus.QUEUED: {RemoteJobStatus.IN_PROGRESS, RemoteJobStatus.COMPLETED, RemoteJobStatus.FAILED},
    RemoteJobStatus.IN_PROGRESS: {RemoteJobStatus.COMPLETED, RemoteJobStatus.FAILED},
    RemoteJobStatus.COMPLETED: set(),
    RemoteJobStatus.FAILED: set(),
}


def is_terminal(status: TranscriptionStatus) -> bool:
    return status in _TERMINAL_STATES


def is_terminal_job(status: RemoteJobStatus) -> bool:
    return status in _TERMINAL_JOB_STATES


def allowed_next_statuses(status: TranscriptionStatus) -> list[TranscriptionStatus]:
    """Return deterministically ordered allowed successors for a status."""
    return sorted(_ALLOWED_TRANSITIONS.get(status, set()), key=lambda s: s.value)


def ensure_transition(old_status: TranscriptionStatus, new_status: TranscriptionStatus) -> None:
    """Validate a video transcription status change."""
    if new_status not in _ALLOWED_TRANSITIONS.get(old_status, set()):
        raise ConflictError(
            "Invalid transcription status transition",
            details={
                "current_status": old_status,
                "attempted_status": new_status,
                "allowed_next_statuses": allowed_next_statuses(old_status),
            },
        )


def ensure_job_transition(old_status: RemoteJobStatus, new_status: RemoteJobStatus) -> None:
    """Validate a transcription job status change."""
    if old_status in _TERMINAL_JOB_STATES:
        raise ConflictError(
            "Terminal transcription job cannot be mutated",
            details={
                "current_status": old_status,
                "attempted_status": new_status,
                "allowed_next_statuses": [],
            },
        )
    if new_status not in _ALLOWED_JOB_TRANSITIONS.get(old_status, set()):
        raise ConflictError(
            "Invalid transcription job status transition",
            details={
                "current_status": old_status,
                "attempted_status": new_status,
                "allowed_next_statuses": sorted(
                    _ALLOWED_JOB_TRANSITIONS.get(old_status, set()), key=lambda s: s.value
                ),
            },
        )
