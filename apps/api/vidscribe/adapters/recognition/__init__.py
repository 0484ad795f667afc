"""Speech recognition service adapters."""

from .aws_transcribe import TranscribeRecognitionClient
from .base import RecognitionClient, RemoteJobState

__all__ = [
    "RecognitionClient",
    "RemoteJobState",
    "TranscribeRecognitionClient",
]
