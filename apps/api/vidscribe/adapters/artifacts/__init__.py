"""Artifact store adapters."""

from .base import ArtifactStore, InvalidLocationError, ObjectLocation
from .s3_artifacts import S3ArtifactStore

__all__ = [
    "ArtifactStore",
    "InvalidLocationError",
    "ObjectLocation",
    "S3ArtifactStore",
]
