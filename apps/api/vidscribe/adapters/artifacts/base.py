"""Artifact store interfaces and object locations."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any
from urllib.parse import unquote, urlsplit


class InvalidLocationError(ValueError):
    """Raised when a string is not a recognizable object location."""


@dataclass(frozen=True, slots=True)
class ObjectLocation:
    bucket: str
    key: str

    @property
    def uri(self) -> str:
        return f"s3://{self.bucket}/{self.key}"

    @classmethod
    def parse(cls, value: str) -> ObjectLocation:
        """Parse ``s3://bucket/key`` or an S3 HTTPS URL (path or virtual-hosted style)."""
        text = (value or "").strip()
        parts = urlsplit(text)
        path = unquote(parts.path).lstrip("/")

        if parts.scheme == "s3":
            return cls._build(parts.netloc, path, text)

        if parts.scheme in ("http", "https") and parts.netloc.endswith(".amazonaws.com"):
            host = parts.netloc
            if host.startswith("s3.") or host.startswith("s3-"):
                bucket, _, key = path.partition("/")
                return cls._build(bucket, key, text)
            if ".s3." in host or ".s3-" in host:
                bucket = host.split(".s3", 1)[0]
                return cls._build(bucket, path, text)

        raise InvalidLocationError(f"Unsupported object location: {text!r}")

    @classmethod
    def _build(cls, bucket: str, key: str, original: str) -> ObjectLocation:
        if not bucket or not key:
            raise InvalidLocationError(f"Object location needs a bucket and a key: {original!r}")
        return cls(bucket=bucket, key=key)


class ArtifactStore(ABC):
    """Fetches JSON artifacts by location."""

    @abstractmethod
    def fetch(self, uri: str) -> dict[str, Any]:
        """Return the decoded JSON document at ``uri``.

        Raises ``NotFoundError`` when the object is missing, ``TransportError``
        on transient failures and ``MalformedArtifactError`` when the body is
        not a JSON object.
        """
