"""S3-backed artifact store."""

from __future__ import annotations

import json
import logging
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from vidscribe.adapters.artifacts.base import ArtifactStore, InvalidLocationError, ObjectLocation
from vidscribe.adapters.aws import build_client, client_error_code
from vidscribe.core.logging_safety import safe_log_location
from vidscribe.errors import MalformedArtifactError, NotFoundError, TransportError

logger = logging.getLogger(__name__)

_MISSING_OBJECT_CODES = frozenset({"NoSuchKey", "NoSuchBucket", "404", "NotFound"})


class S3ArtifactStore(ArtifactStore):
    def __init__(self, client: Any = None, *, region: str = "us-east-1", timeout_seconds: float = 10.0) -> None:
        self._client = client or build_client("s3", region=region, timeout_seconds=timeout_seconds)

    def fetch(self, uri: str) -> dict[str, Any]:
        try:
            location = ObjectLocation.parse(uri)
        except InvalidLocationError as exc:
            raise MalformedArtifactError(str(exc)) from exc

        try:
            response = self._client.get_object(Bucket=location.bucket, Key=location.key)
            body = response["Body"].read()
        except ClientError as exc:
            code = client_error_code(exc)
            if code in _MISSING_OBJECT_CODES:
                raise NotFoundError(f"Artifact not found: {location.uri}") from exc
            logger.warning("artifact.fetch_failed location=%s code=%s", safe_log_location(location.uri), code)
            raise TransportError(f"Artifact fetch failed: {code or 'unknown error'}") from exc
        except BotoCoreError as exc:
            logger.warning(
                "artifact.fetch_failed location=%s reason=%s",
                safe_log_location(location.uri),
                type(exc).__name__,
            )
            raise TransportError("Artifact store unreachable") from exc

        try:
            document = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise MalformedArtifactError("Artifact body is not valid JSON") from exc
        if not isinstance(document, dict):
            raise MalformedArtifactError("Artifact body is not a JSON object")
        return document
