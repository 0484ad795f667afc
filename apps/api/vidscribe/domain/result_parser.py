"""Recognition result document parsing.

The document layout is owned by the recognition service::

    {"results": {"transcripts": [{"transcript": "..."}],
                 "items": [{"alternatives": [{"confidence": "0.98", ...}], ...}]}}

Per-item confidence is optional data (punctuation items carry none, and
some services omit it), so gaps are skipped rather than treated as errors.
Only a document without a ``results`` container is rejected.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Any, Mapping

from vidscribe.errors import MalformedArtifactError


@dataclass(frozen=True, slots=True)
class ParsedTranscript:
    text: str
    word_count: int
    average_confidence: float


def parse(document: Any) -> ParsedTranscript:
    if not isinstance(document, Mapping) or "results" not in document:
        raise MalformedArtifactError("Recognition result document is missing 'results'")

    results = document["results"]
    if not isinstance(results, Mapping):
        raise MalformedArtifactError("Recognition result 'results' is not an object")

    text = _primary_transcript(results.get("transcripts"))
    confidences = [value for value in map(_top_confidence, _as_list(results.get("items"))) if value is not None]
    average = sum(confidences) / len(confidences) if confidences else 0.0

    return ParsedTranscript(
        text=text,
        word_count=len(text.split()),
        average_confidence=average,
    )


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _primary_transcript(transcripts: Any) -> str:
    entries = _as_list(transcripts)
    if not entries or not isinstance(entries[0], Mapping):
        return ""
    transcript = entries[0].get("transcript")
    return transcript if isinstance(transcript, str) else ""


def _top_confidence(item: Any) -> float | None:
    if not isinstance(item, Mapping):
        return None
    alternatives = _as_list(item.get("alternatives"))
    if not alternatives or not isinstance(alternatives[0], Mapping):
        return None
    raw = alternatives[0].get("confidence")
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value
