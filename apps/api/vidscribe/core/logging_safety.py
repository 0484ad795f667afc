"""Utilities for safe structured logging fields."""

from __future__ import annotations

import hashlib
from typing import Any


def safe_log_identifier(value: Any, *, prefix: str) -> str:
    """Return a deterministic non-reversible token for log correlation fields."""
    text = str(value or "").strip()
    if not text:
        return f"{prefix}-missing"

    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()[:12]
    return f"{prefix}-{digest}"


def safe_log_location(uri: str | None) -> str:
    """Keep the bucket of an object location for logs and hash the key."""
    text = (uri or "").strip()
    if "://" not in text:
        return safe_log_identifier(text, prefix="loc")
    scheme, _, rest = text.partition("://")
    bucket, _, key = rest.partition("/")
    return f"{scheme}://{bucket}/{safe_log_identifier(key, prefix='key')}"
