"""Mapping between application language names and recognition service codes."""

from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

LANGUAGE_CODES: dict[str, str] = {
    "english": "en-US",
    "spanish": "es-ES",
    "french": "fr-FR",
    "german": "de-DE",
    "italian": "it-IT",
    "portuguese": "pt-BR",
    "russian": "ru-RU",
    "chinese": "zh-CN",
    "japanese": "ja-JP",
    "arabic": "ar-SA",
}

_SERVICE_CODE_PATTERN = re.compile(r"^[a-z]{2,3}-[A-Z]{2}$")


def supported_languages() -> list[str]:
    return sorted(LANGUAGE_CODES)


def resolve_language_code(value: str | None, *, default: str) -> str:
    """Return a service language code for an app language name or a service code.

    Unknown values fall back to ``default``.
    """
    text = (value or "").strip()
    if not text:
        return default
    mapped = LANGUAGE_CODES.get(text.lower())
    if mapped is not None:
        return mapped
    if _SERVICE_CODE_PATTERN.match(text):
        return text
    logger.warning("language.unmapped value=%s fallback=%s", text, default)
    return default
