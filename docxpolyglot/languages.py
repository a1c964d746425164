"""Supported target languages and lookup helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Language:
    code: str
    name: str


SUPPORTED_LANGUAGES: Tuple[Language, ...] = (
    Language("ru", "Russian"),
    Language("en", "English"),
    Language("es", "Spanish"),
    Language("fr", "French"),
    Language("de", "German"),
    Language("zh", "Chinese"),
    Language("ja", "Japanese"),
    Language("ko", "Korean"),
    Language("it", "Italian"),
    Language("pt", "Portuguese"),
)


def sanitise_language_for_filename(language: str) -> str:
    """Generate a filesystem-friendly suffix from a language descriptor."""

    collapsed = re.sub(r"\s+", "-", language.strip())
    ascii_only = collapsed.encode("ascii", "ignore").decode("ascii")
    cleaned = re.sub(r"[^A-Za-z0-9\-]+", "", ascii_only)
    return cleaned.lower() or "translated"


def resolve_language(value: str) -> Language:
    """Look a language up by code or name.

    Unknown values are kept as free-form languages so that any language the
    backend understands can still be requested.
    """

    needle = value.strip()
    if not needle:
        raise ValueError("A target language is required.")
    lowered = needle.lower()
    for language in SUPPORTED_LANGUAGES:
        if lowered in (language.code, language.name.lower()):
            return language
    return Language(sanitise_language_for_filename(needle), needle)
