"""flashsim narrative - step explanations for the reader."""

from typing import Optional

from flashsim.narrative.base import (
    FALLBACK_TEXT,
    FAILURE_TEXT,
    AuthError,
    NarrativeError,
    Narrator,
    NetworkError,
    StaticNarrator,
)
from flashsim.narrative.config import NarrativeSettings


def build_narrator(settings: Optional[NarrativeSettings] = None) -> Narrator:
    """LLMNarrator when an API key is configured, StaticNarrator otherwise."""
    settings = settings or NarrativeSettings()
    if not settings.is_configured:
        return StaticNarrator()

    from flashsim.narrative.llm import LLMNarrator
    return LLMNarrator(settings)


__all__ = [
    "FALLBACK_TEXT",
    "FAILURE_TEXT",
    "AuthError",
    "NarrativeError",
    "Narrator",
    "NetworkError",
    "StaticNarrator",
    "NarrativeSettings",
    "build_narrator",
]
