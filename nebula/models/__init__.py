"""Data models for the Nebula application."""

from .caption import CaptionRecord, ERROR_LANGUAGE, SYSTEM_SPEAKER, DEFAULT_CONFIDENCE
from .transcription import TranscriptResult
from .events import AudioEvent, CaptionEvent, RelayMessage
from .session import Session, RecordingState, ConnectionState

__all__ = [
    "CaptionRecord",
    "ERROR_LANGUAGE",
    "SYSTEM_SPEAKER",
    "DEFAULT_CONFIDENCE",
    "TranscriptResult",
    "AudioEvent",
    "CaptionEvent",
    "RelayMessage",
    "Session",
    "RecordingState",
    "ConnectionState",
]
