"""Services layer for Nebula application logic."""

from .recording_service import RecordingService

__all__ = [
    "RecordingService",
]
