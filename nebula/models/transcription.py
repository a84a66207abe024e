"""Transcription-related data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any


@dataclass
class TranscriptResult:
    """Result of a transcription operation."""
    text: str
    language: str
    confidence: float
    service: str = "unknown"
    processing_time: float = 0.0
    timestamp: datetime = field(default_factory=datetime.now)

    def to_response(self) -> Dict[str, Any]:
        """Wire representation returned by the transcription endpoint."""
        return {
            "text": self.text,
            "language": self.language,
            "confidence": self.confidence,
        }
