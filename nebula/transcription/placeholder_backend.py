"""Size-classifying stand-in for a real speech recognizer."""

import time
import logging
from pathlib import Path

from .base import AbstractTranscriptionBackend
from ..models.transcription import TranscriptResult

logger = logging.getLogger(__name__)

LONG_AUDIO_THRESHOLD_BYTES = 50000
LONG_AUDIO_TEXT = "Long audio recording processed"
SHORT_AUDIO_TEXT = "Short audio recording processed"


class PlaceholderBackend(AbstractTranscriptionBackend):
    """Classifies payloads as long or short audio by byte size."""

    service_name = "placeholder"

    def __init__(self, long_audio_threshold_bytes: int = LONG_AUDIO_THRESHOLD_BYTES, confidence: float = 0.8):
        self.long_audio_threshold_bytes = long_audio_threshold_bytes
        self.confidence = confidence

    def transcribe_file(self, audio_path: Path, language: str) -> TranscriptResult:
        start_time = time.time()
        audio_size = audio_path.stat().st_size
        text = LONG_AUDIO_TEXT if audio_size > self.long_audio_threshold_bytes else SHORT_AUDIO_TEXT
        logger.debug(f"Classified {audio_size} byte payload as '{text}'")
        return TranscriptResult(
            text=text,
            language=language,
            confidence=self.confidence,
            service=self.service_name,
            processing_time=time.time() - start_time,
        )
