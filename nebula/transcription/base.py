"""Abstract base classes for transcription backends."""

from abc import ABC, abstractmethod
from pathlib import Path
import logging

from ..models.transcription import TranscriptResult

logger = logging.getLogger(__name__)


class AbstractTranscriptionBackend(ABC):
    """Abstract base class for transcription backends."""

    service_name = "abstract"

    @abstractmethod
    def transcribe_file(self, audio_path: Path, language: str) -> TranscriptResult:
        """Transcribe a persisted audio payload.

        Args:
            audio_path: Scratch file holding the payload; deleted by the caller afterwards
            language: Language hint (e.g. 'en')

        Returns:
            TranscriptResult with text, detected language and confidence
        """

    def initialize(self) -> bool:
        """Initialize backend resources and verify configuration."""
        return True

    def cleanup(self) -> None:
        """Clean up backend resources."""
