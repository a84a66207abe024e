"""Google Speech-to-Text transcription backend."""

import time
import logging
from pathlib import Path
from typing import Optional

from .base import AbstractTranscriptionBackend
from ..models.transcription import TranscriptResult

from google.cloud import speech
from google.api_core import exceptions as gax_exceptions
from google.oauth2 import service_account

logger = logging.getLogger(__name__)

# Bare language hints mapped to the regional codes the API expects
LANGUAGE_CODES = {
    "en": "en-US",
    "es": "es-ES",
    "de": "de-DE",
    "ja": "ja-JP",
    "hi": "hi-IN",
    "ar": "ar-SA",
}


class GoogleSpeechBackend(AbstractTranscriptionBackend):
    """Google Speech-to-Text API backend for 16-bit PCM payloads."""

    service_name = "Google Speech-to-Text"

    def __init__(self,
                 credentials_path: Optional[str] = None,
                 sample_rate: int = 16000,
                 enable_automatic_punctuation: bool = True,
                 timeout: float = 10.0):
        """Initialize Google Speech backend.

        Args:
            credentials_path: Path to Google Cloud service account JSON file
            sample_rate: Sample rate of the submitted PCM audio
            enable_automatic_punctuation: Enable automatic punctuation
            timeout: Per-request deadline in seconds
        """
        if not credentials_path:
            raise ValueError("Google credentials path is required - cannot initialize without credentials")
        self.credentials_path = credentials_path
        self.sample_rate = sample_rate
        self.enable_automatic_punctuation = enable_automatic_punctuation
        self.timeout = timeout
        self.client = None

    def initialize(self) -> bool:
        """Initialize Google Speech client and verify credentials."""
        logger.info(f"Loading Google credentials from: {self.credentials_path}")
        credentials = service_account.Credentials.from_service_account_file(self.credentials_path)
        self.client = speech.SpeechClient(credentials=credentials)
        logger.info(f"Using Google Cloud project: {credentials.project_id}")
        return True

    def _recognition_config(self, language: str) -> speech.RecognitionConfig:
        return speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=self.sample_rate,
            language_code=LANGUAGE_CODES.get(language, language),
            enable_automatic_punctuation=self.enable_automatic_punctuation,
        )

    def transcribe_file(self, audio_path: Path, language: str) -> TranscriptResult:
        if self.client is None:
            raise RuntimeError("Google Speech backend used before initialize()")

        start_time = time.time()
        audio = speech.RecognitionAudio(content=audio_path.read_bytes())
        try:
            response = self.client.recognize(
                config=self._recognition_config(language), audio=audio, timeout=self.timeout
            )
        except gax_exceptions.DeadlineExceeded as e:
            raise RuntimeError(f"Google Speech recognize timeout: {e}") from e
        except gax_exceptions.GoogleAPICallError as e:
            raise RuntimeError(f"Google Speech API error: {e}") from e
        processing_time = time.time() - start_time

        if not response.results:
            logger.debug("No speech detected")
            return TranscriptResult(text="", language=language, confidence=0.0,
                                    service=self.service_name, processing_time=processing_time)

        alternatives = [result.alternatives[0] for result in response.results if result.alternatives]
        text = " ".join(alt.transcript.strip() for alt in alternatives).strip()
        confidence = sum(alt.confidence for alt in alternatives) / len(alternatives) if alternatives else 0.0
        detected = getattr(response.results[0], "language_code", "") or language
        logger.debug(f"Transcript='{text}' (conf={confidence:.2f}, {processing_time:.3f}s)")
        return TranscriptResult(
            text=text,
            language=detected,
            confidence=confidence,
            service=self.service_name,
            processing_time=processing_time,
        )
