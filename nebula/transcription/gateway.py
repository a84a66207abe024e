"""Stateless transcription boundary: one audio payload in, one transcript out."""

import os
import base64
import binascii
import asyncio
import logging
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Tuple, Dict, Any, Iterator

from .base import AbstractTranscriptionBackend
from ..errors import MissingAudio, TranscriptionFailed
from ..models.transcription import TranscriptResult

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"


def decode_request(body: Any, default_language: str = DEFAULT_LANGUAGE) -> Tuple[bytes, str]:
    """Extract the audio payload and language hint from a transcription request body.

    Raises:
        MissingAudio: If the body has no audio, or audio that is not valid base64
    """
    if not isinstance(body, dict) or not body.get("audio"):
        raise MissingAudio("No audio data provided")
    try:
        audio = base64.b64decode(body["audio"], validate=True)
    except (binascii.Error, TypeError, ValueError) as e:
        raise MissingAudio("No audio data provided") from e
    if not audio:
        raise MissingAudio("No audio data provided")
    return audio, body.get("language") or default_language


def encode_request(audio: bytes, language: str) -> Dict[str, Any]:
    return {"audio": base64.b64encode(audio).decode("ascii"), "language": language}


class TranscriptionGateway:
    """Persists a payload to scratch space, runs the backend, and always cleans up."""

    def __init__(self,
                 backend: AbstractTranscriptionBackend,
                 temp_directory: Optional[str] = None,
                 default_language: str = DEFAULT_LANGUAGE):
        """Initialize transcription gateway.

        Args:
            backend: Recognizer that reads the scratch file
            temp_directory: Directory for scratch files, created on demand
            default_language: Language used when a request carries no hint
        """
        self.backend = backend
        self.temp_directory = Path(temp_directory or os.path.join(tempfile.gettempdir(), "nebula"))
        self.default_language = default_language
        logger.info(f"TranscriptionGateway ready (backend={backend.service_name}, temp={self.temp_directory})")

    @contextmanager
    def _scratch_file(self, audio: bytes) -> Iterator[Path]:
        """Write the payload to a uniquely named temp file that is removed on exit."""
        self.temp_directory.mkdir(parents=True, exist_ok=True)
        fd, name = tempfile.mkstemp(prefix="audio_", suffix=".wav", dir=self.temp_directory)
        path = Path(name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(audio)
            yield path
        finally:
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.error(f"Cleanup error: {e}")

    def transcribe_sync(self, audio: bytes, language: Optional[str] = None) -> Optional[TranscriptResult]:
        """Blocking transcription. Returns None when no speech was recognized.

        Raises:
            MissingAudio: If the payload is empty
            TranscriptionFailed: On any backend or storage failure
        """
        if not audio:
            raise MissingAudio("No audio data provided")
        language = language or self.default_language

        try:
            with self._scratch_file(audio) as path:
                result = self.backend.transcribe_file(path, language)
            text = (result.text or "").strip()
            if not text:
                logger.info(f"No speech recognized in {len(audio)} byte payload")
                return None
            result.text = text
            result.language = result.language or language
            result.confidence = float(result.confidence)
        except Exception as e:
            logger.error(f"Transcription error: {e}")
            raise TranscriptionFailed("Transcription failed") from e

        logger.info(f"Transcribed {len(audio)} bytes via {result.service}: '{text}' ({result.confidence:.0%})")
        return result

    async def transcribe(self, audio: bytes, language: Optional[str] = None) -> Optional[TranscriptResult]:
        """Run the blocking transcription off the event loop."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.transcribe_sync, audio, language)
