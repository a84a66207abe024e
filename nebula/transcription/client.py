"""HTTP client for a remote transcription gateway."""

import asyncio
import logging
from typing import Optional

import aiohttp

from .gateway import encode_request
from ..errors import MissingAudio, TranscriptionFailed
from ..models.caption import DEFAULT_CONFIDENCE
from ..models.transcription import TranscriptResult

logger = logging.getLogger(__name__)


class TranscriptionClient:
    """Posts one payload per call to ``<base_url>/transcribe``."""

    def __init__(self, base_url: str, timeout: float = 30.0):
        """Initialize transcription client.

        Args:
            base_url: Server root, e.g. http://localhost:3000
            timeout: Total request timeout in seconds
        """
        self.url = base_url.rstrip("/") + "/transcribe"
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        logger.info(f"TranscriptionClient initialized with endpoint: {self.url}")

    async def transcribe(self, audio: bytes, language: str) -> Optional[TranscriptResult]:
        """Send a payload for transcription. Returns None when no speech was recognized.

        Raises:
            MissingAudio: The server rejected the request as carrying no audio
            TranscriptionFailed: Network failure or any other non-success response
        """
        if not audio:
            raise MissingAudio("No audio data provided")

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.url, json=encode_request(audio, language)) as response:
                    if response.status == 400:
                        raise MissingAudio(await response.text())
                    if response.status == 204:
                        return None
                    if response.status != 200:
                        error_text = await response.text()
                        raise TranscriptionFailed(f"Transcription API error: {response.status} - {error_text}")
                    body = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise TranscriptionFailed(f"Transcription request failed: {e!r}") from e

        if not isinstance(body, dict):
            raise TranscriptionFailed(f"Unexpected transcription response: {body!r}")

        try:
            confidence = float(body.get("confidence") or DEFAULT_CONFIDENCE)
        except (TypeError, ValueError) as e:
            raise TranscriptionFailed(f"Unexpected confidence in response: {body.get('confidence')!r}") from e

        return TranscriptResult(
            text=str(body.get("text") or ""),
            language=str(body.get("language") or language),
            confidence=confidence,
            service="remote",
        )
