"""Capture client that turns one recording session into one caption."""

import logging
from typing import Optional, Protocol

from ..audio.base import ChunkedAudioSource
from ..errors import DeviceUnavailable, MissingAudio, TranscriptionFailed
from ..models.caption import CaptionRecord, DEFAULT_CONFIDENCE
from ..models.events import AudioEvent
from ..models.session import Session, RecordingState
from ..models.transcription import TranscriptResult
from ..relay.connection import ConnectionSession
from ..summary.scheduler import SummaryScheduler

logger = logging.getLogger(__name__)

DEVICE_ERROR_TEXT = "Error: Failed to start recording. Please check microphone permissions."
PROCESSING_ERROR_TEXT = "Error: Failed to process audio. Please try again."


class Transcriber(Protocol):
    async def transcribe(self, audio: bytes, language: str) -> Optional[TranscriptResult]:
        ...


class RecordingService:
    """Drives the idle -> recording -> stopping -> idle lifecycle.

    Chunks are buffered on the shared session while recording; stopping hands
    the concatenated payload to the transcriber exactly once. Capture and
    transcription failures become error captions instead of exceptions.
    """

    def __init__(self,
                 session: Session,
                 source: ChunkedAudioSource,
                 transcriber: Transcriber,
                 connection: Optional[ConnectionSession] = None,
                 scheduler: Optional[SummaryScheduler] = None):
        """Initialize recording service.

        Args:
            session: Shared session state
            source: Chunked audio source (microphone or test double)
            transcriber: Gateway or HTTP client used once per session
            connection: Relay connection used to broadcast captions, if any
            scheduler: Summary scheduler re-evaluated on every state change
        """
        self.session = session
        self.source = source
        self.transcriber = transcriber
        self.connection = connection
        self.scheduler = scheduler

        self.chunks_received = 0
        self.transcriptions_issued = 0

    @property
    def state(self) -> RecordingState:
        return self.session.recording_state

    def _set_state(self, state: RecordingState) -> None:
        self.session.set_recording_state(state)
        if self.scheduler:
            self.scheduler.evaluate()

    async def start_recording(self) -> bool:
        """Acquire the audio device and begin a fresh session.

        Returns:
            True if recording started, False otherwise
        """
        if self.state is not RecordingState.IDLE:
            logger.warning(f"Cannot start recording while {self.state.value}")
            return False

        try:
            await self.source.start(self._on_chunk)
        except DeviceUnavailable as e:
            logger.error(f"Error starting recording: {e}")
            self.session.buffer.append(CaptionRecord.error(DEVICE_ERROR_TEXT))
            return False

        self.session.reset()
        self.chunks_received = 0
        self._set_state(RecordingState.RECORDING)
        logger.info(f"Started recording in room {self.session.room_id}")
        return True

    def _on_chunk(self, event: AudioEvent) -> None:
        if self.state is RecordingState.IDLE:
            logger.debug(f"Ignoring {event.chunk_id} received while idle")
            return
        if self.session.add_chunk(event.audio_data):
            self.chunks_received += 1

    async def stop_recording(self) -> Optional[CaptionRecord]:
        """Release the device and transcribe everything captured this session.

        A call made while not recording (including while a previous stop is
        still transcribing) is ignored.

        Returns:
            The caption appended for this session, or None if nothing was appended
        """
        if self.state is not RecordingState.RECORDING:
            logger.debug(f"Ignoring stop while {self.state.value}")
            return None

        self._set_state(RecordingState.STOPPING)
        try:
            await self.source.stop()
            payload = self.session.take_payload()
            logger.info(f"Recording stopped: {self.chunks_received} chunks, {len(payload)} bytes")
            if not payload:
                return None
            return await self._process_audio(payload)
        finally:
            self._set_state(RecordingState.IDLE)

    async def _process_audio(self, payload: bytes) -> Optional[CaptionRecord]:
        self.transcriptions_issued += 1
        try:
            result = await self.transcriber.transcribe(payload, self.session.language)
        except (TranscriptionFailed, MissingAudio) as e:
            logger.error(f"Error processing audio: {e}")
            caption = CaptionRecord.error(PROCESSING_ERROR_TEXT)
            self.session.buffer.append(caption)
            return caption

        if result is None or not result.text or not result.text.strip():
            logger.info("Empty transcript, no caption recorded")
            return None

        caption = CaptionRecord.create(
            text=result.text,
            speaker=self.session.speaker,
            language=result.language or self.session.language,
            confidence=result.confidence if result.confidence and 0 < result.confidence <= 1 else DEFAULT_CONFIDENCE,
        )
        self.session.buffer.append(caption)
        if self.connection:
            await self.connection.publish(caption)
        return caption
