"""Microphone capture that emits fixed-interval chunks from a background thread."""

import asyncio
import time
import logging
from threading import Thread, Event
from typing import Optional

import numpy as np
import pyaudio

from .base import ChunkedAudioSource, ChunkCallback
from ..errors import DeviceUnavailable
from ..models.events import AudioEvent

logger = logging.getLogger(__name__)


class PyAudioSource(ChunkedAudioSource):
    """PyAudio-backed chunked audio source producing 16-bit PCM chunks."""

    def __init__(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        frames_per_buffer: int = 1024,
        chunk_interval_seconds: float = 1.0,
        format: int = pyaudio.paInt16,
    ):
        """Initialize audio source.

        Args:
            sample_rate: Audio sample rate
            channels: Number of audio channels (1 for mono)
            frames_per_buffer: Frames read from the device per call
            chunk_interval_seconds: Cadence at which accumulated audio is emitted
            format: Audio format (16-bit signed int)
        """
        self.sample_rate = sample_rate
        self.channels = channels
        self.frames_per_buffer = frames_per_buffer
        self.chunk_interval_seconds = chunk_interval_seconds
        self.format = format

        self.recording_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.total_chunks = 0

        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.stream = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._on_chunk: Optional[ChunkCallback] = None

    @property
    def is_active(self) -> bool:
        return self.stream is not None

    async def start(self, on_chunk: ChunkCallback) -> None:
        if self.is_active:
            logger.warning("Audio source already active")
            return

        self._loop = asyncio.get_running_loop()
        self._on_chunk = on_chunk
        self.stop_event.clear()
        self.total_chunks = 0

        try:
            self.pyaudio_instance = pyaudio.PyAudio()
            self.stream = self.pyaudio_instance.open(
                format=self.format,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                frames_per_buffer=self.frames_per_buffer,
            )
        except (OSError, IOError) as e:
            self._release()
            raise DeviceUnavailable(f"Could not open audio input: {e}") from e

        logger.info(f"Audio stream opened: {self.sample_rate}Hz, "
                    f"chunk every {self.chunk_interval_seconds}s")

        self.recording_thread = Thread(target=self._record_continuously, daemon=True)
        self.recording_thread.name = "AudioCaptureThread"
        self.recording_thread.start()

    async def stop(self) -> None:
        if not self.is_active:
            logger.warning("No recording in progress")
            return

        logger.info("Stopping audio capture")
        self.stop_event.set()
        if self.recording_thread and self.recording_thread.is_alive():
            await asyncio.get_running_loop().run_in_executor(None, self.recording_thread.join, 2.0)
            if self.recording_thread.is_alive():
                logger.warning("Recording thread did not stop cleanly")
        self._release()
        logger.info(f"Audio capture stopped. Total chunks: {self.total_chunks}")

    def _release(self) -> None:
        if self.stream is not None:
            try:
                self.stream.stop_stream()
                self.stream.close()
            except OSError as e:
                logger.warning(f"Error closing audio stream: {e}")
            self.stream = None
        if self.pyaudio_instance is not None:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None

    def _record_continuously(self) -> None:
        """Internal method: read frames and emit one chunk per interval."""
        pending = bytearray()
        chunk_started = time.time()
        while not self.stop_event.is_set():
            pending.extend(self.stream.read(self.frames_per_buffer, exception_on_overflow=False))
            if time.time() - chunk_started >= self.chunk_interval_seconds:
                self._emit(bytes(pending))
                pending.clear()
                chunk_started = time.time()
        if pending:
            self._emit(bytes(pending))

    def _emit(self, audio_data: bytes) -> None:
        self.total_chunks += 1
        samples = np.frombuffer(audio_data, dtype=np.int16)
        peak = float(np.abs(samples.astype(np.int32)).max()) / 32768.0 if samples.size else 0.0
        event = AudioEvent(
            chunk_id=f"chunk_{self.total_chunks}",
            audio_data=audio_data,
            timestamp=time.time(),
            sequence_number=self.total_chunks,
            sample_rate=self.sample_rate,
            channels=self.channels,
            peak_level=peak,
        )
        self._loop.call_soon_threadsafe(self._on_chunk, event)
