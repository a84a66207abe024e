"""Pytest configuration and fixtures for Nebula tests."""

import time
import logging
import tempfile

import numpy as np
import pytest
from pubsub import pub

from nebula.audio.base import ChunkedAudioSource
from nebula.captions import CaptionBuffer
from nebula.errors import DeviceUnavailable
from nebula.models.caption import CaptionRecord
from nebula.models.events import AudioEvent
from nebula.models.session import Session


# Configure logging for tests
logging.basicConfig(level=logging.INFO)


class FakeAudioSource(ChunkedAudioSource):
    """Chunked audio source driven by the test instead of a microphone."""

    def __init__(self, fail: bool = False, trailing_chunk: bytes = b""):
        self.fail = fail
        self.trailing_chunk = trailing_chunk
        self.on_chunk = None
        self.active = False
        self.starts = 0
        self.stops = 0
        self.sequence = 0

    @property
    def is_active(self) -> bool:
        return self.active

    async def start(self, on_chunk):
        if self.fail:
            raise DeviceUnavailable("Permission denied")
        self.on_chunk = on_chunk
        self.active = True
        self.starts += 1

    def emit(self, audio_data: bytes) -> None:
        self.sequence += 1
        self.on_chunk(AudioEvent(
            chunk_id=f"chunk_{self.sequence}",
            audio_data=audio_data,
            timestamp=time.time(),
            sequence_number=self.sequence,
        ))

    async def stop(self):
        if self.trailing_chunk:
            self.emit(self.trailing_chunk)
        self.active = False
        self.stops += 1


@pytest.fixture(autouse=True)
def reset_pubsub():
    """Drop pub/sub listeners left behind by a test."""
    yield
    pub.unsubAll()


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def sample_audio_chunk():
    """One second of a 440 Hz tone as 16-bit PCM (32 000 bytes)."""
    sample_rate = 16000
    t = np.linspace(0, 1.0, sample_rate, False)
    wave_data = np.sin(2 * np.pi * 440 * t)
    return (wave_data * 32767).astype(np.int16).tobytes()


@pytest.fixture
def fake_source():
    return FakeAudioSource()


@pytest.fixture
def buffer():
    return CaptionBuffer()


@pytest.fixture
def session(buffer):
    return Session(room_id="room-test", buffer=buffer, language="en", speaker="You")


@pytest.fixture
def make_caption():
    """Factory for caption records with distinguishable text."""
    def _make(text: str = "hello", speaker: str = "Alice", confidence: float = 0.9) -> CaptionRecord:
        return CaptionRecord.create(text=text, speaker=speaker, language="en", confidence=confidence)
    return _make


@pytest.fixture
def make_source():
    """Factory for fake audio sources with custom behaviour."""
    return FakeAudioSource
