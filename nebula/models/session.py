"""Session-related data models."""

import logging
import threading
from enum import Enum
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..captions.buffer import CaptionBuffer

logger = logging.getLogger(__name__)


class RecordingState(Enum):
    IDLE = "idle"
    RECORDING = "recording"
    STOPPING = "stopping"


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class Session:
    """State shared by the capture client, connection session and summary scheduler.

    Components hold a reference to the same Session and mutate it only through
    these methods.
    """

    def __init__(self,
                 room_id: str,
                 buffer: "CaptionBuffer",
                 language: str = "en",
                 speaker: str = "You"):
        self.room_id = room_id
        self.buffer = buffer
        self.language = language
        self.speaker = speaker

        self.recording_state = RecordingState.IDLE
        self.connection_state = ConnectionState.DISCONNECTED
        self.standalone = True
        self.participant_count = 1
        self.summary = ""

        self._chunks: List[bytes] = []
        self._lock = threading.Lock()

    @property
    def is_recording(self) -> bool:
        return self.recording_state is RecordingState.RECORDING

    @property
    def is_connected(self) -> bool:
        return self.connection_state is ConnectionState.CONNECTED

    def reset(self) -> None:
        """Start a fresh recording lifecycle: drop chunks, captions and summary."""
        with self._lock:
            self._chunks = []
        self.buffer.clear()
        self.summary = ""
        logger.debug(f"Session reset for room {self.room_id}")

    def add_chunk(self, chunk: bytes) -> bool:
        """Buffer a non-empty audio chunk. Returns False if it was ignored."""
        if not chunk:
            return False
        with self._lock:
            self._chunks.append(chunk)
        return True

    @property
    def chunk_count(self) -> int:
        with self._lock:
            return len(self._chunks)

    def take_payload(self) -> bytes:
        """Concatenate and drain all buffered chunks."""
        with self._lock:
            chunks, self._chunks = self._chunks, []
        return b"".join(chunks)

    def set_recording_state(self, state: RecordingState) -> None:
        logger.debug(f"Recording state: {self.recording_state.value} -> {state.value}")
        self.recording_state = state

    def set_connection_state(self, state: ConnectionState) -> None:
        logger.debug(f"Connection state: {self.connection_state.value} -> {state.value}")
        self.connection_state = state

    def enter_standalone(self) -> None:
        self.connection_state = ConnectionState.DISCONNECTED
        self.standalone = True
        self.participant_count = 1

    def set_participant_count(self, count: Optional[int]) -> None:
        if count is not None and count >= 1:
            self.participant_count = count

    def set_summary(self, summary: str) -> None:
        self.summary = summary
