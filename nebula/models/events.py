"""Event models exchanged between the audio source, relay and session."""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any

from .caption import CaptionRecord


@dataclass
class AudioEvent:
    """Encoded audio chunk emitted by a chunked audio source."""
    chunk_id: str
    audio_data: bytes
    timestamp: float  # Unix timestamp when chunk was captured
    sequence_number: int
    sample_rate: int = 16000
    channels: int = 1
    chunk_duration_ms: Optional[int] = None
    peak_level: float = 0.0

    def __post_init__(self):
        """Calculate chunk duration if not provided."""
        if self.chunk_duration_ms is None and self.audio_data:
            # Calculate based on 16-bit audio (2 bytes per sample)
            bytes_per_second = self.sample_rate * self.channels * 2
            self.chunk_duration_ms = int(len(self.audio_data) / bytes_per_second * 1000)


@dataclass
class CaptionEvent:
    """Caption travelling through the room relay, tagged with its room."""
    room_id: str
    caption: CaptionRecord

    def to_wire(self) -> Dict[str, Any]:
        data = self.caption.to_dict()
        data["roomId"] = self.room_id
        return data

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "CaptionEvent":
        return cls(room_id=str(data.get("roomId", "")), caption=CaptionRecord.from_dict(data))


@dataclass
class RelayMessage:
    """JSON envelope used on the realtime channel: {"event": ..., "data": ...}."""
    event: str
    data: Any = field(default=None)

    JOIN_ROOM = "join-room"
    CAPTION = "caption"
    PARTICIPANTS = "participants"

    def to_json(self) -> Dict[str, Any]:
        return {"event": self.event, "data": self.data}

    @classmethod
    def from_json(cls, payload: Dict[str, Any]) -> "RelayMessage":
        if not isinstance(payload, dict) or "event" not in payload:
            raise ValueError(f"Malformed relay message: {payload!r}")
        return cls(event=str(payload["event"]), data=payload.get("data"))
