"""Caption record model."""

import time
import itertools
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Dict, Any, Optional

ERROR_LANGUAGE = "error"
SYSTEM_SPEAKER = "System"
DEFAULT_CONFIDENCE = 0.95

_id_counter = itertools.count()


def next_caption_id() -> int:
    """Time-derived caption id (milliseconds), made unique within the process."""
    return int(time.time() * 1000) * 1000 + next(_id_counter) % 1000


def display_time(when: Optional[datetime] = None) -> str:
    return (when or datetime.now()).strftime("%H:%M:%S")


@dataclass(frozen=True)
class CaptionRecord:
    """One recognized utterance, or a synthetic error entry.

    Error entries are the only records with confidence 0 and language "error";
    an empty transcript never becomes a record.
    """
    id: int
    text: str
    speaker: str
    timestamp: str
    language: str
    confidence: float

    def __post_init__(self):
        if not self.text or not self.text.strip():
            raise ValueError("Caption text must not be empty")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Caption confidence out of range: {self.confidence}")

    @property
    def is_error(self) -> bool:
        return self.language == ERROR_LANGUAGE and self.confidence == 0

    @classmethod
    def create(cls, text: str, speaker: str, language: str, confidence: float) -> "CaptionRecord":
        """Build a caption stamped with a fresh id and the current display time."""
        return cls(
            id=next_caption_id(),
            text=text.strip(),
            speaker=speaker,
            timestamp=display_time(),
            language=language,
            confidence=confidence,
        )

    @classmethod
    def error(cls, message: str) -> "CaptionRecord":
        """Build the synthetic caption used to surface capture/processing failures."""
        return cls(
            id=next_caption_id(),
            text=message,
            speaker=SYSTEM_SPEAKER,
            timestamp=display_time(),
            language=ERROR_LANGUAGE,
            confidence=0.0,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CaptionRecord":
        """Parse a caption received over the wire. Extra keys (e.g. roomId) are ignored.

        A non-error caption without a usable confidence gets DEFAULT_CONFIDENCE.
        """
        language = str(data.get("language", "en"))
        confidence = float(data.get("confidence") or 0.0)
        if language != ERROR_LANGUAGE and confidence == 0.0:
            confidence = DEFAULT_CONFIDENCE
        return cls(
            id=data.get("id") or next_caption_id(),
            text=str(data["text"]),
            speaker=str(data.get("speaker", "Participant")),
            timestamp=str(data.get("timestamp") or display_time()),
            language=language,
            confidence=confidence,
        )
