"""Bounded caption buffer: a sliding window over recent conversation."""

import logging
import threading
from collections import deque
from typing import Optional, Tuple, Dict, Any

from ..models.caption import CaptionRecord
from .publisher import CaptionPublisher

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 10


class CaptionBuffer:
    """Insertion-ordered caption window that evicts the oldest entry when full."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY, publisher: Optional[CaptionPublisher] = None):
        """Initialize caption buffer.

        Args:
            capacity: Maximum number of captions retained
            publisher: Optional publisher notified after every append
        """
        if capacity < 1:
            raise ValueError("Caption buffer capacity must be positive")
        self.capacity = capacity
        self.publisher = publisher

        self._captions = deque(maxlen=capacity)
        self._lock = threading.Lock()
        self.total_appended = 0
        self.evicted = 0

    def append(self, record: CaptionRecord) -> None:
        """Append a caption, evicting the oldest one beyond capacity."""
        with self._lock:
            if len(self._captions) == self.capacity:
                self.evicted += 1
            self._captions.append(record)
            self.total_appended += 1
            size = len(self._captions)

        logger.debug(f"Caption appended ({record.speaker}): buffer now has {size} entries")
        if self.publisher:
            self.publisher.publish_caption(record)

    def all(self) -> Tuple[CaptionRecord, ...]:
        """Snapshot of the current captions, oldest first."""
        with self._lock:
            return tuple(self._captions)

    def text(self) -> str:
        """Accumulated text of all non-error captions, for summarization."""
        return " ".join(c.text for c in self.all() if not c.is_error)

    def clear(self) -> None:
        with self._lock:
            self._captions.clear()
        logger.debug("Caption buffer cleared")

    def get_buffer_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "size": len(self._captions),
                "capacity": self.capacity,
                "total_appended": self.total_appended,
                "evicted": self.evicted,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._captions)
