"""Abstract chunked audio source."""

from abc import ABC, abstractmethod
from typing import Callable

from ..models.events import AudioEvent

ChunkCallback = Callable[[AudioEvent], None]


class ChunkedAudioSource(ABC):
    """Anything that can capture audio and push encoded chunks on a fixed cadence.

    Implementations call ``on_chunk`` on the event loop thread, never block
    waiting for downstream consumers, and deliver any trailing partial chunk
    before ``stop`` returns.
    """

    @abstractmethod
    async def start(self, on_chunk: ChunkCallback) -> None:
        """Acquire the input device and begin emitting chunks.

        Raises:
            DeviceUnavailable: If permission is denied or no input device exists
        """

    @abstractmethod
    async def stop(self) -> None:
        """Release the input device after flushing the final chunk."""

    @property
    @abstractmethod
    def is_active(self) -> bool:
        """True between a successful start and the matching stop."""
