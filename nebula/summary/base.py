"""Summarization service interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class SummaryMetadata:
    """Session facts handed to the summarizer alongside the caption text."""
    room_id: str
    participant_count: int
    language: str
    caption_count: int
    average_confidence: Optional[float] = None


class AbstractSummarizationService(ABC):
    """Turns accumulated caption text into a short digest."""

    @abstractmethod
    async def summarize(self, transcript: str, metadata: SummaryMetadata) -> str:
        """Produce a summary of ``transcript``.

        Returns:
            A non-empty summary string
        """
