"""Time-gated rolling summary generation."""

import asyncio
import logging
from typing import Optional

from pubsub import pub

from .base import AbstractSummarizationService, SummaryMetadata
from ..models.caption import CaptionRecord
from ..models.session import Session

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 20.0
DEFAULT_MIN_CAPTIONS = 3


class SummaryScheduler:
    """Refreshes the session summary on a fixed tick while the gate holds.

    The gate is open while the session is recording and its buffer holds more
    than ``min_captions`` entries. Closing the gate cancels the timer at once;
    reopening it starts a fresh one.
    """

    def __init__(self,
                 session: Session,
                 service: AbstractSummarizationService,
                 interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
                 min_captions: int = DEFAULT_MIN_CAPTIONS,
                 caption_topic: Optional[str] = None):
        self.session = session
        self.service = service
        self.interval_seconds = interval_seconds
        self.min_captions = min_captions
        self.caption_topic = caption_topic

        self.ticks = 0
        self._task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def gate_open(self) -> bool:
        return self.session.is_recording and len(self.session.buffer) > self.min_captions

    def start(self) -> None:
        """Bind to the running loop and follow caption appends."""
        self._loop = asyncio.get_running_loop()
        if self.caption_topic:
            pub.subscribe(self._on_caption, self.caption_topic)
        self.evaluate()

    def _on_caption(self, caption: CaptionRecord) -> None:
        self.evaluate()

    def evaluate(self) -> None:
        """Start or tear down the timer to match the current gate condition."""
        if self._loop is None:
            return
        if self.gate_open():
            if not self.is_running:
                logger.debug("Summary gate open, starting timer")
                self._task = self._loop.create_task(self._run())
        elif self.is_running:
            logger.debug("Summary gate closed, cancelling timer")
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            if not self.gate_open():
                return
            await self.tick()

    async def tick(self) -> None:
        """Ask the summarization service for a fresh digest and overwrite the slot."""
        captions = [c for c in self.session.buffer.all() if not c.is_error]
        metadata = SummaryMetadata(
            room_id=self.session.room_id,
            participant_count=self.session.participant_count,
            language=self.session.language,
            caption_count=len(captions),
            average_confidence=(sum(c.confidence for c in captions) / len(captions)) if captions else None,
        )
        transcript = self.session.buffer.text()
        try:
            summary = await self.service.summarize(transcript, metadata)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Summarization failed: {e}")
            return

        if summary:
            self.ticks += 1
            self.session.set_summary(summary)
            logger.info(f"Summary refreshed ({metadata.caption_count} captions)")

    def shutdown(self) -> None:
        if self.caption_topic:
            try:
                pub.unsubscribe(self._on_caption, self.caption_topic)
            except Exception as e:
                logger.warning(f"Error during unsubscribe: {e}")
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self._loop = None
