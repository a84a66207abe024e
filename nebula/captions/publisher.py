"""Caption publisher module for pub/sub event publishing."""

import logging
from pubsub import pub

from ..models.caption import CaptionRecord

logger = logging.getLogger(__name__)

CAPTION_TOPIC = "captions_appended"


class CaptionPublisher:
    """Publishes appended captions using pubsub.pub."""

    def __init__(self, topic: str = CAPTION_TOPIC):
        """Initialize caption publisher.

        Args:
            topic: Pub/sub topic name for caption events
        """
        self.topic = topic
        logger.info(f"CaptionPublisher initialized with topic: {topic}")

    def publish_caption(self, caption: CaptionRecord) -> None:
        pub.sendMessage(self.topic, caption=caption)
