"""Caption buffering and publication."""

from .buffer import CaptionBuffer, DEFAULT_CAPACITY
from .publisher import CaptionPublisher, CAPTION_TOPIC

__all__ = [
    "CaptionBuffer",
    "CaptionPublisher",
    "CAPTION_TOPIC",
    "DEFAULT_CAPACITY",
]
