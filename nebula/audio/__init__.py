"""Audio capture module."""

from .base import ChunkedAudioSource, ChunkCallback

__all__ = [
    'ChunkedAudioSource',
    'ChunkCallback',
]
