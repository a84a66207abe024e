"""Transcription module for Nebula."""

from .base import AbstractTranscriptionBackend
from .placeholder_backend import PlaceholderBackend, LONG_AUDIO_THRESHOLD_BYTES
from .gateway import TranscriptionGateway, decode_request, encode_request
from .client import TranscriptionClient

__all__ = [
    "AbstractTranscriptionBackend",
    "PlaceholderBackend",
    "LONG_AUDIO_THRESHOLD_BYTES",
    "TranscriptionGateway",
    "TranscriptionClient",
    "decode_request",
    "encode_request",
]
