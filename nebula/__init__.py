"""Nebula - live room captions and rolling summaries for virtual conferences."""

__version__ = "0.1.0"
