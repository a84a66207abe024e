"""HTTP and WebSocket server."""

from .app import create_app, create_backend

__all__ = [
    "create_app",
    "create_backend",
]
