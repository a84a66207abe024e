"""Room broadcast relay (server) and connection session (client)."""

from .rooms import RoomBroadcastRelay
from .connection import ConnectionSession

__all__ = [
    "RoomBroadcastRelay",
    "ConnectionSession",
]
