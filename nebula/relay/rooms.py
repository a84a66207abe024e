"""Server-side room membership and best-effort caption fan-out."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from ..models.events import RelayMessage

logger = logging.getLogger(__name__)

SendFunction = Callable[[Dict[str, Any]], Awaitable[None]]


@dataclass
class Peer:
    """A live connection with its own ordered outbound queue."""
    connection_id: str
    send: SendFunction
    queue: asyncio.Queue
    writer: Optional[asyncio.Task] = None
    delivered: int = 0
    dropped: int = 0
    failed: int = 0


@dataclass
class RoomStats:
    rooms: int
    connections: int
    members: Dict[str, int] = field(default_factory=dict)


class RoomBroadcastRelay:
    """Maps connections to rooms and relays caption events to the other members.

    Delivery is fire-and-forget: each peer drains its own FIFO queue, so a slow
    or broken peer never blocks the sender or the rest of the room, and one
    sender's events reach each peer in emission order.
    """

    def __init__(self, outbound_queue_size: int = 100):
        self.outbound_queue_size = outbound_queue_size
        self._peers: Dict[str, Peer] = {}
        self._membership: Dict[str, str] = {}
        self._rooms: Dict[str, Set[str]] = {}

    def connect(self, connection_id: str, send: SendFunction) -> None:
        """Register a live connection and start its outbound writer."""
        if connection_id in self._peers:
            self.disconnect(connection_id)
        peer = Peer(connection_id=connection_id, send=send,
                    queue=asyncio.Queue(maxsize=self.outbound_queue_size))
        peer.writer = asyncio.get_running_loop().create_task(self._drain(peer))
        self._peers[connection_id] = peer
        logger.info(f"Client connected: {connection_id}")

    def disconnect(self, connection_id: str) -> None:
        """Drop membership and stop delivery to a connection immediately."""
        self.leave(connection_id)
        peer = self._peers.pop(connection_id, None)
        if peer and peer.writer:
            peer.writer.cancel()
        logger.info(f"Client disconnected: {connection_id}")

    def join(self, connection_id: str, room_id: str) -> Optional[str]:
        """Put a connection in a room, replacing any previous membership.

        Returns:
            The room the connection was in before, if any
        """
        previous = self._membership.get(connection_id)
        if previous == room_id:
            return previous
        if previous is not None:
            self._remove_member(connection_id, previous)

        self._membership[connection_id] = room_id
        self._rooms.setdefault(room_id, set()).add(connection_id)
        logger.info(f"Client {connection_id} joined room: {room_id}")

        if previous is not None:
            self._announce_participants(previous)
        self._announce_participants(room_id)
        return previous

    def leave(self, connection_id: str) -> Optional[str]:
        room_id = self._membership.pop(connection_id, None)
        if room_id is not None:
            self._remove_member(connection_id, room_id)
            logger.info(f"Client {connection_id} left room: {room_id}")
            self._announce_participants(room_id)
        return room_id

    def room_of(self, connection_id: str) -> Optional[str]:
        return self._membership.get(connection_id)

    def members(self, room_id: str) -> Set[str]:
        return set(self._rooms.get(room_id, ()))

    def publish(self, connection_id: str, caption: Dict[str, Any]) -> List[str]:
        """Relay a caption to every other member of the sender's current room.

        Returns:
            Connection ids the event was queued for
        """
        room_id = self._membership.get(connection_id)
        if room_id is None:
            logger.warning(f"Caption from {connection_id} dropped: not in a room")
            return []

        logger.info(f"Caption received in {room_id}: {caption.get('text', '')!r}")
        message = RelayMessage(RelayMessage.CAPTION, caption).to_json()
        recipients = [cid for cid in self._rooms.get(room_id, ()) if cid != connection_id]
        return [cid for cid in recipients if self._enqueue(cid, message)]

    def get_stats(self) -> RoomStats:
        return RoomStats(
            rooms=len(self._rooms),
            connections=len(self._peers),
            members={room: len(ids) for room, ids in self._rooms.items()},
        )

    def _remove_member(self, connection_id: str, room_id: str) -> None:
        members = self._rooms.get(room_id)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self._rooms[room_id]

    def _announce_participants(self, room_id: str) -> None:
        members = self._rooms.get(room_id, set())
        message = RelayMessage(RelayMessage.PARTICIPANTS, {"roomId": room_id, "count": len(members)}).to_json()
        for cid in list(members):
            self._enqueue(cid, message)

    def _enqueue(self, connection_id: str, message: Dict[str, Any]) -> bool:
        peer = self._peers.get(connection_id)
        if peer is None:
            return False
        try:
            peer.queue.put_nowait(message)
        except asyncio.QueueFull:
            peer.dropped += 1
            logger.warning(f"Outbound queue full for {connection_id}, dropping {message['event']}")
            return False
        return True

    async def _drain(self, peer: Peer) -> None:
        while True:
            message = await peer.queue.get()
            try:
                await peer.send(message)
                peer.delivered += 1
            except asyncio.CancelledError:
                raise
            except Exception as e:
                peer.failed += 1
                logger.warning(f"Delivery to {peer.connection_id} failed: {e}")
            finally:
                peer.queue.task_done()
