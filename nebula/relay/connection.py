"""Client-side realtime channel to the room relay, with standalone fallback."""

import asyncio
import json
import logging
from typing import Optional

import aiohttp

from ..errors import RelayUnreachable
from ..models.caption import CaptionRecord
from ..models.events import CaptionEvent, RelayMessage
from ..models.session import Session, ConnectionState

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 3.0


class ConnectionSession:
    """Connects to the relay, joins the session's room and mirrors peer captions.

    If the relay is disabled, unreachable, or not connected within the grace
    period, the session stays disconnected and the application runs standalone.
    """

    def __init__(self,
                 session: Session,
                 url: Optional[str],
                 connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
                 enabled: bool = True):
        """Initialize connection session.

        Args:
            session: Shared session whose buffer receives peer captions
            url: Relay server root (http/https); None disables the relay
            connect_timeout: Grace period for reaching the connected state
            enabled: False forces standalone mode
        """
        self.session = session
        self.url = url
        self.connect_timeout = connect_timeout
        self.enabled = enabled and bool(url)

        self._http: Optional[aiohttp.ClientSession] = None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._receiver: Optional[asyncio.Task] = None

    @property
    def ws_url(self) -> str:
        return self.url.rstrip("/") + "/ws"

    @property
    def state(self) -> ConnectionState:
        return self.session.connection_state

    async def connect(self) -> bool:
        """Attempt to reach the relay within the grace period.

        Returns:
            True if connected, False if running standalone
        """
        if not self.enabled:
            logger.info("Relay disabled, running in standalone mode")
            self.session.enter_standalone()
            return False

        self.session.set_connection_state(ConnectionState.CONNECTING)
        try:
            await asyncio.wait_for(self._open(), timeout=self.connect_timeout)
        except asyncio.TimeoutError:
            logger.info("Relay connection timeout, running in standalone mode")
            await self._close_transport()
            self.session.enter_standalone()
            return False
        except RelayUnreachable as e:
            logger.info(f"Relay not available ({e}), running in standalone mode")
            await self._close_transport()
            self.session.enter_standalone()
            return False

        self.session.set_connection_state(ConnectionState.CONNECTED)
        self.session.standalone = False
        await self._send(RelayMessage(RelayMessage.JOIN_ROOM, self.session.room_id))
        self._receiver = asyncio.get_running_loop().create_task(self._receive_loop())
        logger.info(f"Connected to relay at {self.ws_url}, joined room {self.session.room_id}")
        return True

    async def _open(self) -> None:
        self._http = aiohttp.ClientSession()
        try:
            self._ws = await self._http.ws_connect(self.ws_url)
        except (aiohttp.ClientError, OSError) as e:
            raise RelayUnreachable(str(e)) from e

    async def publish(self, caption: CaptionRecord) -> None:
        """Best-effort broadcast of a local caption; failures never reach the caller."""
        if not self.session.is_connected:
            return
        event = CaptionEvent(room_id=self.session.room_id, caption=caption)
        try:
            await self._send(RelayMessage(RelayMessage.CAPTION, event.to_wire()))
        except (aiohttp.ClientError, ConnectionError, RuntimeError) as e:
            logger.warning(f"Caption broadcast failed: {e}")

    async def _send(self, message: RelayMessage) -> None:
        await self._ws.send_json(message.to_json())

    async def _receive_loop(self) -> None:
        try:
            async for msg in self._ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self.handle_message(msg.data)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    logger.warning(f"Relay channel error: {self._ws.exception()}")
                    break
        finally:
            if self.session.is_connected:
                logger.info("Relay disconnected, continuing in standalone mode")
                self.session.enter_standalone()

    def handle_message(self, raw: str) -> None:
        """Apply one inbound relay frame to the shared session."""
        try:
            message = RelayMessage.from_json(json.loads(raw))
        except ValueError as e:
            logger.warning(f"Ignoring malformed relay frame: {e}")
            return

        if message.event == RelayMessage.CAPTION:
            try:
                event = CaptionEvent.from_wire(message.data)
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Ignoring malformed caption: {e}")
                return
            self.session.buffer.append(event.caption)
        elif message.event == RelayMessage.PARTICIPANTS and isinstance(message.data, dict):
            if message.data.get("roomId") == self.session.room_id:
                self.session.set_participant_count(message.data.get("count"))
        else:
            logger.debug(f"Unhandled relay event: {message.event}")

    async def close(self) -> None:
        if self._receiver:
            self._receiver.cancel()
            try:
                await self._receiver
            except asyncio.CancelledError:
                pass
            self._receiver = None
        await self._close_transport()
        self.session.enter_standalone()

    async def _close_transport(self) -> None:
        if self._ws is not None:
            await self._ws.close()
            self._ws = None
        if self._http is not None:
            await self._http.close()
            self._http = None
