"""aiohttp application exposing transcription, health and the room relay."""

import json
import uuid
import logging
from datetime import datetime, timezone
from typing import Optional

from aiohttp import web, WSMsgType
from pydantic import BaseModel, ValidationError

from ..config import NebulaConfig
from ..errors import MissingAudio, TranscriptionFailed
from ..models.events import RelayMessage
from ..relay.rooms import RoomBroadcastRelay
from ..transcription.base import AbstractTranscriptionBackend
from ..transcription.gateway import TranscriptionGateway, decode_request
from ..transcription.placeholder_backend import PlaceholderBackend

logger = logging.getLogger(__name__)

GATEWAY_KEY = web.AppKey("gateway", TranscriptionGateway)
RELAY_KEY = web.AppKey("relay", RoomBroadcastRelay)


class TranscribeRequest(BaseModel):
    """Request body for transcription."""
    audio: Optional[str] = None  # Base64-encoded audio payload
    language: Optional[str] = None


def _error(status: int, message: str) -> web.Response:
    return web.json_response({"error": message}, status=status)


async def transcribe(request: web.Request) -> web.Response:
    gateway = request.app[GATEWAY_KEY]
    try:
        body = TranscribeRequest.model_validate(await request.json())
        audio, language = decode_request(body.model_dump(), gateway.default_language)
    except (ValueError, ValidationError, MissingAudio):
        return _error(400, "No audio data provided")

    try:
        result = await gateway.transcribe(audio, language)
    except (TranscriptionFailed, MissingAudio):
        return _error(500, "Transcription failed")

    if result is None:
        return web.Response(status=204)
    return web.json_response(result.to_response())


async def health(request: web.Request) -> web.Response:
    return web.json_response({
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "transcription": "ready",
            "socket": "ready",
        },
    })


async def relay_socket(request: web.Request) -> web.WebSocketResponse:
    relay = request.app[RELAY_KEY]
    ws = web.WebSocketResponse(heartbeat=30.0)
    await ws.prepare(request)

    connection_id = uuid.uuid4().hex
    relay.connect(connection_id, ws.send_json)
    try:
        async for msg in ws:
            if msg.type == WSMsgType.TEXT:
                _handle_frame(relay, connection_id, msg.data)
            elif msg.type == WSMsgType.ERROR:
                logger.warning(f"Connection {connection_id} closed with exception {ws.exception()}")
    finally:
        relay.disconnect(connection_id)
    return ws


def _handle_frame(relay: RoomBroadcastRelay, connection_id: str, raw: str) -> None:
    try:
        message = RelayMessage.from_json(json.loads(raw))
    except ValueError as e:
        logger.warning(f"Ignoring malformed frame from {connection_id}: {e}")
        return

    if message.event == RelayMessage.JOIN_ROOM:
        if isinstance(message.data, str) and message.data:
            relay.join(connection_id, message.data)
        else:
            logger.warning(f"Ignoring join-room without a room id from {connection_id}")
    elif message.event == RelayMessage.CAPTION:
        if isinstance(message.data, dict) and message.data.get("text"):
            relay.publish(connection_id, message.data)
        else:
            logger.warning(f"Ignoring empty caption from {connection_id}")
    else:
        logger.debug(f"Unhandled event from {connection_id}: {message.event}")


async def _cleanup_backend(app: web.Application) -> None:
    app[GATEWAY_KEY].backend.cleanup()


def create_backend(config: NebulaConfig) -> AbstractTranscriptionBackend:
    """Build the transcription backend named by ``transcription.backend``."""
    name = config.get('transcription.backend', 'placeholder')
    if name == "placeholder":
        return PlaceholderBackend(
            long_audio_threshold_bytes=config.get('transcription.long_audio_threshold_bytes', 50000)
        )
    if name == "google":
        from ..transcription.google_backend import GoogleSpeechBackend
        backend = GoogleSpeechBackend(
            credentials_path=config.get('google_cloud.credentials_path'),
            sample_rate=config.get('audio.sample_rate', 16000),
            enable_automatic_punctuation=config.get('google_cloud.enable_automatic_punctuation', True),
        )
        if not backend.initialize():
            raise RuntimeError("Google Speech backend failed to initialize")
        return backend
    raise ValueError(f"Unknown transcription backend: {name}")


def create_app(config: Optional[NebulaConfig] = None,
               backend: Optional[AbstractTranscriptionBackend] = None,
               relay: Optional[RoomBroadcastRelay] = None) -> web.Application:
    """Assemble the server application.

    Args:
        config: Configuration; defaults are used when None
        backend: Transcription backend override (tests inject one here)
        relay: Room relay override
    """
    config = config or NebulaConfig()
    app = web.Application(client_max_size=config.get('server.max_request_bytes', 50 * 1024 * 1024))
    app[GATEWAY_KEY] = TranscriptionGateway(
        backend=backend or create_backend(config),
        temp_directory=config.get_temp_directory(),
        default_language=config.get('transcription.language', 'en'),
    )
    app[RELAY_KEY] = relay or RoomBroadcastRelay(
        outbound_queue_size=config.get('relay.outbound_queue_size', 100)
    )
    app.router.add_post("/transcribe", transcribe)
    app.router.add_get("/health", health)
    app.router.add_get("/ws", relay_socket)
    app.on_cleanup.append(_cleanup_backend)
    return app
