"""End-to-end: two clients share a room through a live server."""

import asyncio

import pytest
from aiohttp import web

from nebula.captions import CaptionBuffer
from nebula.config import NebulaConfig
from nebula.errors import MissingAudio, TranscriptionFailed
from nebula.models.caption import DEFAULT_CONFIDENCE
from nebula.models.session import Session, ConnectionState
from nebula.relay.connection import ConnectionSession
from nebula.server.app import create_app
from nebula.services.recording_service import RecordingService, PROCESSING_ERROR_TEXT
from nebula.transcription.client import TranscriptionClient
from nebula.transcription.placeholder_backend import PlaceholderBackend


async def wait_for(predicate, timeout: float = 2.0):
    """Poll until predicate() holds or fail the test."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            pytest.fail("condition not reached in time")
        await asyncio.sleep(0.01)


@pytest.fixture
async def server_url(aiohttp_server, temp_data_dir):
    config = NebulaConfig()
    config.set('transcription.temp_directory', temp_data_dir)
    server = await aiohttp_server(create_app(config, backend=PlaceholderBackend()))
    return str(server.make_url(""))


@pytest.fixture
async def connections():
    opened = []
    yield opened
    for connection in opened:
        await connection.close()


async def join(server_url, connections, speaker, room_id="room-e2e"):
    session = Session(room_id=room_id, buffer=CaptionBuffer(), speaker=speaker)
    connection = ConnectionSession(session, server_url, connect_timeout=2.0)
    connections.append(connection)
    assert await connection.connect() is True
    return session, connection


@pytest.mark.integration
class TestRoomSession:

    async def test_recorded_caption_reaches_peer(self, server_url, connections, fake_source, sample_audio_chunk):
        alice, alice_conn = await join(server_url, connections, "Alice")
        bob, _ = await join(server_url, connections, "Bob")
        await wait_for(lambda: alice.participant_count == 2)

        service = RecordingService(alice, fake_source, TranscriptionClient(server_url), connection=alice_conn)
        await service.start_recording()
        fake_source.emit(sample_audio_chunk)
        fake_source.emit(sample_audio_chunk)
        caption = await service.stop_recording()

        assert caption.text == "Long audio recording processed"
        assert caption.speaker == "Alice"
        await wait_for(lambda: len(bob.buffer) == 1)
        received = bob.buffer.all()[0]
        assert received.id == caption.id
        assert received.speaker == "Alice"
        assert len(alice.buffer) == 1

    async def test_other_room_does_not_receive(self, server_url, connections, make_caption):
        alice, alice_conn = await join(server_url, connections, "Alice", room_id="room-1")
        bob, _ = await join(server_url, connections, "Bob", room_id="room-1")
        carol, _ = await join(server_url, connections, "Carol", room_id="room-2")
        await wait_for(lambda: alice.participant_count == 2)

        await alice_conn.publish(make_caption("for room one"))

        await wait_for(lambda: len(bob.buffer) == 1)
        await asyncio.sleep(0.1)
        assert len(carol.buffer) == 0
        assert len(alice.buffer) == 0

    async def test_peer_leaving_updates_count(self, server_url, connections):
        alice, _ = await join(server_url, connections, "Alice")
        _, bob_conn = await join(server_url, connections, "Bob")
        await wait_for(lambda: alice.participant_count == 2)

        await bob_conn.close()

        await wait_for(lambda: alice.participant_count == 1)
        assert alice.connection_state is ConnectionState.CONNECTED


@pytest.mark.integration
class TestTranscriptionClient:

    async def test_short_payload(self, server_url):
        result = await TranscriptionClient(server_url).transcribe(b"\x00" * 1000, "de")

        assert result.text == "Short audio recording processed"
        assert result.language == "de"

    async def test_empty_payload_rejected_locally(self, server_url):
        with pytest.raises(MissingAudio):
            await TranscriptionClient(server_url).transcribe(b"", "en")


async def slow_transcribe(request):
    await asyncio.sleep(1.0)
    return web.json_response({"text": "too late", "language": "en", "confidence": 0.9})


async def list_transcribe(request):
    return web.json_response([1, 2])


async def garbage_transcribe(request):
    return web.Response(body=b"{not json", content_type="application/json")


async def bad_confidence_transcribe(request):
    return web.json_response({"text": "hi", "language": "en", "confidence": "high"})


async def bare_transcribe(request):
    return web.json_response({"text": "hi"})


@pytest.fixture
def stub_server(aiohttp_server):
    """Serve a single /transcribe handler and return its base url."""
    async def _start(handler):
        app = web.Application()
        app.router.add_post("/transcribe", handler)
        server = await aiohttp_server(app)
        return str(server.make_url(""))
    return _start


@pytest.mark.integration
class TestTranscriptionClientFailures:

    @pytest.mark.parametrize("handler", [list_transcribe, garbage_transcribe, bad_confidence_transcribe])
    async def test_malformed_response_fails(self, stub_server, handler):
        url = await stub_server(handler)

        with pytest.raises(TranscriptionFailed):
            await TranscriptionClient(url).transcribe(b"\x00" * 100, "en")

    async def test_timeout_fails(self, stub_server):
        url = await stub_server(slow_transcribe)

        with pytest.raises(TranscriptionFailed):
            await TranscriptionClient(url, timeout=0.1).transcribe(b"\x00" * 100, "en")

    async def test_missing_fields_fall_back(self, stub_server):
        url = await stub_server(bare_transcribe)

        result = await TranscriptionClient(url).transcribe(b"\x00" * 100, "es")

        assert result.language == "es"
        assert result.confidence == DEFAULT_CONFIDENCE

    @pytest.mark.parametrize("handler", [slow_transcribe, list_transcribe])
    async def test_recording_survives_bad_server(self, stub_server, session, fake_source, handler):
        url = await stub_server(handler)
        service = RecordingService(session, fake_source, TranscriptionClient(url, timeout=0.1))

        await service.start_recording()
        fake_source.emit(b"\x01" * 100)
        caption = await service.stop_recording()

        assert caption.text == PROCESSING_ERROR_TEXT
        assert caption.is_error
        assert session.buffer.all() == (caption,)
        assert service.state.value == "idle"
