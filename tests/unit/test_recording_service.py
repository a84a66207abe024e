"""Unit tests for RecordingService (the capture client state machine)."""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from nebula.errors import MissingAudio, TranscriptionFailed
from nebula.models.session import RecordingState
from nebula.models.transcription import TranscriptResult
from nebula.services.recording_service import (
    RecordingService,
    DEVICE_ERROR_TEXT,
    PROCESSING_ERROR_TEXT,
)
from nebula.transcription import PlaceholderBackend, TranscriptionGateway
from nebula.transcription.placeholder_backend import LONG_AUDIO_TEXT, SHORT_AUDIO_TEXT


def transcriber_returning(result=None, error=None):
    transcriber = Mock()
    transcriber.transcribe = AsyncMock(return_value=result, side_effect=error)
    return transcriber


@pytest.fixture
def gateway(temp_data_dir):
    return TranscriptionGateway(PlaceholderBackend(), temp_directory=temp_data_dir)


@pytest.mark.unit
class TestRecordingLifecycle:
    """State transitions and session reset."""

    async def test_start_resets_session(self, session, fake_source, gateway, make_caption):
        session.buffer.append(make_caption("old"))
        session.set_summary("old summary")
        service = RecordingService(session, fake_source, gateway)

        assert await service.start_recording() is True

        assert service.state is RecordingState.RECORDING
        assert len(session.buffer) == 0
        assert session.summary == ""
        assert session.chunk_count == 0

    async def test_start_while_recording_is_rejected(self, session, fake_source, gateway):
        service = RecordingService(session, fake_source, gateway)
        await service.start_recording()

        assert await service.start_recording() is False
        assert fake_source.starts == 1

    async def test_empty_chunks_are_ignored(self, session, fake_source, gateway):
        service = RecordingService(session, fake_source, gateway)
        await service.start_recording()

        fake_source.emit(b"")
        fake_source.emit(b"\x01\x02")

        assert session.chunk_count == 1
        assert service.chunks_received == 1

    async def test_four_chunks_one_request_one_caption(self, session, fake_source):
        transcriber = transcriber_returning(TranscriptResult(text="hello all", language="en", confidence=0.8))
        service = RecordingService(session, fake_source, transcriber)
        await service.start_recording()

        chunks = [bytes([i]) * 100 for i in range(1, 5)]
        for chunk in chunks:
            fake_source.emit(chunk)
        caption = await service.stop_recording()

        transcriber.transcribe.assert_awaited_once_with(b"".join(chunks), "en")
        assert list(session.buffer.all()) == [caption]
        assert caption.text == "hello all"
        assert caption.speaker == "You"
        assert service.state is RecordingState.IDLE
        assert fake_source.stops == 1

    async def test_long_and_short_payloads(self, session, fake_source, gateway, sample_audio_chunk):
        service = RecordingService(session, fake_source, gateway)

        await service.start_recording()
        fake_source.emit(sample_audio_chunk)
        fake_source.emit(sample_audio_chunk)
        long_caption = await service.stop_recording()

        await service.start_recording()
        fake_source.emit(b"\x01" * 1000)
        short_caption = await service.stop_recording()

        assert long_caption.text == LONG_AUDIO_TEXT
        assert short_caption.text == SHORT_AUDIO_TEXT

    async def test_trailing_chunk_flushed_on_stop(self, session, make_source):
        source = make_source(trailing_chunk=b"\x02" * 10)
        transcriber = transcriber_returning(TranscriptResult(text="ok", language="en", confidence=0.9))
        service = RecordingService(session, source, transcriber)
        await service.start_recording()

        source.emit(b"\x01" * 10)
        await service.stop_recording()

        transcriber.transcribe.assert_awaited_once_with(b"\x01" * 10 + b"\x02" * 10, "en")

    async def test_stop_without_audio_issues_no_request(self, session, fake_source):
        transcriber = transcriber_returning()
        service = RecordingService(session, fake_source, transcriber)
        await service.start_recording()

        assert await service.stop_recording() is None
        transcriber.transcribe.assert_not_awaited()
        assert service.state is RecordingState.IDLE

    async def test_stop_when_idle_is_noop(self, session, fake_source, gateway):
        service = RecordingService(session, fake_source, gateway)

        assert await service.stop_recording() is None
        assert fake_source.stops == 0

    async def test_second_stop_while_transcribing_is_ignored(self, session, fake_source):
        release = asyncio.Event()

        async def slow_transcribe(audio, language):
            await release.wait()
            return TranscriptResult(text="done", language=language, confidence=0.9)

        transcriber = Mock()
        transcriber.transcribe = AsyncMock(side_effect=slow_transcribe)
        service = RecordingService(session, fake_source, transcriber)
        await service.start_recording()
        fake_source.emit(b"\x01" * 10)

        first = asyncio.ensure_future(service.stop_recording())
        await asyncio.sleep(0)
        assert service.state is RecordingState.STOPPING
        assert await service.stop_recording() is None

        release.set()
        caption = await first

        assert caption.text == "done"
        assert transcriber.transcribe.await_count == 1
        assert len(session.buffer) == 1


@pytest.mark.unit
class TestRecordingErrors:
    """Failures surface as error captions and never abort the session."""

    async def test_device_unavailable_becomes_error_caption(self, session, make_caption, make_source):
        session.buffer.append(make_caption("earlier"))
        service = RecordingService(session, make_source(fail=True), transcriber_returning())

        assert await service.start_recording() is False

        captions = session.buffer.all()
        assert [c.text for c in captions] == ["earlier", DEVICE_ERROR_TEXT]
        assert captions[-1].speaker == "System"
        assert captions[-1].confidence == 0
        assert captions[-1].language == "error"
        assert service.state is RecordingState.IDLE

    @pytest.mark.parametrize("error", [TranscriptionFailed("boom"), MissingAudio("none")])
    async def test_transcription_failure_becomes_error_caption(self, session, fake_source, error):
        service = RecordingService(session, fake_source, transcriber_returning(error=error))
        await service.start_recording()
        fake_source.emit(b"\x01")

        caption = await service.stop_recording()

        assert caption.text == PROCESSING_ERROR_TEXT
        assert caption.is_error
        assert service.state is RecordingState.IDLE

        assert await service.start_recording() is True

    @pytest.mark.parametrize("result", [
        None,
        TranscriptResult(text="", language="en", confidence=0.9),
        TranscriptResult(text="   ", language="en", confidence=0.9),
    ])
    async def test_empty_transcript_produces_no_caption(self, session, fake_source, result):
        service = RecordingService(session, fake_source, transcriber_returning(result))
        await service.start_recording()
        fake_source.emit(b"\x01")

        assert await service.stop_recording() is None
        assert len(session.buffer) == 0

    async def test_missing_confidence_falls_back(self, session, fake_source):
        result = TranscriptResult(text="hi", language="", confidence=0.0)
        service = RecordingService(session, fake_source, transcriber_returning(result))
        await service.start_recording()
        fake_source.emit(b"\x01")

        caption = await service.stop_recording()

        assert caption.confidence == 0.95
        assert caption.language == "en"
        assert not caption.is_error


@pytest.mark.unit
class TestRecordingCollaborators:
    """Relay publication and scheduler notifications."""

    async def test_successful_caption_is_published(self, session, fake_source):
        connection = Mock()
        connection.publish = AsyncMock()
        result = TranscriptResult(text="share me", language="en", confidence=0.9)
        service = RecordingService(session, fake_source, transcriber_returning(result), connection=connection)
        await service.start_recording()
        fake_source.emit(b"\x01")

        caption = await service.stop_recording()

        connection.publish.assert_awaited_once_with(caption)

    async def test_error_caption_is_not_published(self, session, fake_source):
        connection = Mock()
        connection.publish = AsyncMock()
        service = RecordingService(session, fake_source, transcriber_returning(error=TranscriptionFailed("x")),
                                   connection=connection)
        await service.start_recording()
        fake_source.emit(b"\x01")

        await service.stop_recording()

        connection.publish.assert_not_awaited()

    async def test_scheduler_evaluated_on_each_transition(self, session, fake_source):
        scheduler = Mock()
        result = TranscriptResult(text="hi", language="en", confidence=0.9)
        service = RecordingService(session, fake_source, transcriber_returning(result), scheduler=scheduler)

        await service.start_recording()
        fake_source.emit(b"\x01")
        await service.stop_recording()

        # recording, stopping, idle
        assert scheduler.evaluate.call_count == 3
