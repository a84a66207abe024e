"""Main application entry point for Nebula."""

import sys
import asyncio
import argparse
import logging
from pathlib import Path
from typing import Optional

from aiohttp import web
from pubsub import pub
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .captions import CaptionBuffer, CaptionPublisher, CAPTION_TOPIC
from .config import NebulaConfig
from .models.caption import CaptionRecord
from .models.session import Session
from .relay.connection import ConnectionSession
from .server.app import create_app, create_backend
from .services.recording_service import RecordingService
from .summary import SummaryScheduler, TemplateSummarizationService
from .transcription.client import TranscriptionClient
from .transcription.gateway import TranscriptionGateway

logger = logging.getLogger(__name__)

console = Console()


def setup_logging(config: NebulaConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path')
    console_output = config.get('logging.console_output', True)

    handlers = []

    if log_file_path:
        Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file_path)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
        ))
        handlers.append(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("Nebula starting up")
    logger.info(f"Log level set to: {level}")
    if log_file_path:
        logger.info(f"Log file: {log_file_path}")


def serve(config: NebulaConfig) -> None:
    host = config.get('server.host', '0.0.0.0')
    port = config.get('server.port', 3000)
    logger.info(f"Server running on {host}:{port}")
    web.run_app(create_app(config), host=host, port=port, print=None)


class RecordingClient:
    """Wires session, relay connection, capture and summaries for one participant."""

    def __init__(self, config: NebulaConfig, standalone: bool = False):
        self.config = config
        self.buffer = CaptionBuffer(
            capacity=config.get('captions.capacity', 10),
            publisher=CaptionPublisher(CAPTION_TOPIC),
        )
        self.session = Session(
            room_id=config.get('room.id'),
            buffer=self.buffer,
            language=config.get('transcription.language', 'en'),
            speaker=config.get('room.speaker', 'You'),
        )
        self.connection = ConnectionSession(
            self.session,
            url=config.get('relay.url'),
            connect_timeout=config.get('relay.connect_timeout_seconds', 3.0),
            enabled=config.get('relay.enabled', True) and not standalone,
        )
        self.scheduler = SummaryScheduler(
            self.session,
            TemplateSummarizationService(),
            interval_seconds=config.get('summary.interval_seconds', 20.0),
            min_captions=config.get('summary.min_captions', 3),
            caption_topic=CAPTION_TOPIC,
        )
        self.recording: Optional[RecordingService] = None

    def _transcriber(self):
        if self.session.is_connected:
            return TranscriptionClient(self.config.get('relay.url'),
                                       timeout=self.config.get('transcription.timeout_seconds', 30.0))
        return TranscriptionGateway(
            backend=create_backend(self.config),
            temp_directory=self.config.get_temp_directory(),
            default_language=self.session.language,
        )

    def _print_caption(self, caption: CaptionRecord) -> None:
        style = "red" if caption.is_error else "white"
        console.print(f"[dim]{caption.timestamp}[/dim] [bold]{caption.speaker}[/bold]: "
                      f"[{style}]{caption.text}[/{style}]")

    async def run(self, duration: float) -> None:
        from .audio.capture import PyAudioSource

        await self.connection.connect()
        mode = "[green]● Connected[/green]" if self.session.is_connected else "[yellow]● Standalone Mode[/yellow]"
        console.print(f"Room [bold]{self.session.room_id}[/bold] {mode}")

        source = PyAudioSource(
            sample_rate=self.config.get('audio.sample_rate', 16000),
            channels=self.config.get('audio.channels', 1),
            frames_per_buffer=self.config.get('audio.frames_per_buffer', 1024),
            chunk_interval_seconds=self.config.get('audio.chunk_interval_seconds', 1.0),
        )
        self.recording = RecordingService(self.session, source, self._transcriber(),
                                          connection=self.connection, scheduler=self.scheduler)
        pub.subscribe(self._print_caption, CAPTION_TOPIC)
        self.scheduler.start()
        try:
            if await self.recording.start_recording():
                console.print(f"Recording for {duration:.0f}s...")
                await asyncio.sleep(duration)
                await self.recording.stop_recording()
        finally:
            self.scheduler.shutdown()
            pub.unsubscribe(self._print_caption, CAPTION_TOPIC)
            await self.connection.close()
        self.print_report()

    def print_report(self) -> None:
        table = Table(title="Live Captions")
        table.add_column("Time", style="dim")
        table.add_column("Speaker", style="bold")
        table.add_column("Text")
        table.add_column("Lang")
        table.add_column("Confidence", justify="right")
        for caption in self.buffer.all():
            table.add_row(caption.timestamp, caption.speaker, caption.text,
                          caption.language.upper(), f"{caption.confidence:.0%}")
        console.print(table)
        if self.session.summary:
            console.print(Panel(self.session.summary, title="AI Summary"))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Nebula - live room captions and rolling summaries",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: built-in settings)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (overrides config)"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"Nebula v{__version__}"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    serve_parser = commands.add_parser("serve", help="Run the transcription and relay server")
    serve_parser.add_argument("--host", type=str, help="Bind address (overrides config)")
    serve_parser.add_argument("--port", type=int, help="Port (overrides config)")

    record_parser = commands.add_parser("record", help="Record from the microphone and caption it")
    record_parser.add_argument("--room", type=str, help="Room id to join (overrides config)")
    record_parser.add_argument("--language", type=str, help="Language hint, e.g. en, es, de, ja, hi, ar")
    record_parser.add_argument("--speaker", type=str, help="Speaker label for your captions")
    record_parser.add_argument("--duration", type=float, default=10.0,
                               help="Seconds to record before transcribing (default: 10)")
    record_parser.add_argument("--standalone", action="store_true",
                               help="Do not contact the relay; caption locally")
    return parser


def apply_overrides(config: NebulaConfig, args: argparse.Namespace) -> None:
    overrides = {
        'server.host': getattr(args, 'host', None),
        'server.port': getattr(args, 'port', None),
        'room.id': getattr(args, 'room', None),
        'room.speaker': getattr(args, 'speaker', None),
        'transcription.language': getattr(args, 'language', None),
    }
    for key, value in overrides.items():
        if value is not None:
            config.set(key, value)


def main() -> None:
    """Main entry point for Nebula."""
    args = build_parser().parse_args()

    try:
        config = NebulaConfig(args.config)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(2)
    apply_overrides(config, args)
    setup_logging(config, args.log_level or config.get('logging.level', 'INFO'))

    try:
        if args.command == "serve":
            serve(config)
        else:
            client = RecordingClient(config, standalone=args.standalone)
            asyncio.run(client.run(args.duration))
    except KeyboardInterrupt:
        console.print("\nGoodbye!")
    except Exception as e:
        logger.error(f"Application error: {e}")
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
