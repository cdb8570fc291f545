"""Main application entry point for MeetingMind."""

import sys
import time
import argparse
import logging
from pathlib import Path

from .audio.capture import AudioCapture
from .config import MeetingMindConfig
from .services.orchestrator import NEAR_SOURCE, FAR_SOURCE, SOURCE_LABELS
from .services.transcription_service import create_transcription_backend, create_orchestrator
from .ui.transcript_view import TranscriptView

logger = logging.getLogger(__name__)


class Server:

    def __init__(self, config_path: str, log_level: str = None):
        self.config = MeetingMindConfig(config_path)
        # Command line overrides config
        level = log_level or self.config.get('logging.level', 'INFO')
        setup_logging(self.config, level)
        self.should_exit = False

    def init(self):
        logger.info("Initializing services...")

        sample_rate = self.config.get('audio.sample_rate', 16000)
        chunk_size = self.config.get('audio.chunk_size', 1024)
        channels = self.config.get('audio.channels', 1)
        logger.info(f"Audio settings: {sample_rate}Hz, {chunk_size} samples/chunk, {channels} channels")

        backend = create_transcription_backend(self.config)
        self.orchestrator = create_orchestrator(self.config, backend)
        self.transcript_view = TranscriptView(SOURCE_LABELS)

        self.captures = [
            AudioCapture(
                source=source,
                callback=self.orchestrator.on_audio_event,
                sample_rate=sample_rate,
                chunk_size=chunk_size,
                channels=channels,
                device_index=self.config.get(f'audio.{source}_device_index'),
            )
            for source in (NEAR_SOURCE, FAR_SOURCE)
        ]

    def run(self, duration: int):
        try:
            self.orchestrator.start_session()
            for capture in self.captures:
                capture.start_recording()
            if duration:
                time.sleep(duration)
            else:
                while not self.should_exit:
                    time.sleep(1)
        finally:
            self.cleanup()

    def cleanup(self):
        for capture in self.captures:
            if capture.is_recording:
                capture.stop_recording()
        if self.orchestrator.is_running:
            timeout = float(self.config.get('transcription.timeout_seconds', 30.0))
            result = self.orchestrator.stop_session(timeout=timeout)
            logger.info(f"Session result: {result}")
        self.orchestrator.teardown()

        self.transcript_view.render()
        self.transcript_view.close()


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/meetingmind.log')
    console_output = config.get('logging.console_output', True)

    Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("MeetingMind starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def main() -> None:
    """Main entry point for MeetingMind."""
    parser = argparse.ArgumentParser(
        description="MeetingMind - live transcription of microphone and speaker audio"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: looks for meetingmind.yaml)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (overrides config)"
    )

    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Seconds to record before stopping (default: until Ctrl-C)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="MeetingMind v0.1.0"
    )

    args = parser.parse_args()

    server = Server(args.config, args.log_level)
    try:
        server.init()
        server.run(args.duration)
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
    except Exception as e:
        print(f"❌ Error: {e}")
        logging.error(f"Application error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
