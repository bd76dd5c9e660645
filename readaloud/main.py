"""Command-line entry point for ReadAloud: record one line and save the clip."""

import sys
import asyncio
import argparse
import logging
from pathlib import Path
from typing import Optional

from pubsub import pub

from .config import ReadAloudConfig
from .models.audio import RecordingResult, RecordingState
from .models.events import RecordingCompleted, RecordingFailed, StateChanged
from .services.recording_service import RecordingService

logger = logging.getLogger(__name__)


class LineRecordingError(RuntimeError):
    """A line could not be recorded."""


class ReadAloudApp:

    def __init__(self, config_path: Optional[str], log_level: Optional[str] = None, test_mode: bool = False):
        # Load configuration
        self.config = ReadAloudConfig(config_path)
        if test_mode:
            self.config.set('recorder.test_mode', True)
        # Reject bad recorder settings before anything touches the device
        self.config.recorder_settings()
        # Command line overrides the config file
        setup_logging(self.config, log_level or self.config.get('logging.level', 'INFO'))
        self.service: Optional[RecordingService] = None

    async def record_line(self, line_index: int) -> RecordingResult:
        """Record one line and wait for the recorder to finish it."""
        self.service = RecordingService(self.config)
        publisher = self.service.publisher

        finished = asyncio.Event()
        outcome = {}

        def on_state(event: StateChanged) -> None:
            if event.state is RecordingState.CALIBRATING:
                print("🤫 Calibrating, stay quiet...")
            elif event.state is RecordingState.RECORDING:
                print(f"🎤 Read line {line_index + 1}: {self.service.get_keywords(line_index)}")

        def on_completed(event: RecordingCompleted) -> None:
            outcome['result'] = event.result
            finished.set()

        def on_failed(event: RecordingFailed) -> None:
            outcome['error'] = event.reason
            finished.set()

        pub.subscribe(on_state, publisher.state_topic)
        pub.subscribe(on_completed, publisher.completed_topic)
        pub.subscribe(on_failed, publisher.failed_topic)
        try:
            started = self.service.start_recording(line_index)
            if not started["success"]:
                raise LineRecordingError(started["error"])

            # Calibration plus the per-line ceiling, with room for encoding
            timeout_s = (self.service.settings.calibration_duration_ms
                         + self.service.max_record_time_ms) / 1000.0 + 5.0
            await asyncio.wait_for(finished.wait(), timeout_s)
        finally:
            pub.unsubscribe(on_state, publisher.state_topic)
            pub.unsubscribe(on_completed, publisher.completed_topic)
            pub.unsubscribe(on_failed, publisher.failed_topic)

        if 'error' in outcome:
            raise LineRecordingError(outcome['error'])
        return outcome['result']

    def cleanup(self) -> None:
        if self.service:
            self.service.cleanup()
            self.service = None


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/readaloud.log')
    console_output = config.get('logging.console_output', True)

    Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    ))
    handlers.append(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("ReadAloud starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def main() -> None:
    """Main entry point for ReadAloud."""
    parser = argparse.ArgumentParser(
        description="ReadAloud - record a child reading one line aloud"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: looks for readaloud.yaml)"
    )

    parser.add_argument(
        "--line",
        type=int,
        default=1,
        help="Line number to record, starting at 1 (default: 1)"
    )

    parser.add_argument(
        "--test-mode",
        action="store_true",
        help="Skip the microphone and use the configured test audio instead"
    )

    parser.add_argument(
        "--output",
        type=str,
        help="Write the finished clip to this file"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config, else INFO)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="ReadAloud v0.1.0"
    )

    args = parser.parse_args()
    if args.line < 1:
        parser.error("--line must be 1 or greater")

    try:
        app = ReadAloudApp(args.config, args.log_level, args.test_mode)
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Configuration error: {e}")
        sys.exit(1)

    try:
        result = asyncio.run(app.record_line(args.line - 1))
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
        sys.exit(130)
    except (LineRecordingError, asyncio.TimeoutError) as e:
        reason = str(e) or "timed out"
        print(f"❌ Recording failed: {reason}")
        logger.error(f"Recording failed: {reason}")
        sys.exit(1)
    finally:
        app.cleanup()

    print(f"✅ Recorded {result.duration_ms}ms ({result.size_bytes} bytes, {result.mime_type})")
    if args.output:
        Path(args.output).write_bytes(result.audio_data)
        print(f"💾 Saved to {args.output}")


if __name__ == "__main__":
    main()
