"""Per-line recording service: one tap-to-toggle recorder shared by every line of a rhyme."""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional

from pubsub import pub

from ..audio.capture import MicrophoneCapture
from ..config import ReadAloudConfig
from ..models.audio import RecordingResult, RecordingState
from ..models.events import RecordingCompleted, RecordingFailed
from ..models.session import SessionInfo
from ..recorder.hooks import RecordingFinishedHook
from ..recorder.publisher import RecorderEventPublisher
from ..recorder.voice_recorder import VoiceRecorder
from ..storage.file_manager import FileManager

logger = logging.getLogger(__name__)


class RecordingService:
    """Records one line at a time and keeps the finished clip for each line."""

    def __init__(
        self,
        config: ReadAloudConfig,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        microphone: Optional[MicrophoneCapture] = None,
        publisher: Optional[RecorderEventPublisher] = None,
        hooks: Iterable[RecordingFinishedHook] = (),
        file_manager: Optional[FileManager] = None,
    ):
        """Initialize recording service.

        Args:
            config: Application configuration
            loop: Event loop for the recorder (the running loop if omitted)
            microphone: Capture device wrapper
            publisher: Recorder event publisher
            hooks: Post-recording hooks, e.g. restoring playback volume
            file_manager: Where to save clips; built from ``storage.data_directory``
                when ``storage.save_recordings`` is true
        """
        self.config = config
        self.settings = config.recorder_settings()
        self.publisher = publisher or RecorderEventPublisher(config.get('events.topic_prefix', 'recorder'))
        self.recorder = VoiceRecorder(
            self.settings,
            loop=loop,
            microphone=microphone,
            publisher=self.publisher,
            hooks=hooks,
        )

        self.max_record_time_ms = config.get_line_max_record_time_ms()
        self.test_audio_files: List[str] = config.get_line_test_audio_files()
        self.keywords: List[str] = config.get_line_keywords()

        if file_manager is None and config.get('storage.save_recordings', False):
            file_manager = FileManager(config.get_data_directory())
        self.file_manager = file_manager

        # Clip and failure reason per line index
        self.results: Dict[int, RecordingResult] = {}
        self.failures: Dict[int, str] = {}
        self.saved_sessions: Dict[int, SessionInfo] = {}
        self.current_line_index: Optional[int] = None

        pub.subscribe(self._on_completed, self.publisher.completed_topic)
        pub.subscribe(self._on_failed, self.publisher.failed_topic)
        self._subscribed = True

        logger.info(f"RecordingService ready (line ceiling {self.max_record_time_ms}ms, "
                    f"test_mode={self.settings.test_mode})")

    @property
    def is_recording(self) -> bool:
        return self.recorder.is_recording

    def get_keywords(self, line_index: int) -> str:
        if 0 <= line_index < len(self.keywords):
            return self.keywords[line_index]
        return ""

    def get_result(self, line_index: int) -> Optional[RecordingResult]:
        return self.results.get(line_index)

    def _test_audio_for(self, line_index: int) -> Optional[str]:
        if 0 <= line_index < len(self.test_audio_files):
            return self.test_audio_files[line_index]
        return None

    def start_recording(self, line_index: int) -> Dict[str, Any]:
        """Start recording the given line.

        Args:
            line_index: Zero-based index of the line being read

        Returns:
            Result dictionary with success status and details
        """
        if line_index < 0:
            return {"success": False, "error": f"Invalid line index: {line_index}"}

        if self.recorder.session is not None:
            return {
                "success": False,
                "error": "Already recording",
                "session_id": self.recorder.session.session_id,
                "line_index": self.current_line_index,
            }

        self.current_line_index = line_index
        self.failures.pop(line_index, None)

        started = self.recorder.start(
            max_duration_ms=self.max_record_time_ms,
            test_audio_path=self._test_audio_for(line_index),
        )
        if not started:
            return {
                "success": False,
                "error": self.failures.get(line_index, "Failed to start recording"),
                "line_index": line_index,
            }

        session_id = self.recorder.session.session_id
        logger.info(f"Started recording line {line_index + 1} (session {session_id})")
        return {
            "success": True,
            "session_id": session_id,
            "line_index": line_index,
            "state": self.recorder.state.value,
        }

    def stop_recording(self) -> Dict[str, Any]:
        """Stop the current line early; the clip arrives with the completion event."""
        session = self.recorder.session
        if session is None or not self.recorder.is_recording:
            return {"success": False, "error": "Not recording"}

        self.recorder.stop()
        logger.info(f"Stopped recording line {self.current_line_index + 1}")
        return {
            "success": True,
            "session_id": session.session_id,
            "line_index": self.current_line_index,
        }

    def toggle(self, line_index: int) -> Dict[str, Any]:
        """Tap on a line's button: start when idle, stop when recording."""
        state = self.recorder.state
        if state is RecordingState.IDLE:
            return self.start_recording(line_index)
        if self.recorder.is_recording:
            return self.stop_recording()
        return {"success": False, "error": f"Busy ({state.value})"}

    def _is_current(self, session_id: str) -> bool:
        session = self.recorder.session
        return session is not None and session.session_id == session_id

    def _on_completed(self, event: RecordingCompleted) -> None:
        if not self._is_current(event.session_id) or self.current_line_index is None:
            return

        line_index = self.current_line_index
        self.results[line_index] = event.result
        logger.info(f"Line {line_index + 1} recorded: {event.result.size_bytes} bytes")

        if self.file_manager is None:
            return
        try:
            self.saved_sessions[line_index] = self.file_manager.save_recording(event.result, line_index)
        except OSError as e:
            logger.error(f"Could not save recording for line {line_index + 1}: {e}")

    def _on_failed(self, event: RecordingFailed) -> None:
        if not self._is_current(event.session_id) or self.current_line_index is None:
            return
        self.failures[self.current_line_index] = event.reason
        logger.warning(f"Line {self.current_line_index + 1} failed: {event.reason}")

    def cleanup(self) -> None:
        """Abort any recording and stop listening for recorder events."""
        self.recorder.cleanup()
        if self._subscribed:
            pub.unsubscribe(self._on_completed, self.publisher.completed_topic)
            pub.unsubscribe(self._on_failed, self.publisher.failed_topic)
            self._subscribed = False
        self.current_line_index = None
        logger.info("RecordingService cleaned up")
