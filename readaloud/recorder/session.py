"""Per-session recorder state."""

import logging
from typing import Dict, Iterator, List, Optional

from ..audio.analyser import FrequencyAnalyser
from ..audio.filters import SignalConditioner
from ..audio.wav import decode_pcm16
from ..models.audio import RecordingState
from ..models.session import new_session_id
from ..models.settings import RecorderSettings

logger = logging.getLogger(__name__)


class RecordingSession:
    """Everything owned by one start -> idle cycle of the recorder.

    Holds the lifecycle state, the captured chunks, the analysis graph and
    the session's cancellable timer handles. Chunks are only accepted while
    recording; in every other state the chunk list is left untouched.
    """

    def __init__(
        self,
        settings: RecorderSettings,
        started_at: float,
        max_duration_ms: Optional[int] = None,
        session_id: Optional[str] = None,
    ):
        self.session_id = session_id or new_session_id()
        self.settings = settings
        self.state = RecordingState.IDLE
        self.sample_rate = settings.sample_rate
        self.started_at = started_at
        self.max_duration_ms = max_duration_ms or settings.max_duration_ms

        self.chunks: List[bytes] = []
        self.recording_started_at: Optional[float] = None
        self.last_speech_at: Optional[float] = None
        self.readings: Optional[Iterator[float]] = None
        self.closed = False

        self.conditioner: Optional[SignalConditioner] = None
        self.analyser: Optional[FrequencyAnalyser] = None
        if not settings.test_mode:
            self.conditioner = SignalConditioner(settings)
            self.analyser = FrequencyAnalyser(fft_size=settings.fft_size)

        self._timers: Dict[str, object] = {}

    @property
    def is_listening(self) -> bool:
        return not self.closed and self.state in (RecordingState.CALIBRATING, RecordingState.RECORDING)

    @property
    def total_bytes(self) -> int:
        return sum(len(chunk) for chunk in self.chunks)

    def feed(self, audio_chunk: bytes) -> bool:
        """Route a raw device chunk into analysis and, while recording, the capture.

        Returns:
            True if the chunk was appended to the capture
        """
        if not self.is_listening or not audio_chunk:
            return False

        if self.analyser is not None:
            samples = decode_pcm16(audio_chunk)
            self.analyser.push(self.conditioner.process(samples))

        if self.state is RecordingState.RECORDING:
            self.chunks.append(audio_chunk)
            return True
        return False

    def audio_bytes(self) -> bytes:
        return b''.join(self.chunks)

    def elapsed_ms(self, now: float) -> int:
        return int(round((now - self.started_at) * 1000))

    def set_timer(self, name: str, handle) -> None:
        """Track a cancellable handle, replacing any previous one of the same name."""
        self.cancel_timer(name)
        self._timers[name] = handle

    def cancel_timer(self, name: str) -> None:
        handle = self._timers.pop(name, None)
        if handle is not None:
            handle.cancel()

    def cancel_timers(self) -> None:
        for name in list(self._timers):
            self.cancel_timer(name)

    def close(self) -> None:
        """Cancel timers and drop captured audio and the analysis graph."""
        self.cancel_timers()
        self.chunks = []
        self.readings = None
        self.conditioner = None
        self.analyser = None
        self.closed = True
        logger.debug(f"Session {self.session_id} closed")
