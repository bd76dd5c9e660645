"""Recording state machine: calibrate, record until the child stops, encode.

    idle -> calibrating -> recording -> processing -> idle

Every failure also routes to idle. All work happens on one event loop
(anything exposing ``time``, ``call_later``, ``call_soon`` and
``call_soon_threadsafe`` the way asyncio loops do); the microphone thread
only hands chunks over with ``call_soon_threadsafe``. Nothing here blocks:
results and errors are delivered as events through the publisher.
"""

import asyncio
import logging
from typing import Callable, Iterable, Optional

from ..audio.analyser import VolumeSampler
from ..audio.assets import AssetLoadError, guess_mime_type, load_audio_asset
from ..audio.capture import DeviceUnavailableError, MicrophoneCapture
from ..audio.wav import WavEncoder
from ..models.audio import RecordingResult, RecordingState
from ..models.events import RecordingCompleted, RecordingFailed, StateChanged, VolumeSample
from ..models.settings import RecorderSettings
from ..vad.adaptive import AdaptiveVAD
from .hooks import RecordingFinishedHook
from .publisher import RecorderEventPublisher
from .session import RecordingSession

logger = logging.getLogger(__name__)

# Rate of the clip handed to the scoring collaborator
WAV_SAMPLE_RATE = 16000

ERROR_DEVICE_UNAVAILABLE = "device unavailable"
ERROR_NO_AUDIO = "no audio data"
ERROR_READINGS_ENDED = "volume readings ended"


def default_sampler(session: RecordingSession) -> VolumeSampler:
    return VolumeSampler(session.analyser, lambda: session.is_listening)


class VoiceRecorder:
    """Adaptive-VAD driven recorder owning at most one session at a time."""

    def __init__(
        self,
        settings: Optional[RecorderSettings] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        microphone: Optional[MicrophoneCapture] = None,
        publisher: Optional[RecorderEventPublisher] = None,
        encoder: Optional[WavEncoder] = None,
        hooks: Iterable[RecordingFinishedHook] = (),
        asset_loader: Callable[[str], bytes] = load_audio_asset,
        sampler_factory: Callable[[RecordingSession], VolumeSampler] = default_sampler,
    ):
        """Initialize the recorder.

        Args:
            settings: Recorder settings (defaults if omitted)
            loop: Event loop driving ticks and timeouts; the running loop at
                ``start()`` time is used if omitted
            microphone: Capture device wrapper
            publisher: Destination for state, volume, completion and failure events
            encoder: WAV encoder for finished captures
            hooks: Called once after every session teardown
            asset_loader: Reads the static clip used in bypass mode
            sampler_factory: Builds the per-session volume sampler
        """
        self.settings = settings or RecorderSettings()
        self.loop = loop
        self.microphone = microphone or MicrophoneCapture(
            sample_rate=self.settings.sample_rate,
            chunk_size=self.settings.chunk_size,
        )
        self.publisher = publisher or RecorderEventPublisher()
        self.encoder = encoder or WavEncoder(target_rate=WAV_SAMPLE_RATE)
        self.hooks = list(hooks)
        self.asset_loader = asset_loader
        self.sampler_factory = sampler_factory

        self.vad = AdaptiveVAD(self.settings)
        self.session: Optional[RecordingSession] = None

    @property
    def state(self) -> RecordingState:
        return self.session.state if self.session else RecordingState.IDLE

    @property
    def is_recording(self) -> bool:
        return self.state in (RecordingState.CALIBRATING, RecordingState.RECORDING)

    # ----- public operations -----

    def toggle(self) -> bool:
        """First tap starts a session, second tap stops it."""
        if self.state is RecordingState.IDLE:
            return self.start()
        if self.is_recording:
            return self.stop()
        logger.debug(f"Toggle ignored in state {self.state.value}")
        return False

    def start(self, max_duration_ms: Optional[int] = None, test_audio_path: Optional[str] = None) -> bool:
        """Start a new session.

        Args:
            max_duration_ms: Ceiling for this session only (e.g. a single line)
            test_audio_path: Bypass-mode asset for this session only

        Returns:
            True if a session was started; False if one already exists or the
            microphone could not be opened (a failure event is published then)
        """
        if self.session is not None:
            logger.warning(f"Recording already in progress (state={self.state.value})")
            return False

        loop = self._resolve_loop()
        session = RecordingSession(self.settings, loop.time(), max_duration_ms=max_duration_ms)
        self.session = session

        if self.settings.test_mode:
            self._start_bypass(session, test_audio_path or self.settings.test_audio_path)
            return True

        self.vad.reset()
        try:
            self.microphone.open(
                chunk_callback=lambda data: loop.call_soon_threadsafe(self._on_chunk, session, data),
                error_callback=lambda exc: loop.call_soon_threadsafe(self._on_device_error, session, exc),
            )
        except DeviceUnavailableError as e:
            self._fail(session, f"{ERROR_DEVICE_UNAVAILABLE}: {e}")
            return False

        session.readings = self.sampler_factory(session).readings()
        self._set_state(session, RecordingState.CALIBRATING)
        self._schedule_tick(session, self._calibration_tick)
        logger.info(f"Session {session.session_id} started, calibrating for "
                    f"{self.settings.calibration_duration_ms}ms")
        return True

    def stop(self) -> bool:
        """Stop capturing and hand the session to processing.

        Returns:
            True if a listening session was stopped
        """
        session = self.session
        if session is None or not session.is_listening:
            return False

        session.cancel_timers()
        # Waits for the reader thread to see the stop flag: at most one chunk read
        self.microphone.close()
        self._set_state(session, RecordingState.PROCESSING)
        session.set_timer("finish", self.loop.call_soon(self._finish, session))
        return True

    def cleanup(self) -> None:
        """Abort any session and release the device."""
        session = self.session
        if session is None:
            self.microphone.close()
            return

        logger.info(f"Aborting session {session.session_id} in state {session.state.value}")
        self._teardown(session)

    # ----- ticks and timeouts -----

    def _schedule_tick(self, session: RecordingSession, callback) -> None:
        session.set_timer("tick", self.loop.call_later(self.settings.tick_interval_s, callback, session))

    def _next_volume(self, session: RecordingSession) -> Optional[float]:
        if session.readings is None:
            return None
        return next(session.readings, None)

    def _calibration_tick(self, session: RecordingSession) -> None:
        if session is not self.session or session.state is not RecordingState.CALIBRATING:
            return

        volume = self._next_volume(session)
        if volume is None:
            self._fail(session, ERROR_READINGS_ENDED)
            return

        self.vad.add_calibration_sample(volume)
        self.publisher.publish(VolumeSample(session.session_id, volume, False, self.loop.time()))

        if self.vad.calibration_complete:
            self.vad.finish_calibration()
            self._enter_recording(session)
        else:
            self._schedule_tick(session, self._calibration_tick)

    def _enter_recording(self, session: RecordingSession) -> None:
        now = self.loop.time()
        session.recording_started_at = now
        session.last_speech_at = now
        self._set_state(session, RecordingState.RECORDING)

        session.set_timer(
            "max_duration",
            self.loop.call_later(session.max_duration_ms / 1000.0, self._on_max_duration, session),
        )
        self._schedule_tick(session, self._recording_tick)

    def _recording_tick(self, session: RecordingSession) -> None:
        if session is not self.session or session.state is not RecordingState.RECORDING:
            return

        volume = self._next_volume(session)
        if volume is None:
            logger.warning("Volume readings ended mid-recording, stopping")
            self.stop()
            return

        decision = self.vad.classify(volume)
        now = self.loop.time()
        if decision.is_speech_active:
            session.last_speech_at = now

        self.publisher.publish(VolumeSample(session.session_id, volume, decision.is_speech_active, now))

        if not decision.is_speech_active:
            silence_ms = int(round((now - session.last_speech_at) * 1000))
            if silence_ms >= self.settings.silence_timeout_ms:
                logger.info(f"Silence timeout detected. Duration: {silence_ms}ms, "
                            f"final baseline: {decision.baseline:.2f}, "
                            f"final threshold: {decision.trigger_threshold:.2f}")
                self.stop()
                return

        self._schedule_tick(session, self._recording_tick)

    def _on_max_duration(self, session: RecordingSession) -> None:
        if session is not self.session or session.state is not RecordingState.RECORDING:
            return
        logger.info(f"Max duration reached ({session.max_duration_ms}ms)")
        self.stop()

    # ----- device callbacks (already marshalled onto the loop) -----

    def _on_chunk(self, session: RecordingSession, audio_chunk: bytes) -> None:
        if session is not self.session:
            return
        session.feed(audio_chunk)

    def _on_device_error(self, session: RecordingSession, error: Exception) -> None:
        if session is not self.session or not session.is_listening:
            return
        self._fail(session, f"{ERROR_DEVICE_UNAVAILABLE}: {error}")

    # ----- completion -----

    def _finish(self, session: RecordingSession) -> None:
        if session is not self.session:
            return

        try:
            audio_data = session.audio_bytes()
            if not audio_data:
                self._report_failure(session, ERROR_NO_AUDIO)
                return

            wav_data, mime_type = self.encoder.encode(audio_data, session.sample_rate)
            result = RecordingResult(
                session_id=session.session_id,
                audio_data=wav_data,
                mime_type=mime_type,
                duration_ms=session.elapsed_ms(self.loop.time()),
                sample_rate=self.encoder.target_rate,
            )
            logger.info(f"Recording complete: {result.size_bytes} bytes ({mime_type}), "
                        f"{result.duration_ms}ms")
            self.publisher.publish(RecordingCompleted(result))
        finally:
            self._teardown(session)

    def _start_bypass(self, session: RecordingSession, asset_path: str) -> None:
        logger.info(f"Test mode: skipping capture, loading {asset_path}")
        self._set_state(session, RecordingState.PROCESSING)
        session.set_timer("finish", self.loop.call_soon(self._finish_bypass, session, asset_path))

    def _finish_bypass(self, session: RecordingSession, asset_path: str) -> None:
        if session is not self.session:
            return

        try:
            try:
                audio_data = self.asset_loader(asset_path)
            except AssetLoadError as e:
                self._report_failure(session, str(e))
                return

            result = RecordingResult(
                session_id=session.session_id,
                audio_data=audio_data,
                mime_type=guess_mime_type(asset_path),
                duration_ms=session.elapsed_ms(self.loop.time()),
                sample_rate=self.settings.sample_rate,
                from_test_asset=True,
            )
            self.publisher.publish(RecordingCompleted(result))
        finally:
            self._teardown(session)

    def _fail(self, session: RecordingSession, reason: str) -> None:
        try:
            self._report_failure(session, reason)
        finally:
            self._teardown(session)

    def _report_failure(self, session: RecordingSession, reason: str) -> None:
        logger.error(f"Recording failed: {reason}")
        self.publisher.publish(RecordingFailed(session.session_id, reason, self.loop.time()))

    def _teardown(self, session: RecordingSession) -> None:
        # Runs at most once per session
        if session.closed:
            return

        session.close()
        self.microphone.close()
        self.vad.reset()
        if session is self.session:
            self.session = None

        for hook in self.hooks:
            try:
                hook.on_recording_finished()
            except Exception as e:
                logger.warning(f"Post-recording hook {type(hook).__name__} failed: {e}", exc_info=True)

        if session.state is not RecordingState.IDLE:
            self._set_state(session, RecordingState.IDLE)

    def _set_state(self, session: RecordingSession, state: RecordingState) -> None:
        previous = session.state
        session.state = state
        logger.info(f"Recorder state: {previous.value} -> {state.value}")
        self.publisher.publish(StateChanged(session.session_id, state, previous, self.loop.time()))

    def _resolve_loop(self):
        if self.loop is None:
            self.loop = asyncio.get_running_loop()
        return self.loop
