"""Pytest configuration and fixtures for ReadAloud tests."""

import heapq
import logging
import tempfile
import wave
from pathlib import Path

import numpy as np
import pytest
from unittest.mock import Mock, patch
from pubsub import pub

from readaloud.models.events import RecordingCompleted, RecordingFailed, StateChanged, VolumeSample
from readaloud.models.settings import RecorderSettings


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without real audio hardware")
    config.addinivalue_line("markers", "integration: tests wiring several components together")


class FakeHandle:
    """Cancellable handle returned by FakeLoop scheduling calls."""

    def __init__(self, when_ms, callback, args):
        self.when_ms = when_ms
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeLoop:
    """Deterministic virtual-time event loop.

    Time is kept in whole milliseconds and only moves through ``advance``.
    Callbacks due at the same instant run in scheduling order.
    """

    def __init__(self):
        self.now_ms = 0
        self._queue = []
        self._seq = 0

    def time(self):
        return self.now_ms / 1000.0

    def call_later(self, delay, callback, *args):
        handle = FakeHandle(self.now_ms + int(round(delay * 1000)), callback, args)
        heapq.heappush(self._queue, (handle.when_ms, self._seq, handle))
        self._seq += 1
        return handle

    def call_soon(self, callback, *args):
        return self.call_later(0, callback, *args)

    def call_soon_threadsafe(self, callback, *args):
        return self.call_soon(callback, *args)

    def run_pending(self):
        """Run everything due now, including callbacks scheduled while running."""
        self._run_until(self.now_ms)

    def advance(self, seconds):
        self._run_until(self.now_ms + int(round(seconds * 1000)))

    def _run_until(self, target_ms):
        while self._queue and self._queue[0][0] <= target_ms:
            when_ms, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self.now_ms = when_ms
            handle.callback(*handle.args)
        self.now_ms = target_ms

    @property
    def pending(self):
        return [h for _, _, h in self._queue if not h.cancelled]


class FakeMicrophone:
    """Stands in for MicrophoneCapture; tests push chunks and errors by hand."""

    def __init__(self, fail_with=None):
        self.fail_with = fail_with
        self.is_recording = False
        self.open_calls = 0
        self.close_calls = 0
        self.chunk_callback = None
        self.error_callback = None

    def open(self, chunk_callback, error_callback=None):
        self.open_calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        self.chunk_callback = chunk_callback
        self.error_callback = error_callback
        self.is_recording = True

    def close(self):
        self.close_calls += 1
        self.is_recording = False

    def emit(self, audio_chunk):
        self.chunk_callback(audio_chunk)

    def fail(self, error):
        self.error_callback(error)


class ScriptedSampler:
    """Yields scripted volumes, then a fallback, while the session listens."""

    def __init__(self, session, volumes, fallback):
        self.session = session
        self.volumes = list(volumes)
        self.fallback = fallback

    def readings(self):
        for volume in self.volumes:
            if not self.session.is_listening:
                return
            yield volume
        while self.session.is_listening:
            yield self.fallback


class EventLog:
    """Collects every recorder event published under a topic prefix."""

    def __init__(self, prefix="recorder"):
        self.events = []
        for suffix in ("state", "volume", "completed", "failed"):
            pub.subscribe(self._on_event, f"{prefix}.{suffix}")

    def _on_event(self, event):
        self.events.append(event)

    def of_type(self, event_type):
        return [e for e in self.events if isinstance(e, event_type)]

    @property
    def states(self):
        return [e.state for e in self.of_type(StateChanged)]

    @property
    def volumes(self):
        return self.of_type(VolumeSample)

    @property
    def completed(self):
        return self.of_type(RecordingCompleted)

    @property
    def failed(self):
        return self.of_type(RecordingFailed)


@pytest.fixture(autouse=True)
def clean_pubsub():
    """Remove all pubsub listeners after each test."""
    yield
    pub.unsubAll()


@pytest.fixture
def fake_loop():
    return FakeLoop()


@pytest.fixture
def fake_microphone():
    return FakeMicrophone()


@pytest.fixture
def event_log():
    return EventLog()


@pytest.fixture
def settings():
    return RecorderSettings()


@pytest.fixture
def scripted_sampler():
    """Build a sampler factory: ``scripted_sampler([20.0] * 20, fallback=10.0)``."""
    def factory(volumes, fallback=0.0):
        return lambda session: ScriptedSampler(session, volumes, fallback)
    return factory


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def silent_chunk():
    """100 ms of 16 kHz silence as PCM16 bytes."""
    return b'\x00\x00' * 1600


@pytest.fixture
def tone():
    """Generate a float sine tone: ``tone(freq_hz, seconds, amplitude=0.5, sample_rate=16000)``."""
    def generate(freq_hz, seconds, amplitude=0.5, sample_rate=16000):
        t = np.arange(int(seconds * sample_rate)) / sample_rate
        return (amplitude * np.sin(2 * np.pi * freq_hz * t)).astype(np.float32)
    return generate


@pytest.fixture
def to_pcm16():
    """Convert float samples in [-1, 1] to PCM16 bytes."""
    def convert(samples):
        return (np.clip(samples, -1, 1) * 32767).astype('<i2').tobytes()
    return convert


@pytest.fixture
def sample_audio_file(temp_data_dir):
    """Create a one second 440 Hz WAV file for bypass-mode tests."""
    file_path = Path(temp_data_dir) / "reference.wav"
    t = np.arange(16000) / 16000
    samples = (0.3 * np.sin(2 * np.pi * 440 * t) * 32767).astype('<i2')

    with wave.open(str(file_path), 'wb') as wf:
        wf.setnchannels(1)  # Mono
        wf.setsampwidth(2)  # 16-bit
        wf.setframerate(16000)
        wf.writeframes(samples.tobytes())

    return str(file_path)


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        mock_stream.read.return_value = b'\x00' * 3200  # Silent audio
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def config_file(temp_data_dir, sample_audio_file):
    """Write a small readaloud.yaml and return its path."""
    config_path = Path(temp_data_dir) / "readaloud.yaml"
    config_path.write_text(
        "recorder:\n"
        "  silence_timeout_ms: 2500\n"
        "  test_audio_path: reference.wav\n"
        "lines:\n"
        "  max_record_time_ms: 4000\n"
        "  test_audio_files:\n"
        "    - reference.wav\n"
        "    - missing.wav\n"
        "  keywords:\n"
        "    - Twinkle twinkle little star\n"
        "    - How I wonder what you are\n"
        "storage:\n"
        "  data_directory: data\n"
        "logging:\n"
        "  file_path: data/logs/readaloud.log\n"
    )
    return str(config_path)


@pytest.fixture
def microphone_factory():
    """FakeMicrophone class, for tests that need a failing or second device."""
    return FakeMicrophone
