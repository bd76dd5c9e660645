"""Microphone capture on top of PyAudio."""

import logging
from threading import Thread, Event
from typing import Optional, Callable
from datetime import datetime

import pyaudio

from ..models.audio import AudioStats

logger = logging.getLogger(__name__)


class DeviceUnavailableError(RuntimeError):
    """The microphone could not be opened (missing, busy or permission denied)."""


class MicrophoneCapture:
    """Mono 16-bit microphone stream read on a background thread.

    Only one consumer may own the device at a time: ``open`` fails while the
    stream is already open, and ``close`` returns only once the stream and
    the PyAudio instance have been released.
    """

    def __init__(
        self,
        sample_rate: int = 16000,
        chunk_size: int = 1600,
        channels: int = 1,
        format: int = pyaudio.paInt16,
        input_device_index: Optional[int] = None,
    ):
        """Initialize microphone capture with specified parameters.

        Args:
            sample_rate: Audio sample rate (16kHz for speech scoring)
            chunk_size: Size of each audio chunk in samples
            channels: Number of audio channels (1 for mono)
            format: Audio format (16-bit signed int)
            input_device_index: PyAudio device index, None for the default input
        """
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.format = format
        self.input_device_index = input_device_index

        # Reader thread management
        self.recording_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.is_recording = False

        # Statistics tracking
        self.start_time: Optional[datetime] = None
        self.total_chunks = 0

        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.stream = None

        self._chunk_callback: Optional[Callable[[bytes], None]] = None
        self._error_callback: Optional[Callable[[Exception], None]] = None

    def open(
        self,
        chunk_callback: Callable[[bytes], None],
        error_callback: Optional[Callable[[Exception], None]] = None,
    ) -> None:
        """Open the input stream and start delivering chunks.

        Callbacks run on the reader thread; callers that keep state on an
        event loop must marshal them across themselves.

        Raises:
            DeviceUnavailableError: if the device is already in use or cannot be opened
        """
        if self.is_recording:
            raise DeviceUnavailableError("Microphone is already in use by another session")

        self._chunk_callback = chunk_callback
        self._error_callback = error_callback
        self.stop_event.clear()
        self.total_chunks = 0

        try:
            self.stream = self.__open_audio_stream()
        except (OSError, IOError, ValueError) as e:
            self.__release_device()
            logger.error(f"Failed to open microphone: {e}")
            raise DeviceUnavailableError(str(e)) from e

        self.start_time = datetime.now()
        self.recording_thread = Thread(target=self._record_continuously, daemon=True)
        self.recording_thread.name = "MicrophoneCaptureThread"
        self.is_recording = True
        self.recording_thread.start()
        logger.info("Microphone capture started")

    def close(self) -> None:
        """Stop the reader thread and release the device.

        Blocks until the reader finishes its current ``stream.read``, which
        is bounded by one chunk of audio.
        """
        if not self.is_recording:
            self.__release_device()
            return

        logger.info("Stopping microphone capture")
        self.stop_event.set()

        if self.recording_thread and self.recording_thread.is_alive():
            self.recording_thread.join(timeout=2.0)
            if self.recording_thread.is_alive():
                logger.warning("Capture thread did not stop cleanly")

        self.__release_device()
        self.recording_thread = None
        self.is_recording = False
        self._chunk_callback = None
        self._error_callback = None
        logger.info(f"Microphone capture stopped. Total chunks: {self.total_chunks}")

    def __open_audio_stream(self):
        self.pyaudio_instance = pyaudio.PyAudio()
        # PyAudio exposes no echo-cancellation / AGC switches; the OS input
        # pipeline decides whether those run.
        stream = self.pyaudio_instance.open(
            format=self.format,
            channels=self.channels,
            rate=self.sample_rate,
            input=True,
            input_device_index=self.input_device_index,
            frames_per_buffer=self.chunk_size,
            stream_callback=None
        )
        logger.info(f"Audio stream opened: {self.sample_rate}Hz, "
                    f"{self.chunk_size} samples/chunk")
        return stream

    def __release_device(self) -> None:
        if self.stream is not None:
            try:
                self.stream.stop_stream()
                self.stream.close()
            except OSError as e:
                logger.warning(f"Error closing audio stream: {e}")
            self.stream = None
        if self.pyaudio_instance is not None:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None

    def _record_continuously(self) -> None:
        """Internal method: read loop on the background thread."""
        while not self.stop_event.is_set():
            try:
                audio_chunk = self.stream.read(self.chunk_size, exception_on_overflow=False)
            except (OSError, IOError) as e:
                if self.stop_event.is_set():
                    break
                logger.error(f"Microphone read failed: {e}")
                if self._error_callback:
                    self._error_callback(e)
                break

            self.total_chunks += 1
            if self._chunk_callback:
                self._chunk_callback(audio_chunk)

    def get_recording_stats(self) -> AudioStats:
        """Get current capture statistics."""
        duration = 0.0
        if self.start_time:
            duration = (datetime.now() - self.start_time).total_seconds()

        return AudioStats(
            is_recording=self.is_recording,
            duration_seconds=duration,
            sample_rate=self.sample_rate,
            chunk_size=self.chunk_size,
            total_chunks=self.total_chunks,
        )

    def __del__(self):
        """Ensure resources are cleaned up on deletion."""
        if self.is_recording:
            self.close()
