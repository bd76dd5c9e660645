"""Frequency-domain snapshots and volume readings of the conditioned signal."""

import logging
from typing import Callable, Iterator

import numpy as np

logger = logging.getLogger(__name__)


def rms_volume(bins: np.ndarray) -> float:
    """Root-mean-square of the magnitude bins (each 0..255)."""
    if bins.size == 0:
        return 0.0
    values = bins.astype(np.float64)
    return float(np.sqrt(np.mean(values * values)))


class FrequencyAnalyser:
    """Byte-scaled magnitude spectrum of the most recent ``fft_size`` samples.

    Mirrors a browser analyser node: Blackman window, temporal smoothing
    between snapshots, and the [min_db, max_db] range mapped onto 0..255.
    """

    def __init__(
        self,
        fft_size: int = 256,
        smoothing: float = 0.8,
        min_db: float = -100.0,
        max_db: float = -30.0,
    ):
        self.fft_size = fft_size
        self.smoothing = smoothing
        self.min_db = min_db
        self.max_db = max_db

        self.window = np.blackman(fft_size)
        self.samples = np.zeros(fft_size, dtype=np.float32)
        self.previous_magnitudes = np.zeros(self.bin_count)

    @property
    def bin_count(self) -> int:
        return self.fft_size // 2

    def push(self, samples: np.ndarray) -> None:
        """Append conditioned samples, keeping only the newest ``fft_size``."""
        if samples.size == 0:
            return
        if samples.size >= self.fft_size:
            self.samples = samples[-self.fft_size:].astype(np.float32)
        else:
            self.samples = np.concatenate([self.samples[samples.size:], samples]).astype(np.float32)

    def byte_frequency_data(self) -> np.ndarray:
        """Current spectrum as ``bin_count`` unsigned bytes."""
        spectrum = np.fft.rfft(self.samples * self.window)[:self.bin_count]
        magnitudes = np.abs(spectrum) / self.fft_size

        smoothed = self.smoothing * self.previous_magnitudes + (1 - self.smoothing) * magnitudes
        self.previous_magnitudes = smoothed

        decibels = 20 * np.log10(np.maximum(smoothed, 1e-12))
        scaled = (decibels - self.min_db) * (255.0 / (self.max_db - self.min_db))
        return np.clip(np.floor(scaled), 0, 255).astype(np.uint8)

    def reset(self) -> None:
        self.samples = np.zeros(self.fft_size, dtype=np.float32)
        self.previous_magnitudes = np.zeros(self.bin_count)


class VolumeSampler:
    """Produces one RMS energy reading per tick while a session is active."""

    def __init__(self, analyser: FrequencyAnalyser, is_active: Callable[[], bool]):
        """Initialize volume sampler.

        Args:
            analyser: Source of frequency snapshots
            is_active: Returns False once the session stops listening
        """
        self.analyser = analyser
        self.is_active = is_active

    def read(self) -> float:
        return rms_volume(self.analyser.byte_frequency_data())

    def readings(self) -> Iterator[float]:
        """Lazy stream of readings; each call starts a fresh stream."""
        while self.is_active():
            yield self.read()
