"""Signal conditioner applied to the analysis path.

Three biquads run in series: high-pass (rumble), notch (mains hum) and
low-pass (hiss). Filtered audio is only used for measuring volume; the clip
that gets encoded for scoring is the unfiltered capture.
"""

import logging
from typing import Tuple

import numpy as np
from scipy import signal as scipy_signal

from ..models.settings import RecorderSettings

logger = logging.getLogger(__name__)


def design_highpass(cutoff_hz: float, q: float, sample_rate: int) -> Tuple[np.ndarray, np.ndarray]:
    """RBJ cookbook high-pass biquad.

    Returns:
        Tuple of normalized (b, a) coefficients
    """
    w0 = 2 * np.pi * cutoff_hz / sample_rate
    alpha = np.sin(w0) / (2 * q)
    cos_w0 = np.cos(w0)

    b = np.array([(1 + cos_w0) / 2, -(1 + cos_w0), (1 + cos_w0) / 2])
    a = np.array([1 + alpha, -2 * cos_w0, 1 - alpha])
    return b / a[0], a / a[0]


def design_lowpass(cutoff_hz: float, q: float, sample_rate: int) -> Tuple[np.ndarray, np.ndarray]:
    """RBJ cookbook low-pass biquad.

    Returns:
        Tuple of normalized (b, a) coefficients
    """
    w0 = 2 * np.pi * cutoff_hz / sample_rate
    alpha = np.sin(w0) / (2 * q)
    cos_w0 = np.cos(w0)

    b = np.array([(1 - cos_w0) / 2, 1 - cos_w0, (1 - cos_w0) / 2])
    a = np.array([1 + alpha, -2 * cos_w0, 1 - alpha])
    return b / a[0], a / a[0]


def design_notch(center_hz: float, q: float, sample_rate: int) -> Tuple[np.ndarray, np.ndarray]:
    """Narrow band-reject biquad centred on ``center_hz``."""
    return scipy_signal.iirnotch(center_hz, q, fs=sample_rate)


class SignalConditioner:
    """Fixed high-pass -> notch -> low-pass chain with state kept across chunks."""

    def __init__(self, settings: RecorderSettings):
        """Initialize the filter chain.

        Args:
            settings: Recorder settings providing cutoffs, Q values and sample rate
        """
        self.sample_rate = settings.sample_rate

        stages = [
            design_highpass(settings.highpass_hz, settings.highpass_q, self.sample_rate),
            design_notch(settings.notch_hz, settings.notch_q, self.sample_rate),
            design_lowpass(settings.lowpass_hz, settings.lowpass_q, self.sample_rate),
        ]
        # One second-order section per stage, in chain order
        self.sos = np.vstack([np.hstack([b, a]) for b, a in stages])
        self.zi = np.zeros((self.sos.shape[0], 2))

        logger.debug(
            f"SignalConditioner initialized: highpass={settings.highpass_hz:.0f}Hz, "
            f"notch={settings.notch_hz:.0f}Hz (Q={settings.notch_q}), "
            f"lowpass={settings.lowpass_hz:.0f}Hz @ {self.sample_rate}Hz"
        )

    def process(self, samples: np.ndarray) -> np.ndarray:
        """Filter a block of float samples, continuing from the previous block.

        Args:
            samples: Mono float samples in [-1, 1]

        Returns:
            Filtered samples (float32), same length as the input
        """
        if samples.size == 0:
            return samples.astype(np.float32)

        output, self.zi = scipy_signal.sosfilt(self.sos, samples, zi=self.zi)
        return output.astype(np.float32)

    def reset(self) -> None:
        """Forget filter history."""
        self.zi = np.zeros((self.sos.shape[0], 2))
