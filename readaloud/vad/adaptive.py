"""Adaptive energy-based voice activity detection.

The detector works on one volume reading per tick. A calibration window
seeds the noise baseline from the quiet end of the readings; afterwards
each tick is classified against a trigger threshold (entering speech) or
a lower sustain threshold (staying in speech), filtered against the range
of volumes seen so far for this speaker, and smoothed by a hangover timer.
While the detector reports silence the baseline follows the ambient level,
quickly downwards and very slowly upwards.
"""

import logging
import math
from dataclasses import dataclass
from typing import List

from ..models.settings import RecorderSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VADDecision:
    """Outcome of classifying one reading."""
    volume: float
    is_speech_active: bool
    raw_speech: bool
    valid_speech: bool
    in_range: bool
    baseline: float
    trigger_threshold: float
    sustain_threshold: float


class SpeechRangeAverage:
    """Running average of speech volume, used to reject bursts like coughs or bumps."""

    def __init__(self):
        self.average = 0.0
        self.sample_count = 0

    def is_ready(self, min_samples: int) -> bool:
        return self.sample_count >= min_samples

    def bounds(self, tolerance: float):
        return self.average - tolerance, self.average + tolerance

    def contains(self, volume: float, tolerance: float) -> bool:
        lower, upper = self.bounds(tolerance)
        return lower <= volume <= upper

    def update(self, volume: float, alpha: float) -> None:
        self.sample_count += 1
        if self.sample_count == 1:
            self.average = volume
        else:
            self.average = self.average * (1 - alpha) + volume * alpha

    def reset(self) -> None:
        self.average = 0.0
        self.sample_count = 0


class AdaptiveVAD:
    """Noise-floor tracking speech/silence classifier with hysteresis and hangover."""

    def __init__(self, settings: RecorderSettings):
        """Initialize the detector.

        Args:
            settings: Thresholds, rates and bounds for this recorder
        """
        self.settings = settings
        self.speech_range = SpeechRangeAverage()
        self.reset()

    def reset(self) -> None:
        """Forget everything learned in the previous session."""
        self.baseline = 0.0
        self.is_calibrated = False
        self.calibration_samples: List[float] = []
        self.is_speech_active = False
        self.hold_remaining_ms = 0
        self.consecutive_silent_frames = 0
        self.speech_range.reset()

    # ----- calibration -----

    def add_calibration_sample(self, volume: float) -> None:
        self.calibration_samples.append(volume)

    @property
    def calibration_complete(self) -> bool:
        return len(self.calibration_samples) >= self.settings.calibration_ticks

    def finish_calibration(self) -> float:
        """Seed the baseline from the collected samples.

        Uses a low percentile rather than the median so that a child who
        starts talking early does not inflate the noise estimate. The
        result is capped at ``max_baseline``.

        Returns:
            The initial baseline
        """
        cfg = self.settings
        if self.calibration_samples:
            ordered = sorted(self.calibration_samples)
            index = min(int(math.floor(len(ordered) * cfg.calibration_percentile / 100.0)), len(ordered) - 1)
            percentile_value = ordered[index]
        else:
            logger.warning("Calibration finished without samples, using minimum baseline")
            percentile_value = cfg.min_baseline

        self.baseline = min(percentile_value, cfg.max_baseline)
        self.is_calibrated = True
        self.consecutive_silent_frames = 0

        logger.info("Adaptive VAD initialized")
        logger.info(f"  - {cfg.calibration_percentile:.0f}th percentile noise: {percentile_value:.2f} "
                    f"({len(self.calibration_samples)} samples)")
        logger.info(f"  - Clamped baseline: {self.baseline:.2f} (max: {cfg.max_baseline})")
        logger.info(f"  - Trigger threshold: {cfg.trigger_threshold(self.baseline):.2f}")
        return self.baseline

    # ----- steady state -----

    def classify(self, volume: float) -> VADDecision:
        """Classify one reading and update detector state."""
        cfg = self.settings

        trigger_threshold = cfg.trigger_threshold(self.baseline)
        sustain_threshold = trigger_threshold * cfg.sustain_factor
        active_threshold = sustain_threshold if self.is_speech_active else trigger_threshold
        raw_speech = volume > active_threshold

        in_range = True
        if cfg.range_filter_enabled and raw_speech:
            bootstrapped = self.speech_range.is_ready(cfg.min_samples_for_range)
            if bootstrapped:
                in_range = self.speech_range.contains(volume, cfg.speech_range_tolerance)
                if not in_range:
                    lower, upper = self.speech_range.bounds(cfg.speech_range_tolerance)
                    logger.debug(f"Range filter: vol={volume:.1f} outside [{lower:.1f}, {upper:.1f}] "
                                 f"avg={self.speech_range.average:.1f}")

            # Quiet frames would drag the average towards the noise floor
            if volume > cfg.speech_min_volume and (in_range or not bootstrapped):
                self.speech_range.update(volume, cfg.speech_avg_alpha)

        valid_speech = raw_speech and in_range

        if self.consecutive_silent_frames % 10 == 0:
            logger.debug(f"VAD: vol={volume:.1f} | baseline={self.baseline:.1f} | "
                         f"trigger={trigger_threshold:.1f} | sustain={sustain_threshold:.1f} | "
                         f"active={self.is_speech_active} | valid={valid_speech} | "
                         f"avg={self.speech_range.average:.1f}")

        # Hangover
        if valid_speech:
            self.is_speech_active = True
            self.hold_remaining_ms = cfg.hold_delay_ms
            self.consecutive_silent_frames = 0
        elif self.hold_remaining_ms > 0:
            self.is_speech_active = True
            self.hold_remaining_ms = max(0, self.hold_remaining_ms - cfg.tick_interval_ms)
        else:
            self.is_speech_active = False
            self.consecutive_silent_frames += 1

        if not self.is_speech_active:
            self._adapt_baseline(volume)

        return VADDecision(
            volume=volume,
            is_speech_active=self.is_speech_active,
            raw_speech=raw_speech,
            valid_speech=valid_speech,
            in_range=in_range,
            baseline=self.baseline,
            trigger_threshold=trigger_threshold,
            sustain_threshold=sustain_threshold,
        )

    def _adapt_baseline(self, volume: float) -> None:
        cfg = self.settings
        rate = cfg.baseline_update_down if volume < self.baseline else cfg.baseline_update_up
        updated = self.baseline * (1 - rate) + volume * rate
        self.baseline = max(cfg.min_baseline, min(cfg.max_baseline, updated))
