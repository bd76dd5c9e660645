"""Immutable recorder settings.

Every tunable of the capture pipeline lives here as a named field with its
default. The defaults were tuned by ear on tablets in classrooms and living
rooms; a different microphone will probably need the threshold and range
values recalibrated.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RecorderSettings(BaseModel):
    """Validated, frozen configuration for one recorder instance."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Device / timing
    sample_rate: int = Field(16000, gt=0, description="Capture and WAV sample rate (Hz)")
    chunk_size: int = Field(1600, gt=0, description="Frames per device read")
    tick_interval_ms: int = Field(100, gt=0, description="Analysis tick period")
    calibration_duration_ms: int = Field(2000, gt=0, description="Noise-floor calibration window")
    max_duration_ms: int = Field(30000, gt=0, description="Unconditional stop after this long")
    silence_timeout_ms: int = Field(3000, gt=0, description="Stop after this much continuous silence")

    # Thresholds
    noise_margin: float = Field(2.0, ge=0)
    speech_threshold_factor: float = Field(1.15, gt=0)
    sustain_factor: float = Field(0.5, gt=0, le=1)

    # Noise baseline adaptation
    baseline_update_down: float = Field(0.03, gt=0, le=1)
    baseline_update_up: float = Field(0.001, gt=0, le=1)
    min_baseline: float = Field(18.0, ge=0)
    max_baseline: float = Field(50.0, ge=0)
    calibration_percentile: float = Field(25.0, ge=0, le=100)

    # Hangover
    hold_delay_ms: int = Field(1500, ge=0)

    # Speech range filter
    range_filter_enabled: bool = True
    speech_avg_alpha: float = Field(0.1, gt=0, le=1, description="EMA smoothing factor of the speech average")
    speech_range_tolerance: float = Field(50.0, gt=0)
    min_samples_for_range: int = Field(10, ge=0)
    speech_min_volume: float = Field(35.0, ge=0)

    # Signal conditioner
    highpass_hz: float = Field(80.0, gt=0)
    highpass_q: float = Field(0.7, gt=0)
    notch_hz: float = Field(50.0, gt=0)
    notch_q: float = Field(10.0, gt=0)
    lowpass_hz: float = Field(4000.0, gt=0)
    lowpass_q: float = Field(0.7, gt=0)
    fft_size: int = Field(256, ge=32)

    # Bypass mode
    test_mode: bool = False
    test_audio_path: str = "assets/test_mode/reference.wav"

    @model_validator(mode="after")
    def _check_consistency(self) -> "RecorderSettings":
        if self.min_baseline > self.max_baseline:
            raise ValueError(
                f"min_baseline ({self.min_baseline}) must not exceed max_baseline ({self.max_baseline})"
            )
        if self.calibration_duration_ms < self.tick_interval_ms:
            raise ValueError("calibration_duration_ms must cover at least one tick")
        nyquist = self.sample_rate / 2
        for name in ("highpass_hz", "notch_hz", "lowpass_hz"):
            if getattr(self, name) >= nyquist:
                raise ValueError(f"{name} must be below the Nyquist frequency ({nyquist} Hz)")
        if self.highpass_hz >= self.lowpass_hz:
            raise ValueError("highpass_hz must be below lowpass_hz")
        if self.fft_size & (self.fft_size - 1):
            raise ValueError(f"fft_size must be a power of two, got {self.fft_size}")
        return self

    @property
    def calibration_ticks(self) -> int:
        """Number of volume samples collected during calibration."""
        return -(-self.calibration_duration_ms // self.tick_interval_ms)

    @property
    def tick_interval_s(self) -> float:
        return self.tick_interval_ms / 1000.0

    def trigger_threshold(self, baseline: float) -> float:
        return baseline * self.speech_threshold_factor + self.noise_margin

    def with_overrides(self, **overrides) -> "RecorderSettings":
        """Return a validated copy with some fields replaced."""
        data = self.model_dump()
        data.update(overrides)
        return RecorderSettings(**data)
