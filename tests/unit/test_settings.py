"""Unit tests for RecorderSettings validation."""

import pytest
from pydantic import ValidationError

from readaloud.models.settings import RecorderSettings


@pytest.mark.unit
class TestRecorderSettings:
    """Test cases for RecorderSettings."""

    def test_defaults(self):
        settings = RecorderSettings()

        assert settings.sample_rate == 16000
        assert settings.tick_interval_ms == 100
        assert settings.calibration_duration_ms == 2000
        assert settings.calibration_ticks == 20
        assert settings.max_duration_ms == 30000
        assert settings.silence_timeout_ms == 3000
        assert settings.hold_delay_ms == 1500
        assert settings.min_baseline == 18
        assert settings.max_baseline == 50
        assert settings.test_mode is False

    def test_trigger_threshold(self):
        settings = RecorderSettings()

        assert settings.trigger_threshold(20.0) == pytest.approx(25.0)
        assert settings.tick_interval_s == pytest.approx(0.1)

    def test_calibration_ticks_round_up(self):
        assert RecorderSettings(calibration_duration_ms=250).calibration_ticks == 3

    def test_frozen(self):
        settings = RecorderSettings()

        with pytest.raises(ValidationError):
            settings.silence_timeout_ms = 1

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            RecorderSettings(silence_timeout=1000)

    def test_min_baseline_above_max_rejected(self):
        with pytest.raises(ValidationError, match="min_baseline"):
            RecorderSettings(min_baseline=60.0, max_baseline=50.0)

    def test_calibration_shorter_than_tick_rejected(self):
        with pytest.raises(ValidationError):
            RecorderSettings(calibration_duration_ms=50)

    @pytest.mark.parametrize("overrides", [
        {"lowpass_hz": 9000.0},
        {"highpass_hz": 5000.0},
        {"sample_rate": 8000, "lowpass_hz": 4000.0},
    ])
    def test_filter_frequencies_checked(self, overrides):
        with pytest.raises(ValidationError):
            RecorderSettings(**overrides)

    @pytest.mark.parametrize("overrides", [
        {"sample_rate": 0},
        {"tick_interval_ms": -100},
        {"sustain_factor": 1.5},
        {"baseline_update_down": 0.0},
        {"fft_size": 300},
    ])
    def test_out_of_range_values_rejected(self, overrides):
        with pytest.raises(ValidationError):
            RecorderSettings(**overrides)

    def test_with_overrides_returns_validated_copy(self):
        settings = RecorderSettings()

        updated = settings.with_overrides(test_mode=True, silence_timeout_ms=2000)

        assert updated.test_mode is True
        assert updated.silence_timeout_ms == 2000
        assert settings.test_mode is False
        with pytest.raises(ValidationError):
            settings.with_overrides(max_baseline=10.0)
