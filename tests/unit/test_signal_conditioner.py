"""Unit tests for the analysis-path filter chain."""

import numpy as np
import pytest

from readaloud.audio.filters import SignalConditioner, design_highpass, design_lowpass, design_notch
from readaloud.models.settings import RecorderSettings


def steady_state_gain(conditioner, samples, settle_seconds=0.5, sample_rate=16000):
    output = conditioner.process(samples)
    skip = int(settle_seconds * sample_rate)
    return np.sqrt(np.mean(output[skip:] ** 2)) / np.sqrt(np.mean(samples[skip:] ** 2))


@pytest.mark.unit
class TestSignalConditioner:
    """Test cases for SignalConditioner."""

    def test_chain_has_three_sections(self, settings):
        conditioner = SignalConditioner(settings)

        assert conditioner.sos.shape == (3, 6)
        assert conditioner.zi.shape == (3, 2)
        np.testing.assert_allclose(conditioner.sos[:, 3], 1.0)

    def test_mains_hum_removed(self, settings, tone):
        gain = steady_state_gain(SignalConditioner(settings), tone(50, 2.0))

        assert gain < 0.05

    def test_rumble_attenuated(self, settings, tone):
        gain = steady_state_gain(SignalConditioner(settings), tone(20, 2.0))

        assert gain < 0.1

    def test_hiss_attenuated(self, settings, tone):
        gain = steady_state_gain(SignalConditioner(settings), tone(7000, 2.0))

        assert gain < 0.4

    @pytest.mark.parametrize("freq_hz", [300, 1000, 2500])
    def test_speech_band_preserved(self, settings, tone, freq_hz):
        gain = steady_state_gain(SignalConditioner(settings), tone(freq_hz, 2.0))

        assert gain > 0.8

    def test_state_carried_across_chunks(self, settings, tone):
        samples = tone(440, 1.0) + tone(60, 1.0, amplitude=0.2)

        whole = SignalConditioner(settings).process(samples)

        chunked_conditioner = SignalConditioner(settings)
        chunked = np.concatenate([
            chunked_conditioner.process(samples[i:i + 1600])
            for i in range(0, samples.size, 1600)
        ])

        np.testing.assert_allclose(chunked, whole, atol=1e-5)

    def test_reset_forgets_history(self, settings, tone):
        samples = tone(440, 0.1)
        conditioner = SignalConditioner(settings)
        first = conditioner.process(samples)
        conditioner.process(samples)

        conditioner.reset()

        np.testing.assert_allclose(conditioner.process(samples), first, atol=1e-6)

    def test_empty_block(self, settings):
        output = SignalConditioner(settings).process(np.zeros(0, dtype=np.float32))

        assert output.size == 0
        assert output.dtype == np.float32

    def test_cutoffs_follow_settings(self, tone):
        settings = RecorderSettings(highpass_hz=300.0)

        gain = steady_state_gain(SignalConditioner(settings), tone(100, 2.0))

        assert gain < 0.2


@pytest.mark.unit
class TestBiquadDesign:

    def test_highpass_blocks_dc(self):
        b, a = design_highpass(80.0, 0.7, 16000)

        assert np.sum(b) / np.sum(a) == pytest.approx(0.0, abs=1e-9)

    def test_lowpass_passes_dc(self):
        b, a = design_lowpass(4000.0, 0.7, 16000)

        assert np.sum(b) / np.sum(a) == pytest.approx(1.0)

    def test_notch_normalized(self):
        b, a = design_notch(50.0, 10.0, 16000)

        assert a[0] == pytest.approx(1.0)
        assert np.sum(b) / np.sum(a) == pytest.approx(1.0)
