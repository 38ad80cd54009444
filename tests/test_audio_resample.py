"""Tests for the resample module."""

import numpy as np
import pytest

from speechgate.audio.gate import calculate_rms
from speechgate.audio.resample import resample
from speechgate.errors import InvalidRate


class TestResample:
    """Tests for resample function."""

    def test_same_rate_is_identity(self):
        """Test resampling R -> R returns identical bytes."""
        rng = np.random.default_rng(1)
        samples = rng.integers(-32768, 32767, size=4096, dtype=np.int16)

        result = resample(samples, 48000, 48000)

        assert result.tobytes() == samples.tobytes()

    def test_same_rate_returns_copy(self):
        """Test the identity path does not hand back the input buffer."""
        samples = np.arange(100, dtype=np.int16)

        result = resample(samples, 16000, 16000)
        result[0] = 999

        assert samples[0] == 0

    def test_does_not_mutate_input(self, tone):
        """Test the input is left untouched."""
        samples = tone(sample_rate=48000, duration=0.1)
        original = samples.copy()

        resample(samples, 48000, 16000)

        np.testing.assert_array_equal(samples, original)

    def test_downsample_length(self, tone):
        """Test output length follows the rate ratio."""
        samples = tone(sample_rate=48000, duration=1.0)

        result = resample(samples, 48000, 16000)

        assert len(result) == 16000
        assert result.dtype == np.int16

    def test_non_integer_ratio(self, tone):
        """Test 44.1kHz device audio reaches 16kHz."""
        samples = tone(sample_rate=44100, duration=1.0)

        result = resample(samples, 44100.0, 16000)

        assert len(result) == 16000

    def test_tone_energy_preserved(self, tone):
        """Test a 440Hz tone keeps its loudness when resampled 48k -> 16k."""
        amplitude = 10000
        samples = tone(frequency=440.0, sample_rate=48000, duration=1.0, amplitude=amplitude)

        result = resample(samples, 48000, 16000)

        assert calculate_rms(result) == pytest.approx(amplitude / np.sqrt(2), rel=0.05)

    def test_upsample_energy_preserved(self, tone):
        """Test upsampling keeps loudness too."""
        samples = tone(frequency=440.0, sample_rate=8000, duration=1.0)

        result = resample(samples, 8000, 16000)

        assert len(result) == 16000
        assert calculate_rms(result) == pytest.approx(10000 / np.sqrt(2), rel=0.05)

    def test_deterministic(self, tone):
        """Test repeated calls give the same output."""
        samples = tone(sample_rate=48000, duration=0.2)

        first = resample(samples, 48000, 16000)
        second = resample(samples, 48000, 16000)

        np.testing.assert_array_equal(first, second)

    def test_empty_input(self):
        """Test empty input resamples to empty output."""
        result = resample(np.array([], dtype=np.int16), 48000, 16000)

        assert len(result) == 0

    def test_full_scale_is_clipped(self):
        """Test filter overshoot is clipped to the int16 range."""
        samples = np.tile(np.array([32767, -32768], dtype=np.int16), 2000)

        result = resample(samples, 48000, 16000)

        assert result.dtype == np.int16

    @pytest.mark.parametrize("source,target", [(0, 16000), (48000, 0), (-44100, 16000), (48000, -1)])
    def test_invalid_rate(self, source, target):
        """Test non-positive rates raise InvalidRate."""
        with pytest.raises(InvalidRate):
            resample(np.zeros(10, dtype=np.int16), source, target)

    def test_invalid_rate_is_value_error(self):
        """Test InvalidRate can be caught as ValueError."""
        with pytest.raises(ValueError):
            resample(np.zeros(10, dtype=np.int16), 0, 0)
