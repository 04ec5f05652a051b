"""Tests for spectrum computation and sub-bin peak refinement."""

import math

import numpy as np
import pytest

from chord_tuner import FFT_SIZE, SAMPLE_RATE
from chord_tuner.constants import MIN_DECIBELS
from chord_tuner.spectral import (
    bin_to_frequency,
    compute_spectrum,
    frequency_to_bin,
    refine_peak,
)

BIN_COUNT = FFT_SIZE // 2


def inject_peak(spectrum: np.ndarray, frequency: float) -> int:
    """
    Write a three-bin peak whose parabolic vertex is exactly at frequency.

    Returns:
        The peak bin index
    """
    exact_bin = frequency * FFT_SIZE / SAMPLE_RATE
    best_bin = int(round(exact_bin))
    p = exact_bin - best_bin
    spectrum[best_bin - 1] = -50 - 60 * p - 30 * p * p
    spectrum[best_bin] = -30 * p * p - 20
    spectrum[best_bin + 1] = -50 + 60 * p - 30 * p * p
    return best_bin


class TestBinConversion:

    def test_round_trip(self):
        assert bin_to_frequency(frequency_to_bin(440.0)) == pytest.approx(440.0)

    def test_bin_spacing(self):
        assert bin_to_frequency(1) == pytest.approx(SAMPLE_RATE / FFT_SIZE)


class TestRefinePeak:
    """Parabolic interpolation on dB magnitudes."""

    def test_flat_returns_bin_centre(self):
        spectrum = np.full(BIN_COUNT, -60.0)
        assert refine_peak(spectrum, 100) == pytest.approx(bin_to_frequency(100))

    def test_symmetric_neighbours_return_bin_centre(self):
        spectrum = np.full(BIN_COUNT, -100.0)
        spectrum[99:102] = [-40.0, -30.0, -40.0]
        assert refine_peak(spectrum, 100) == pytest.approx(bin_to_frequency(100))

    @pytest.mark.parametrize("frequency", [82.41, 110.0, 146.83, 329.63, 1000.0])
    def test_recovers_injected_vertex(self, frequency):
        spectrum = np.full(BIN_COUNT, -100.0)
        best_bin = inject_peak(spectrum, frequency)
        assert refine_peak(spectrum, best_bin) == pytest.approx(frequency, abs=1e-6)

    def test_lower_edge_clamped(self):
        """At bin 0 the missing neighbour is replaced by the bin itself."""
        spectrum = np.full(BIN_COUNT, -100.0)
        spectrum[0] = -20.0
        spectrum[1] = -40.0
        # y1 = y2 = -20, y3 = -40: p = 0.5 * 20 / -20 = -0.5
        assert refine_peak(spectrum, 0) == pytest.approx(bin_to_frequency(-0.5))

    def test_upper_edge_clamped(self):
        spectrum = np.full(BIN_COUNT, -100.0)
        spectrum[-1] = -20.0
        spectrum[-2] = -40.0
        last = BIN_COUNT - 1
        assert refine_peak(spectrum, last) == pytest.approx(bin_to_frequency(last + 0.5))

    def test_non_finite_neighbour_returns_centre(self):
        spectrum = np.full(BIN_COUNT, -100.0)
        spectrum[50] = -30.0
        spectrum[49] = -math.inf
        assert refine_peak(spectrum, 50) == pytest.approx(bin_to_frequency(50))

    def test_custom_rate_and_size(self):
        spectrum = np.full(512, -100.0)
        spectrum[10] = -30.0
        assert refine_peak(spectrum, 10, 48000, 1024) == pytest.approx(10 * 48000 / 1024)


class TestComputeSpectrum:
    """dB spectrum from time-domain samples."""

    def generate_sine_wave(self, frequency: float, n: int = FFT_SIZE, amplitude: float = 0.5):
        t = np.arange(n) / SAMPLE_RATE
        return amplitude * np.sin(2 * np.pi * frequency * t)

    def test_length(self):
        assert len(compute_spectrum(np.zeros(FFT_SIZE))) == BIN_COUNT

    def test_silence_is_floored(self):
        spectrum = compute_spectrum(np.zeros(FFT_SIZE))
        np.testing.assert_allclose(spectrum, MIN_DECIBELS)

    def test_sine_peak_location(self):
        spectrum = compute_spectrum(self.generate_sine_wave(1000.0))
        best_bin = int(np.argmax(spectrum))
        assert abs(bin_to_frequency(best_bin) - 1000.0) < SAMPLE_RATE / FFT_SIZE
        assert abs(refine_peak(spectrum, best_bin) - 1000.0) < 1.5

    def test_sine_level(self):
        """A 0.5 amplitude sine peaks around -20 dB with a Blackman window."""
        spectrum = compute_spectrum(self.generate_sine_wave(1000.0))
        assert -26.0 < np.max(spectrum) < -18.0

    def test_short_buffer_is_padded(self):
        spectrum = compute_spectrum(self.generate_sine_wave(440.0, 2048))
        assert len(spectrum) == BIN_COUNT
        assert np.max(spectrum) > -60.0

    def test_uses_most_recent_samples(self):
        """Only the last fft_size samples are analysed."""
        older = self.generate_sine_wave(440.0, FFT_SIZE)
        recent = np.zeros(FFT_SIZE)
        spectrum = compute_spectrum(np.concatenate((older, recent)))
        np.testing.assert_allclose(spectrum, MIN_DECIBELS)
