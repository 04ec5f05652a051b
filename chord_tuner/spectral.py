"""
Spectrum helpers: bin/frequency conversion, dB spectrum computation and
sub-bin peak refinement.
"""

import math

import numpy as np
from scipy.signal import get_window

from .constants import FFT_SIZE, MIN_DECIBELS, SAMPLE_RATE


def bin_to_frequency(bin_index: float, sample_rate: int = SAMPLE_RATE, fft_size: int = FFT_SIZE) -> float:
    """Centre frequency of a (possibly fractional) bin in Hz."""
    return bin_index * sample_rate / fft_size


def frequency_to_bin(frequency: float, sample_rate: int = SAMPLE_RATE, fft_size: int = FFT_SIZE) -> float:
    """Fractional bin position of a frequency."""
    return frequency * fft_size / sample_rate


def refine_peak(
    spectrum: np.ndarray,
    bin_index: int,
    sample_rate: int = SAMPLE_RATE,
    fft_size: int = FFT_SIZE,
) -> float:
    """
    Refine a spectral peak to sub-bin accuracy.

    Fits a parabola through the log magnitudes of the bin and its neighbours
    (neighbours clamped to the bin itself at the spectrum edges).

    Args:
        spectrum: dB magnitudes
        bin_index: Candidate peak bin
        sample_rate: Sample rate in Hz
        fft_size: Analysis window size the spectrum was computed with

    Returns:
        Refined frequency in Hz
    """
    last = len(spectrum) - 1
    y2 = float(spectrum[bin_index])
    y1 = float(spectrum[bin_index - 1]) if bin_index > 0 else y2
    y3 = float(spectrum[bin_index + 1]) if bin_index < last else y2

    centre = bin_to_frequency(bin_index, sample_rate, fft_size)
    if y1 == y2 == y3:
        return centre
    if not (math.isfinite(y1) and math.isfinite(y2) and math.isfinite(y3)):
        return centre

    denom = y1 - 2 * y2 + y3
    if denom == 0:
        return centre

    p = 0.5 * (y1 - y3) / denom
    return bin_to_frequency(bin_index + p, sample_rate, fft_size)


def compute_spectrum(samples: np.ndarray, fft_size: int = FFT_SIZE) -> np.ndarray:
    """
    Compute a dB magnitude spectrum from time-domain samples.

    Uses the most recent fft_size samples (zero-padded at the start when the
    buffer is shorter), a Blackman window and 20*log10(|X| / N), the same
    scaling an analyser node reports.

    Returns:
        Array of fft_size // 2 dB values, floored at MIN_DECIBELS
    """
    x = np.asarray(samples, dtype=np.float64)
    if len(x) >= fft_size:
        x = x[-fft_size:]
    else:
        x = np.concatenate((np.zeros(fft_size - len(x)), x))

    window = get_window("blackman", fft_size)
    spectrum = np.fft.rfft(x * window)[: fft_size // 2]
    mags = np.abs(spectrum) / fft_size

    floor = 10.0 ** (MIN_DECIBELS / 20.0)
    return 20.0 * np.log10(np.maximum(mags, floor))
