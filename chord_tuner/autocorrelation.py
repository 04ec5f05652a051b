"""
Autocorrelation pitch estimation using the Square Difference Function (SDF).

The SDF measures how different the signal is from a copy of itself shifted by
a candidate lag (period). The fundamental period shows up as a deep valley.
Taking the first valley that is clearly below the short-lag level, rather than
the global minimum, keeps the estimator from locking onto a multiple of the
period (an octave below the played note).

Two parameterizations have been used for guitar input:

    WIDE_RANGE    40-1200 Hz, SDF window 0.5 x buffer length (default)
    GUITAR_RANGE  70-1100 Hz, SDF window 0.4 x buffer length

Both are provided as presets.
"""

import logging
import math
from dataclasses import dataclass

import numpy as np
from scipy.signal import correlate

from .constants import RMS_THRESHOLD, VALLEY_THRESHOLD

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AutocorrelationConfig:
    """Tunable parameters of the SDF pitch estimator."""

    min_frequency: float = 40.0  # Hz, sets the longest lag searched
    max_frequency: float = 1200.0  # Hz, sets the shortest lag searched
    window_fraction: float = 0.5  # SDF summation window as a fraction of the buffer
    rms_threshold: float = RMS_THRESHOLD
    valley_threshold: float = VALLEY_THRESHOLD

    def __post_init__(self):
        if self.min_frequency <= 0 or self.max_frequency <= self.min_frequency:
            raise ValueError(
                f"Invalid frequency range: {self.min_frequency}-{self.max_frequency} Hz"
            )
        if not 0.0 < self.window_fraction < 1.0:
            raise ValueError(f"window_fraction must be in (0, 1), got {self.window_fraction}")
        if self.rms_threshold < 0:
            raise ValueError(f"rms_threshold must be >= 0, got {self.rms_threshold}")

    def lag_range(self, sample_rate: int) -> tuple[int, int]:
        """Return (min_lag, max_lag) in samples for a sample rate."""
        return (
            int(math.floor(sample_rate / self.max_frequency)),
            int(math.floor(sample_rate / self.min_frequency)),
        )


WIDE_RANGE = AutocorrelationConfig()
GUITAR_RANGE = AutocorrelationConfig(
    min_frequency=70.0,
    max_frequency=1100.0,
    window_fraction=0.4,
)


def rms(buffer: np.ndarray) -> float:
    """Root mean square level of a buffer."""
    if len(buffer) == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(buffer, dtype=np.float64))))


def square_difference(buffer: np.ndarray, max_lag: int, window: int) -> np.ndarray:
    """
    Compute the Square Difference Function for lags 0..max_lag.

    diff[lag] = sum((x[i] - x[i + lag])^2) for i in [0, window)

    Expanded as sum(x[i]^2) + sum(x[i + lag]^2) - 2 * sum(x[i] * x[i + lag]),
    with the cross term from an FFT correlation.

    Args:
        buffer: Time-domain samples, len(buffer) >= window + max_lag
        max_lag: Largest lag to evaluate
        window: Number of samples summed per lag

    Returns:
        Array of length max_lag + 1
    """
    x = np.asarray(buffer, dtype=np.float64)
    head = x[:window]
    span = x[: window + max_lag]

    cross = correlate(span, head, mode="valid", method="fft")

    squares = np.square(span)
    cumulative = np.concatenate(([0.0], np.cumsum(squares)))
    lags = np.arange(max_lag + 1)
    shifted_energy = cumulative[lags + window] - cumulative[lags]
    head_energy = cumulative[window]

    diff = head_energy + shifted_energy - 2.0 * cross
    # FFT rounding can leave tiny negative values at perfect matches
    return np.maximum(diff, 0.0)


def find_valley(diff: np.ndarray, min_lag: int, max_lag: int, threshold: float) -> int | None:
    """
    Pick the period lag from an SDF.

    Returns the first lag that is below threshold * diff[min_lag] and a strict
    local minimum, or the global minimum over [min_lag, max_lag] when no such
    lag exists.
    """
    cutoff = threshold * diff[min_lag]
    best_lag = None
    min_diff = math.inf

    for lag in range(min_lag, max_lag + 1):
        value = diff[lag]
        if value < min_diff:
            min_diff = value
            best_lag = lag
        if (
            lag > min_lag
            and lag < max_lag
            and value < cutoff
            and value < diff[lag - 1]
            and value < diff[lag + 1]
        ):
            return lag

    return best_lag


def parabolic_lag(diff: np.ndarray, lag: int, max_lag: int) -> float:
    """Refine a lag to sub-sample accuracy from its two neighbours."""
    if lag <= 0 or lag >= max_lag:
        return float(lag)

    y1, y2, y3 = diff[lag - 1], diff[lag], diff[lag + 1]
    a = (y1 + y3 - 2 * y2) / 2
    b = (y3 - y1) / 2
    if a:
        return lag - b / (2 * a)
    return float(lag)


def estimate_pitch(
    buffer: np.ndarray,
    sample_rate: int,
    config: AutocorrelationConfig = WIDE_RANGE,
) -> float | None:
    """
    Estimate the fundamental frequency of a time-domain buffer.

    Args:
        buffer: Audio samples in roughly [-1, 1]
        sample_rate: Sample rate in Hz
        config: Frequency range and thresholds

    Returns:
        Fundamental frequency in Hz, or None when there is no pitch
        (silence, too little data, or no valley in the lag range)
    """
    x = np.asarray(buffer, dtype=np.float64)
    size = len(x)

    level = rms(x)
    if level < config.rms_threshold:
        logger.debug(f"Signal below RMS gate ({level:.5f} < {config.rms_threshold})")
        return None

    min_lag, max_lag = config.lag_range(sample_rate)
    min_lag = max(min_lag, 1)
    window = min(int(math.floor(size * config.window_fraction)), size - max_lag - 1)
    if window <= 0 or max_lag <= min_lag:
        logger.debug(f"Buffer of {size} samples too short for lags {min_lag}-{max_lag}")
        return None

    diff = square_difference(x, max_lag, window)
    best_lag = find_valley(diff, min_lag, max_lag, config.valley_threshold)
    if best_lag is None:
        return None

    period = parabolic_lag(diff, best_lag, max_lag)
    if period <= 0:
        return None

    return sample_rate / period
