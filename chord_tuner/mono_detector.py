"""
Monophonic note detection.

Autocorrelation is the more accurate estimator for a clean sustained tone, but
it fails on transients and noise. When it gives nothing usable, the strongest
spectral peak is used instead.
"""

import logging

import numpy as np

from .autocorrelation import WIDE_RANGE, AutocorrelationConfig, estimate_pitch
from .constants import (
    A4_REFERENCE,
    FFT_SIZE,
    MONO_FALLBACK_MIN_BIN,
    MONO_MAX_FREQUENCY,
    MONO_THRESHOLD_DB,
    SAMPLE_RATE,
)
from .notes import Note, frequency_to_note
from .spectral import refine_peak

logger = logging.getLogger(__name__)


class MonophonicDetector:
    """Single best-guess note per frame, autocorrelation with FFT fallback."""

    def __init__(
        self,
        sample_rate: int = SAMPLE_RATE,
        fft_size: int = FFT_SIZE,
        reference: float = A4_REFERENCE,
        autocorrelation: AutocorrelationConfig = WIDE_RANGE,
        max_frequency: float = MONO_MAX_FREQUENCY,
        threshold_db: float = MONO_THRESHOLD_DB,
    ):
        """
        Initialize detector.

        Args:
            sample_rate: Audio sample rate in Hz
            fft_size: Analysis window size the spectra are computed with
            reference: Reference frequency for A4 in Hz
            autocorrelation: SDF estimator parameters
            max_frequency: Autocorrelation results at or above this use the fallback
            threshold_db: Minimum level for the spectral fallback peak
        """
        self.sample_rate = sample_rate
        self.fft_size = fft_size
        self.reference = reference
        self.autocorrelation = autocorrelation
        self.max_frequency = max_frequency
        self.threshold_db = threshold_db

    def set_reference(self, reference: float):
        self.reference = reference

    def set_autocorrelation(self, config: AutocorrelationConfig):
        self.autocorrelation = config

    def detect(self, samples: np.ndarray | None, spectrum: np.ndarray | None) -> Note | None:
        """
        Detect the note in one frame.

        Args:
            samples: Time-domain buffer, or None
            spectrum: dB magnitudes of the same capture, or None

        Returns:
            Note, or None if nothing was detected
        """
        if samples is not None:
            frequency = estimate_pitch(samples, self.sample_rate, self.autocorrelation)
            if frequency is not None and frequency < self.max_frequency:
                return frequency_to_note(frequency, self.reference)
            if frequency is not None:
                logger.debug(f"Autocorrelation result {frequency:.1f} Hz out of range, using FFT")

        if spectrum is None:
            return None
        return self.detect_spectral_peak(spectrum)

    def detect_spectral_peak(self, spectrum: np.ndarray) -> Note | None:
        """Global spectral peak search, skipping the lowest bins."""
        if len(spectrum) <= MONO_FALLBACK_MIN_BIN:
            return None

        search = np.asarray(spectrum[MONO_FALLBACK_MIN_BIN:])
        best_bin = MONO_FALLBACK_MIN_BIN + int(np.argmax(search))
        magnitude = float(spectrum[best_bin])

        if not magnitude > self.threshold_db:
            return None

        frequency = refine_peak(spectrum, best_bin, self.sample_rate, self.fft_size)
        return frequency_to_note(frequency, self.reference)
