"""
Targeted polyphonic detection.

Instead of searching the whole spectrum, each expected frequency (for example
one guitar string) gets its own narrow search window. The strongest bin in
that window is refined and reported, so all strings of a strum can be tuned at
once without one string's peak hiding another's.
"""

import logging
import math
from dataclasses import dataclass

import numpy as np

from .constants import (
    A4_REFERENCE,
    FFT_SIZE,
    OCTAVE,
    SAMPLE_RATE,
    TARGET_SEARCH_SEMITONES,
    TARGET_THRESHOLD_DB,
)
from .notes import Note, frequency_to_note
from .spectral import refine_peak

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Target:
    """An expected frequency to search near."""

    id: int  # e.g. string number, 6 = lowest guitar string
    label: str  # Display label, e.g. "E"
    target_frequency: float  # Hz


class TargetedDetector:
    """
    Per-target spectral peak detector.

    Targets are searched independently: a target whose window falls outside
    the spectrum, or whose peak is too quiet, is simply left out of the result.
    """

    def __init__(
        self,
        sample_rate: int = SAMPLE_RATE,
        fft_size: int = FFT_SIZE,
        reference: float = A4_REFERENCE,
        search_semitones: float = TARGET_SEARCH_SEMITONES,
        threshold_db: float = TARGET_THRESHOLD_DB,
    ):
        """
        Initialize detector.

        Args:
            sample_rate: Audio sample rate in Hz
            fft_size: Analysis window size the spectra are computed with
            reference: Reference frequency for A4 in Hz
            search_semitones: Half-width of each target's search window
            threshold_db: Minimum peak level to report a target
        """
        self.sample_rate = sample_rate
        self.fft_size = fft_size
        self.reference = reference
        self.search_semitones = search_semitones
        self.threshold_db = threshold_db

    def set_reference(self, reference: float):
        self.reference = reference

    def set_threshold(self, threshold_db: float):
        self.threshold_db = threshold_db

    def search_bins(self, target_frequency: float) -> tuple[int, int]:
        """Return the inclusive (low_bin, high_bin) search range for a frequency."""
        ratio = 2.0 ** (self.search_semitones / OCTAVE)
        low_freq = target_frequency / ratio
        high_freq = target_frequency * ratio
        low_bin = int(math.floor(low_freq * self.fft_size / self.sample_rate))
        high_bin = int(math.ceil(high_freq * self.fft_size / self.sample_rate))
        return low_bin, high_bin

    def detect_target(self, spectrum: np.ndarray, target: Target) -> Note | None:
        """
        Detect the peak near a single target.

        Returns:
            Note with magnitude and target_frequency set, or None
        """
        low_bin, high_bin = self.search_bins(target.target_frequency)
        if low_bin < 0 or high_bin >= len(spectrum):
            logger.debug(
                f"Target {target.id} ({target.target_frequency:.2f} Hz) outside spectrum, skipped"
            )
            return None

        window = np.asarray(spectrum[low_bin : high_bin + 1])
        best_bin = low_bin + int(np.argmax(window))
        magnitude = float(spectrum[best_bin])

        if not magnitude > self.threshold_db:
            return None

        frequency = refine_peak(spectrum, best_bin, self.sample_rate, self.fft_size)
        note = frequency_to_note(frequency, self.reference)
        if note is None:
            return None

        note.magnitude = magnitude
        note.target_frequency = target.target_frequency
        return note

    def detect(self, spectrum: np.ndarray, targets: list[Target]) -> list[Note]:
        """
        Detect one note per target.

        Args:
            spectrum: dB magnitudes
            targets: Expected frequencies, in display order

        Returns:
            Notes for the targets that cleared the threshold, in target order
        """
        detected = []
        for target in targets:
            note = self.detect_target(spectrum, target)
            if note is not None:
                detected.append(note)
        return detected
