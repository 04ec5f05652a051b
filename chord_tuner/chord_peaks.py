"""
Multi-peak extraction for chord recognition.

A strummed chord shows up as several spectral peaks, but so do the overtones
of each string. Peaks are picked by local dominance and then filtered so that
a weak peak sitting on an integer multiple of a much stronger one is treated
as an overtone rather than a separate note.
"""

import logging
import math

import numpy as np
from scipy.signal import find_peaks

from .constants import (
    A4_REFERENCE,
    CHORD_LOCAL_WINDOW,
    CHORD_MAX_CANDIDATES,
    CHORD_MAX_FREQUENCY,
    CHORD_MAX_PEAKS,
    CHORD_MIN_FREQUENCY,
    CHORD_THRESHOLD_DB,
    FFT_SIZE,
    HARMONIC_MIN_DROP_DB,
    HARMONIC_RATIO_TOLERANCE,
    SAMPLE_RATE,
)
from .notes import Note, frequency_to_note
from .spectral import refine_peak

logger = logging.getLogger(__name__)


def is_harmonic_of(
    candidate: Note,
    fundamental: Note,
    tolerance: float = HARMONIC_RATIO_TOLERANCE,
    min_drop_db: float = HARMONIC_MIN_DROP_DB,
) -> bool:
    """
    Check whether a peak looks like an overtone of a stronger peak.

    True when candidate/fundamental is within tolerance of an integer >= 2 and
    the candidate is more than min_drop_db quieter.
    """
    ratio = candidate.frequency / fundamental.frequency
    rounded = math.floor(ratio + 0.5)
    if rounded < 2 or abs(ratio - rounded) >= tolerance:
        return False
    return candidate.magnitude < fundamental.magnitude - min_drop_db


def filter_harmonics(
    candidates: list[Note],
    max_peaks: int = CHORD_MAX_PEAKS,
    tolerance: float = HARMONIC_RATIO_TOLERANCE,
    min_drop_db: float = HARMONIC_MIN_DROP_DB,
) -> list[Note]:
    """
    Remove overtones of stronger peaks.

    Args:
        candidates: Peaks with magnitudes, strongest first
        max_peaks: Maximum number of peaks to return

    Returns:
        Surviving peaks sorted by magnitude (strongest first)
    """
    accepted: list[Note] = []
    for current in candidates:
        overtone_of = next(
            (p for p in accepted if is_harmonic_of(current, p, tolerance, min_drop_db)),
            None,
        )
        if overtone_of is not None:
            logger.debug(
                f"Dropped {current.label} ({current.frequency} Hz, {current.magnitude:.1f} dB) "
                f"as overtone of {overtone_of.label}"
            )
            continue
        accepted.append(current)

    accepted.sort(key=lambda n: n.magnitude, reverse=True)
    return accepted[:max_peaks]


class ChordPeakExtractor:
    """Finds independent note peaks in a spectrum."""

    def __init__(
        self,
        sample_rate: int = SAMPLE_RATE,
        fft_size: int = FFT_SIZE,
        reference: float = A4_REFERENCE,
        min_frequency: float = CHORD_MIN_FREQUENCY,
        max_frequency: float = CHORD_MAX_FREQUENCY,
        threshold_db: float = CHORD_THRESHOLD_DB,
        local_window: int = CHORD_LOCAL_WINDOW,
        max_candidates: int = CHORD_MAX_CANDIDATES,
        max_peaks: int = CHORD_MAX_PEAKS,
    ):
        """
        Initialize extractor.

        Args:
            sample_rate: Audio sample rate in Hz
            fft_size: Analysis window size the spectra are computed with
            reference: Reference frequency for A4 in Hz
            min_frequency: Lower edge of the scanned range in Hz
            max_frequency: Upper edge of the scanned range in Hz
            threshold_db: Minimum peak level
            local_window: Bins either side a peak must dominate
            max_candidates: Peaks kept before harmonic filtering
            max_peaks: Peaks kept after harmonic filtering
        """
        self.sample_rate = sample_rate
        self.fft_size = fft_size
        self.reference = reference
        self.min_frequency = min_frequency
        self.max_frequency = max_frequency
        self.threshold_db = threshold_db
        self.local_window = local_window
        self.max_candidates = max_candidates
        self.max_peaks = max_peaks

    def set_reference(self, reference: float):
        self.reference = reference

    def set_threshold(self, threshold_db: float):
        self.threshold_db = threshold_db

    def _bin_range(self, spectrum_length: int) -> tuple[int, int]:
        min_bin = int(math.floor(self.min_frequency * self.fft_size / self.sample_rate))
        max_bin = int(math.floor(self.max_frequency * self.fft_size / self.sample_rate))
        min_bin = max(min_bin, 1)
        max_bin = min(max_bin, spectrum_length - 1)
        return min_bin, max_bin

    def _is_local_max(self, spectrum: np.ndarray, i: int, min_bin: int, max_bin: int) -> bool:
        lo = max(min_bin, i - self.local_window)
        hi = min(max_bin, i + self.local_window)
        return not np.any(spectrum[lo : hi + 1] > spectrum[i])

    def find_candidates(self, spectrum: np.ndarray) -> list[Note]:
        """
        Phase 1: locally dominant peaks, one per note, strongest first.

        Returns:
            Up to max_candidates notes with magnitudes set
        """
        spectrum = np.asarray(spectrum, dtype=np.float64)
        min_bin, max_bin = self._bin_range(len(spectrum))
        if max_bin <= min_bin:
            return []

        # Slice keeps one neighbour either side so edge bins can be peaks
        segment = spectrum[min_bin - 1 : max_bin + 1]
        peaks, _ = find_peaks(segment, height=self.threshold_db)

        candidates: list[Note] = []
        seen: set[tuple[str, int]] = set()
        for k in peaks:
            i = int(k) + min_bin - 1
            magnitude = spectrum[i]
            if not (magnitude > self.threshold_db):
                continue
            if not (magnitude > spectrum[i - 1] and magnitude > spectrum[i + 1]):
                continue
            if not self._is_local_max(spectrum, i, min_bin, max_bin):
                continue

            frequency = refine_peak(spectrum, i, self.sample_rate, self.fft_size)
            note = frequency_to_note(frequency, self.reference)
            if note is None or (note.name, note.octave) in seen:
                continue
            seen.add((note.name, note.octave))
            note.magnitude = float(magnitude)
            candidates.append(note)

        candidates.sort(key=lambda n: n.magnitude, reverse=True)
        return candidates[: self.max_candidates]

    def extract(self, spectrum: np.ndarray) -> list[Note]:
        """
        Extract chord note peaks from a spectrum.

        Args:
            spectrum: dB magnitudes

        Returns:
            Up to max_peaks notes, strongest first, overtones removed
        """
        candidates = self.find_candidates(spectrum)
        return filter_harmonics(candidates, self.max_peaks)
