"""
Per-frame analysis entry point.

FrameAnalyzer bundles the detectors behind a single advance() call that an
external scheduler (audio callback, display refresh, file reader) invokes once
per analysis frame. Configuration such as the reference pitch, tuning and
mode may be changed between frames; no detection state is carried from one
frame to the next.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from .autocorrelation import WIDE_RANGE, AutocorrelationConfig
from .chord_peaks import ChordPeakExtractor
from .chords import CHORD_TEMPLATES, ChordMatch, ChordTemplate, identify_chord
from .constants import A4_REFERENCE, FFT_SIZE, SAMPLE_RATE
from .mono_detector import MonophonicDetector
from .notes import Note
from .spectral import compute_spectrum
from .targeted_detector import Target, TargetedDetector
from .tunings import StringReading, Tuning, build_targets, get_tuning, match_readings

logger = logging.getLogger(__name__)


class DetectionMode(Enum):
    """What to detect in each frame."""

    MONO = "mono"  # Single note, chromatic tuner
    POLY = "poly"  # One reading per target string
    CHORD = "chord"  # Peak list and chord name


@dataclass
class Frame:
    """Buffers captured for one analysis frame."""

    samples: np.ndarray | None = None  # Time-domain buffer
    spectrum: np.ndarray | None = None  # dB magnitudes of the same capture


@dataclass
class FrameResult:
    """Result of one analysis frame."""

    mode: DetectionMode
    note: Note | None = None  # MONO
    readings: list[StringReading] = field(default_factory=list)  # POLY, in target order
    peaks: list[Note] = field(default_factory=list)  # CHORD, strongest first
    chord: ChordMatch | None = None  # CHORD

    @property
    def valid(self) -> bool:
        """Whether anything was detected in this frame."""
        if self.mode == DetectionMode.MONO:
            return self.note is not None
        if self.mode == DetectionMode.POLY:
            return any(r.detected for r in self.readings)
        return bool(self.peaks)


def _is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


class FrameAnalyzer:
    """
    Pitch and chord analysis for a stream of frames.

    Holds only configuration. Calling advance() twice with the same frame
    returns identical results.
    """

    def __init__(
        self,
        sample_rate: int = SAMPLE_RATE,
        fft_size: int = FFT_SIZE,
        reference: float = A4_REFERENCE,
        mode: DetectionMode = DetectionMode.MONO,
        tuning: Tuning | None = None,
        autocorrelation: AutocorrelationConfig = WIDE_RANGE,
        templates: tuple[ChordTemplate, ...] = CHORD_TEMPLATES,
    ):
        """
        Initialize analyzer.

        Args:
            sample_rate: Audio sample rate in Hz
            fft_size: Analysis window size (power of two)
            reference: Reference frequency for A4 in Hz
            mode: Initial detection mode
            tuning: Tuning for POLY mode (standard guitar if None)
            autocorrelation: SDF estimator parameters for MONO mode
            templates: Ordered chord templates for CHORD mode

        Raises:
            ValueError: If sample_rate, fft_size or reference is invalid
        """
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")
        if not _is_power_of_two(fft_size):
            raise ValueError(f"fft_size must be a power of two, got {fft_size}")
        self._check_reference(reference)

        self.sample_rate = sample_rate
        self.fft_size = fft_size
        self.reference = reference
        self.mode = mode
        self.templates = templates

        self._tuning = tuning if tuning is not None else get_tuning("standard")
        self._targets = build_targets(self._tuning, reference)

        self._mono = MonophonicDetector(
            sample_rate=sample_rate,
            fft_size=fft_size,
            reference=reference,
            autocorrelation=autocorrelation,
        )
        self._targeted = TargetedDetector(
            sample_rate=sample_rate,
            fft_size=fft_size,
            reference=reference,
        )
        self._chord_peaks = ChordPeakExtractor(
            sample_rate=sample_rate,
            fft_size=fft_size,
            reference=reference,
        )

    @staticmethod
    def _check_reference(reference: float):
        if not reference > 0:
            raise ValueError(f"reference must be positive, got {reference}")

    @property
    def targets(self) -> list[Target]:
        """Current targets for POLY mode."""
        return list(self._targets)

    @property
    def tuning(self) -> Tuning | None:
        """Current tuning, or None when targets were set directly."""
        return self._tuning

    def set_reference(self, reference: float):
        """Change the A4 reference and rebuild tuning targets."""
        self._check_reference(reference)
        self.reference = reference
        self._mono.set_reference(reference)
        self._targeted.set_reference(reference)
        self._chord_peaks.set_reference(reference)
        if self._tuning is not None:
            self._targets = build_targets(self._tuning, reference)
        logger.info(f"Reference pitch set to {reference} Hz")

    def set_mode(self, mode: DetectionMode):
        self.mode = mode
        logger.info(f"Detection mode set to {mode.value}")

    def set_tuning(self, tuning: Tuning):
        """Switch to a tuning; targets follow the current reference pitch."""
        self._tuning = tuning
        self._targets = build_targets(tuning, self.reference)
        logger.info(f"Tuning set to {tuning.name!r} ({len(tuning)} strings)")

    def set_targets(self, targets: list[Target]):
        """Use explicit targets instead of a tuning."""
        self._tuning = None
        self._targets = list(targets)

    def set_autocorrelation(self, config: AutocorrelationConfig):
        self._mono.set_autocorrelation(config)
        logger.info(
            f"Autocorrelation range set to {config.min_frequency}-{config.max_frequency} Hz"
        )

    def _spectrum_for(self, frame: Frame) -> np.ndarray | None:
        if frame.spectrum is not None:
            return np.asarray(frame.spectrum, dtype=np.float64)
        if frame.samples is not None:
            return compute_spectrum(frame.samples, self.fft_size)
        return None

    def advance(self, frame: Frame) -> FrameResult:
        """
        Analyze one frame in the current mode.

        Args:
            frame: Buffers for this frame; a missing spectrum is computed
                from the samples

        Returns:
            FrameResult for the current mode
        """
        mode = self.mode
        if mode == DetectionMode.MONO:
            return self._advance_mono(frame)
        if mode == DetectionMode.POLY:
            return self._advance_poly(frame)
        return self._advance_chord(frame)

    def _advance_mono(self, frame: Frame) -> FrameResult:
        samples = frame.samples
        if samples is not None:
            samples = np.asarray(samples, dtype=np.float64)

        note = self._mono.detect(samples, None)
        if note is None:
            spectrum = self._spectrum_for(frame)
            if spectrum is not None:
                note = self._mono.detect_spectral_peak(spectrum)
        return FrameResult(mode=DetectionMode.MONO, note=note)

    def _advance_poly(self, frame: Frame) -> FrameResult:
        spectrum = self._spectrum_for(frame)
        if spectrum is None:
            return FrameResult(
                mode=DetectionMode.POLY,
                readings=match_readings([], self._targets),
            )

        notes = self._targeted.detect(spectrum, self._targets)
        return FrameResult(
            mode=DetectionMode.POLY,
            readings=match_readings(notes, self._targets),
        )

    def _advance_chord(self, frame: Frame) -> FrameResult:
        spectrum = self._spectrum_for(frame)
        if spectrum is None:
            return FrameResult(mode=DetectionMode.CHORD)

        peaks = self._chord_peaks.extract(spectrum)
        return FrameResult(
            mode=DetectionMode.CHORD,
            peaks=peaks,
            chord=identify_chord(peaks, self.templates),
        )
