"""
chord_tuner - Pitch, per-string and chord detection for instrument tuners
"""

from .analyzer import DetectionMode, Frame, FrameAnalyzer, FrameResult
from .autocorrelation import GUITAR_RANGE, WIDE_RANGE, AutocorrelationConfig, estimate_pitch
from .chord_peaks import ChordPeakExtractor, filter_harmonics
from .chords import CHORD_TEMPLATES, ChordMatch, ChordTemplate, identify_chord
from .constants import A4_REFERENCE, FFT_SIZE, NOTE_NAMES, SAMPLE_RATE
from .mono_detector import MonophonicDetector
from .notes import Note, frequency_to_note
from .spectral import compute_spectrum, refine_peak
from .targeted_detector import Target, TargetedDetector
from .tunings import TUNINGS, StringReading, Tuning, build_targets, load_tuning, parse_tuning

__version__ = "0.1.0"
__all__ = [
    "FrameAnalyzer",
    "Frame",
    "FrameResult",
    "DetectionMode",
    "AutocorrelationConfig",
    "WIDE_RANGE",
    "GUITAR_RANGE",
    "estimate_pitch",
    "MonophonicDetector",
    "TargetedDetector",
    "Target",
    "ChordPeakExtractor",
    "filter_harmonics",
    "ChordTemplate",
    "CHORD_TEMPLATES",
    "ChordMatch",
    "identify_chord",
    "Note",
    "frequency_to_note",
    "refine_peak",
    "compute_spectrum",
    "Tuning",
    "TUNINGS",
    "StringReading",
    "build_targets",
    "parse_tuning",
    "load_tuning",
    "SAMPLE_RATE",
    "FFT_SIZE",
    "A4_REFERENCE",
    "NOTE_NAMES",
]
