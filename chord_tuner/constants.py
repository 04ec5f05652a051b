"""
Shared constants for pitch and chord analysis.
"""

SAMPLE_RATE = 44100  # Hz
FFT_SIZE = 8192  # Analysis window, high enough to separate adjacent strings
A4_REFERENCE = 440.0  # Hz
A4_MIDI = 69
OCTAVE = 12

NOTE_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

# Enharmonic spellings accepted when parsing note names
FLAT_TO_SHARP = {
    "Db": "C#",
    "Eb": "D#",
    "Fb": "E",
    "Gb": "F#",
    "Ab": "G#",
    "Bb": "A#",
    "Cb": "B",
}

# Autocorrelation
RMS_THRESHOLD = 0.002  # Below this the buffer is treated as silence
VALLEY_THRESHOLD = 0.2  # Fraction of diff[min_lag] for early valley acceptance

# Monophonic detection
MONO_MAX_FREQUENCY = 1200.0  # Hz
MONO_FALLBACK_MIN_BIN = 2  # Skip DC and hum bins
MONO_THRESHOLD_DB = -90.0

# Targeted (per-string) detection
TARGET_SEARCH_SEMITONES = 1.5
TARGET_THRESHOLD_DB = -95.0

# Chord peak extraction
CHORD_MIN_FREQUENCY = 50.0  # Hz
CHORD_MAX_FREQUENCY = 1200.0  # Hz
CHORD_THRESHOLD_DB = -85.0
CHORD_LOCAL_WINDOW = 20  # Bins either side for local dominance
CHORD_MAX_CANDIDATES = 10
CHORD_MAX_PEAKS = 6
HARMONIC_RATIO_TOLERANCE = 0.03
HARMONIC_MIN_DROP_DB = 10.0

# Per-string readings
STRING_MATCH_CENTS = 200.0
IN_TUNE_CENTS = 5.0

# Spectrum computation floor
MIN_DECIBELS = -400.0
