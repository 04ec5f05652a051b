"""
Frequency to note mapping.

Every component that produces a frequency names it through frequency_to_note,
so all detectors agree on note names, octaves and cents for a given reference
pitch.
"""

import math
import re
from dataclasses import dataclass

from .constants import A4_MIDI, A4_REFERENCE, FLAT_TO_SHARP, NOTE_NAMES, OCTAVE

_NOTE_PATTERN = re.compile(r"^([A-Ga-g])([#b]?)(-?\d+)$")


@dataclass
class Note:
    """A detected note."""

    name: str  # Pitch class label, e.g. "A#"
    octave: int  # Scientific pitch notation octave (A4 = 440 Hz)
    cents: float  # Deviation from the nearest equal-tempered semitone
    frequency: float  # Detected frequency in Hz, rounded to 0.01
    magnitude: float | None = None  # Peak level in dB (spectral detections)
    target_frequency: float | None = None  # Set by the targeted detector

    @property
    def pitch_class(self) -> int:
        """Pitch class index (0-11, where 0 = C)."""
        return NOTE_NAMES.index(self.name)

    @property
    def midi(self) -> int:
        """MIDI note number of the nearest semitone."""
        return (self.octave + 1) * OCTAVE + self.pitch_class

    @property
    def label(self) -> str:
        """Note name with octave, e.g. "E2"."""
        return f"{self.name}{self.octave}"

    def cents_from(self, reference_frequency: float) -> float:
        """Deviation of this note's frequency from another frequency in cents."""
        return cents_between(self.frequency, reference_frequency)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def frequency_to_note(frequency: float, reference: float = A4_REFERENCE) -> Note | None:
    """
    Map a frequency to the nearest equal-tempered note.

    Args:
        frequency: Frequency in Hz
        reference: Frequency of A4 in Hz

    Returns:
        Note, or None if the frequency is not a positive finite number
    """
    try:
        frequency = float(frequency)
        reference = float(reference)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(frequency) or frequency <= 0:
        return None
    if not math.isfinite(reference) or reference <= 0:
        return None

    n = OCTAVE * math.log2(frequency / reference)
    round_n = _round_half_up(n)
    note_number = round_n + A4_MIDI

    return Note(
        name=NOTE_NAMES[note_number % OCTAVE],
        octave=note_number // OCTAVE - 1,
        cents=100.0 * (n - round_n),
        frequency=round(frequency, 2),
    )


def midi_to_frequency(midi: float, reference: float = A4_REFERENCE) -> float:
    """Equal-tempered frequency of a MIDI note number."""
    return reference * 2.0 ** ((midi - A4_MIDI) / OCTAVE)


def cents_between(frequency: float, reference_frequency: float) -> float:
    """Signed distance in cents from reference_frequency to frequency."""
    return 1200.0 * math.log2(frequency / reference_frequency)


def note_name_to_midi(note_name: str) -> int:
    """
    Convert a note name with octave to a MIDI note number.

    Accepts sharps and flats in either letter case ("F#2", "Bb3", "e4").
    B# and E# are read as C and F of the next semitone up.

    Raises:
        ValueError: If the name cannot be parsed
    """
    match = _NOTE_PATTERN.match(note_name.strip())
    if not match:
        raise ValueError(f"Invalid note name: {note_name!r}")

    letter, accidental, octave_str = match.groups()
    letter = letter.upper()
    octave = int(octave_str)

    # B# and E# carry into the next octave, so B#3 is C4 (MIDI 60)
    if accidental == "#":
        pitch_class = NOTE_NAMES.index(letter) + 1
    elif accidental == "b":
        flat = f"{letter}b"
        sharp = FLAT_TO_SHARP[flat]
        pitch_class = NOTE_NAMES.index(sharp)
        # Cb sits in the octave below its letter
        if flat == "Cb":
            pitch_class -= OCTAVE
    else:
        pitch_class = NOTE_NAMES.index(letter)

    return (octave + 1) * OCTAVE + pitch_class
