"""
Instrument tunings and per-string readings.

A tuning is an ordered list of strings, each with an id (6 = lowest string on
a guitar), a display label and a MIDI note. Targets for the targeted detector
are built from a tuning and the current reference pitch, so changing either
only requires rebuilding the target list.

Custom tunings can be given as text ("E4, B3, G3, D3, A2, E2") or loaded from
a CSV/TSV file with one note per row.
"""

import csv
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from .constants import A4_REFERENCE, IN_TUNE_CENTS, STRING_MATCH_CENTS
from .notes import Note, cents_between, midi_to_frequency, note_name_to_midi
from .targeted_detector import Target

logger = logging.getLogger(__name__)

_TUNING_NOTE = re.compile(r"^([a-gA-G][#b]?)(\d)$")


@dataclass(frozen=True)
class StringSpec:
    """One string of a tuning."""

    id: int
    label: str  # e.g. "E", or "e" for the high E string
    midi: int


@dataclass
class Tuning:
    """A named, ordered set of strings (lowest first)."""

    name: str = ""
    strings: list[StringSpec] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.strings)


@dataclass
class StringReading:
    """A detected note matched to one target."""

    target: Target
    note: Note | None = None  # None when the string was not detected
    cents: float = 0.0  # Deviation from the target frequency

    @property
    def detected(self) -> bool:
        return self.note is not None

    @property
    def in_tune(self) -> bool:
        return self.note is not None and abs(self.cents) < IN_TUNE_CENTS


def _preset(name: str, strings: list[tuple[int, str, int]]) -> Tuning:
    return Tuning(name=name, strings=[StringSpec(*s) for s in strings])


TUNINGS: dict[str, Tuning] = {
    "standard": _preset("standard", [
        (6, "E", 40), (5, "A", 45), (4, "D", 50), (3, "G", 55), (2, "B", 59), (1, "e", 64),
    ]),
    "drop_d": _preset("drop_d", [
        (6, "D", 38), (5, "A", 45), (4, "D", 50), (3, "G", 55), (2, "B", 59), (1, "e", 64),
    ]),
    "open_g": _preset("open_g", [
        (6, "D", 38), (5, "G", 43), (4, "D", 50), (3, "G", 55), (2, "B", 59), (1, "d", 62),
    ]),
    "eb_standard": _preset("eb_standard", [
        (6, "D#", 39), (5, "G#", 44), (4, "C#", 49), (3, "F#", 54), (2, "A#", 58), (1, "d#", 63),
    ]),
    "open_esus2": _preset("open_esus2", [
        (6, "E", 40), (5, "B", 47), (4, "E", 52), (3, "F#", 54), (2, "B", 59), (1, "e", 64),
    ]),
    "dadgad": _preset("dadgad", [
        (6, "D", 38), (5, "A", 45), (4, "D", 50), (3, "G", 55), (2, "A", 57), (1, "d", 62),
    ]),
    "rain_song": _preset("rain_song", [
        (6, "D", 38), (5, "G", 43), (4, "C", 48), (3, "G", 55), (2, "C", 60), (1, "d", 62),
    ]),
}


def get_tuning(name: str) -> Tuning:
    """
    Look up a preset tuning by name.

    Raises:
        KeyError: If there is no preset with that name
    """
    try:
        return TUNINGS[name]
    except KeyError:
        raise KeyError(
            f"Unknown tuning {name!r}, expected one of: {', '.join(TUNINGS)}"
        ) from None


def build_targets(tuning: Tuning, reference: float = A4_REFERENCE) -> list[Target]:
    """Build detector targets for a tuning at a reference pitch."""
    return [
        Target(
            id=s.id,
            label=s.label,
            target_frequency=midi_to_frequency(s.midi, reference),
        )
        for s in tuning.strings
    ]


def _tuning_from_tokens(tokens: list[str], name: str) -> Tuning:
    valid = []
    for token in tokens:
        match = _TUNING_NOTE.match(token)
        if not match:
            logger.debug(f"Skipping invalid tuning note {token!r}")
            continue
        valid.append((match.group(1), note_name_to_midi(token)))

    # Ids count down so the first listed note is the highest-numbered string
    strings = [
        StringSpec(id=len(valid) - i, label=label, midi=midi)
        for i, (label, midi) in enumerate(valid)
    ]
    return Tuning(name=name, strings=strings)


def parse_tuning(text: str, name: str = "custom") -> Tuning:
    """
    Parse a tuning from text.

    Notes are separated by commas or whitespace, each a letter, optional
    accidental and a single-digit octave ("E2", "F#3", "Bb2", "e4").

    Example:
        >>> parse_tuning("E4, B3, G3, D3, A2, E2")

    Raises:
        ValueError: If no valid notes are found
    """
    tokens = [t for t in re.split(r"[,\s]+", text.strip()) if t]
    tuning = _tuning_from_tokens(tokens, name)
    if not tuning.strings:
        raise ValueError(f"No valid notes in tuning: {text!r}")
    return tuning


def load_tuning(path: str) -> Tuning:
    """
    Load a tuning from a CSV or TSV file.

    File format: one note per row, or several notes per row separated by
    commas or tabs. Every cell of a row is read as a note. Lines starting
    with # are comments.

    Example:
        # Drop C
        D4
        A3
        F3
        C3
        G2
        C2

    Args:
        path: Path to the tuning file

    Returns:
        Tuning named after the file

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file contains no valid notes
    """
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Tuning file not found: {path}")

    with open(file_path, "r", encoding="utf-8") as f:
        content = f.read()
        f.seek(0)
        delimiter = "\t" if "\t" in content else ","

        tokens = []
        for row in csv.reader(f, delimiter=delimiter):
            cells = [c.strip() for c in row if c.strip()]
            if not cells or cells[0].startswith("#"):
                continue
            if len(cells) == 1:
                tokens.extend(cells[0].split())
            else:
                tokens.extend(cells)

    tuning = _tuning_from_tokens(tokens, file_path.stem)
    if not tuning.strings:
        raise ValueError(f"No valid notes found in tuning file: {path}")

    logger.info(f"Loaded tuning {tuning.name!r} with {len(tuning)} strings from {path}")
    return tuning


def match_readings(
    notes: list[Note],
    targets: list[Target],
    max_cents: float = STRING_MATCH_CENTS,
) -> list[StringReading]:
    """
    Match detected notes to targets.

    Each target gets the first note within max_cents of its frequency, with
    cents measured against the target rather than the nearest semitone.

    Returns:
        One reading per target, in target order
    """
    readings = []
    for target in targets:
        reading = StringReading(target=target)
        for note in notes:
            offset = cents_between(note.frequency, target.target_frequency)
            if abs(offset) < max_cents:
                reading.note = note
                reading.cents = offset
                break
        readings.append(reading)
    return readings
