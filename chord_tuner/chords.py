"""
Chord identification from detected notes.

Chords are matched against interval templates. The table is an ordered tuple:
when two matches are equally specific, the one found first wins, trying roots
from the lowest note up and templates in declaration order.
"""

import logging
from dataclasses import dataclass
from typing import NamedTuple

from .constants import NOTE_NAMES, OCTAVE
from .notes import Note

logger = logging.getLogger(__name__)


class ChordTemplate(NamedTuple):
    """Chord type and its semitone intervals above the root."""

    name: str
    intervals: tuple[int, ...]


CHORD_TEMPLATES: tuple[ChordTemplate, ...] = (
    ChordTemplate("Major", (0, 4, 7)),
    ChordTemplate("Minor", (0, 3, 7)),
    ChordTemplate("Diminished", (0, 3, 6)),
    ChordTemplate("Augmented", (0, 4, 8)),
    ChordTemplate("Major 7", (0, 4, 7, 11)),
    ChordTemplate("Minor 7", (0, 3, 7, 10)),
    ChordTemplate("Dominant 7", (0, 4, 7, 10)),
    ChordTemplate("Sus 2", (0, 2, 7)),
    ChordTemplate("Sus 4", (0, 5, 7)),
    ChordTemplate("Major 6", (0, 4, 7, 9)),
    ChordTemplate("Minor 6", (0, 3, 7, 9)),
    ChordTemplate("9th", (0, 4, 7, 10, 2)),
    ChordTemplate("Major 9", (0, 4, 7, 11, 2)),
    ChordTemplate("Minor 9", (0, 3, 7, 10, 2)),
    ChordTemplate("Add 9", (0, 4, 7, 2)),
    ChordTemplate("7sus4", (0, 5, 7, 10)),
)


@dataclass
class ChordMatch:
    """Result of chord identification."""

    root: str  # Pitch class label of the root, e.g. "C"
    type: str  # Template name, e.g. "Dominant 7"
    intervals: tuple[int, ...]
    detected_note_names: frozenset[str]

    @property
    def full_name(self) -> str:
        """Display name, e.g. "C Major"."""
        return f"{self.root} {self.type}"

    @property
    def specificity(self) -> int:
        """Number of template intervals matched."""
        return len(self.intervals)


def identify_chord(
    notes: list[Note],
    templates: tuple[ChordTemplate, ...] = CHORD_TEMPLATES,
) -> ChordMatch | None:
    """
    Name the chord formed by a set of notes.

    Every detected pitch class is tried as the root, lowest note first. A
    template matches when all of its intervals are present; a later match
    only replaces the current best when it matches more intervals.

    Args:
        notes: Detected notes (any order, duplicates allowed)
        templates: Ordered chord templates

    Returns:
        ChordMatch, or None when fewer than two notes are given or no
        template matches
    """
    if len(notes) < 2:
        return None

    known = [n for n in notes if n.name in NOTE_NAMES]
    pitch_classes = {NOTE_NAMES.index(n.name) for n in known}
    note_names = frozenset(n.name for n in known)

    best: ChordMatch | None = None
    for root_note in sorted(known, key=lambda n: n.frequency):
        root = NOTE_NAMES.index(root_note.name)
        offsets = {(pc - root + OCTAVE) % OCTAVE for pc in pitch_classes}

        for template in templates:
            if not all(interval in offsets for interval in template.intervals):
                continue
            if best is None or len(template.intervals) > best.specificity:
                best = ChordMatch(
                    root=NOTE_NAMES[root],
                    type=template.name,
                    intervals=template.intervals,
                    detected_note_names=note_names,
                )

    if best is not None:
        logger.debug(f"Identified {best.full_name} from {sorted(note_names)}")
    return best
