"""
Tests for chord peak extraction and overtone filtering.

Synthetic spectra use a 32768-point FFT so that notes of a close triad are
further apart than the local dominance window.
"""

import numpy as np
import pytest

from chord_tuner import SAMPLE_RATE
from chord_tuner.chord_peaks import ChordPeakExtractor, filter_harmonics, is_harmonic_of
from chord_tuner.notes import Note

FFT_SIZE = 32768
BIN_COUNT = FFT_SIZE // 2


def empty_spectrum() -> np.ndarray:
    return np.full(BIN_COUNT, -120.0)


def add_peak(spectrum: np.ndarray, frequency: float, level_db: float = -30.0) -> int:
    """Symmetric three-bin peak at the bin nearest frequency."""
    best_bin = int(round(frequency * FFT_SIZE / SAMPLE_RATE))
    spectrum[best_bin - 1] = max(spectrum[best_bin - 1], level_db - 6.0)
    spectrum[best_bin] = level_db
    spectrum[best_bin + 1] = max(spectrum[best_bin + 1], level_db - 6.0)
    return best_bin


def make_note(frequency: float, magnitude: float, name: str = "A", octave: int = 2) -> Note:
    return Note(name=name, octave=octave, cents=0.0, frequency=frequency, magnitude=magnitude)


@pytest.fixture
def extractor():
    return ChordPeakExtractor(fft_size=FFT_SIZE)


class TestHarmonicCheck:

    def test_octave_much_weaker_is_harmonic(self):
        assert is_harmonic_of(make_note(220.0, -55.0), make_note(110.0, -40.0))

    def test_octave_similar_level_is_not_harmonic(self):
        assert not is_harmonic_of(make_note(220.0, -45.0), make_note(110.0, -40.0))

    def test_third_harmonic(self):
        assert is_harmonic_of(make_note(330.0, -60.0), make_note(110.0, -40.0))

    def test_fifth_ratio_is_not_harmonic(self):
        """1.5 rounds to 2 but is far from it."""
        assert not is_harmonic_of(make_note(165.0, -60.0), make_note(110.0, -40.0))

    def test_unison_is_not_harmonic(self):
        assert not is_harmonic_of(make_note(110.0, -60.0), make_note(110.0, -40.0))

    def test_ratio_tolerance(self):
        fundamental = make_note(100.0, -40.0)
        assert is_harmonic_of(make_note(202.9, -60.0), fundamental)
        assert not is_harmonic_of(make_note(203.1, -60.0), fundamental)


class TestFilterHarmonics:

    def test_weak_octave_dropped(self):
        peaks = filter_harmonics([make_note(110.0, -40.0), make_note(220.0, -55.0)])
        assert [p.frequency for p in peaks] == [110.0]

    def test_strong_octave_kept(self):
        peaks = filter_harmonics([make_note(110.0, -40.0), make_note(220.0, -42.0)])
        assert [p.frequency for p in peaks] == [110.0, 220.0]

    def test_only_checked_against_accepted_peaks(self):
        """An overtone of a dropped overtone is checked against survivors only."""
        peaks = filter_harmonics([
            make_note(100.0, -40.0),
            make_note(200.0, -55.0),
            make_note(400.0, -48.0),
        ])
        # 400 Hz is only 8 dB below 100 Hz, so it stays
        assert [p.frequency for p in peaks] == [100.0, 400.0]

    def test_limited_and_sorted(self):
        candidates = [make_note(100.0 + 37 * i, -47.0 + i) for i in range(8)]
        peaks = filter_harmonics(candidates, max_peaks=6)
        assert len(peaks) == 6
        assert [p.magnitude for p in peaks] == [-40.0, -41.0, -42.0, -43.0, -44.0, -45.0]

    def test_empty(self):
        assert filter_harmonics([]) == []


class TestChordPeakExtractor:

    def test_c_major_triad(self, extractor):
        spectrum = empty_spectrum()
        for frequency in (261.63, 329.63, 392.0):
            add_peak(spectrum, frequency)

        peaks = extractor.extract(spectrum)

        assert sorted(p.label for p in peaks) == ["C4", "E4", "G4"]
        assert all(p.magnitude == -30.0 for p in peaks)

    def test_strongest_first(self, extractor):
        spectrum = empty_spectrum()
        add_peak(spectrum, 261.63, -50.0)
        add_peak(spectrum, 329.63, -30.0)
        add_peak(spectrum, 392.0, -40.0)

        peaks = extractor.extract(spectrum)

        assert [p.name for p in peaks] == ["E", "G", "C"]

    def test_weak_overtone_removed(self, extractor):
        spectrum = empty_spectrum()
        add_peak(spectrum, 110.0, -40.0)
        add_peak(spectrum, 220.0, -55.0)

        peaks = extractor.extract(spectrum)

        assert [p.label for p in peaks] == ["A2"]

    def test_strong_octave_kept(self, extractor):
        spectrum = empty_spectrum()
        add_peak(spectrum, 110.0, -40.0)
        add_peak(spectrum, 220.0, -42.0)

        peaks = extractor.extract(spectrum)

        assert [p.label for p in peaks] == ["A2", "A3"]

    def test_threshold(self, extractor):
        spectrum = empty_spectrum()
        add_peak(spectrum, 261.63, -86.0)
        assert extractor.extract(spectrum) == []

        extractor.set_threshold(-90.0)
        assert [p.label for p in extractor.extract(spectrum)] == ["C4"]

    def test_weaker_neighbour_suppressed(self, extractor):
        """A peak within the dominance window of a stronger one is not reported."""
        spectrum = empty_spectrum()
        strong = add_peak(spectrum, 261.63, -30.0)
        spectrum[strong + 9] = -45.0

        peaks = extractor.extract(spectrum)

        assert [p.label for p in peaks] == ["C4"]

    def test_frequency_range(self, extractor):
        """Peaks below 50 Hz or above 1200 Hz are outside the scan."""
        spectrum = empty_spectrum()
        add_peak(spectrum, 30.0, -20.0)
        add_peak(spectrum, 1500.0, -20.0)
        add_peak(spectrum, 440.0, -40.0)

        peaks = extractor.extract(spectrum)

        assert [p.label for p in peaks] == ["A4"]

    def test_same_note_reported_once(self, extractor):
        """Two peaks that round to the same note keep the first one scanned."""
        spectrum = empty_spectrum()
        spectrum[759:762] = [-51.0, -45.0, -51.0]  # 1022.8 Hz, C6 -40 cents
        spectrum[794:797] = [-46.0, -40.0, -46.0]  # 1069.9 Hz, C6 +38 cents

        peaks = extractor.extract(spectrum)

        assert len(peaks) == 1
        assert peaks[0].label == "C6"
        assert peaks[0].magnitude == -45.0

    def test_at_most_six_peaks(self, extractor):
        spectrum = empty_spectrum()
        frequencies = [100.0, 140.0, 190.0, 250.0, 330.0, 450.0, 600.0, 800.0]
        for i, frequency in enumerate(frequencies):
            add_peak(spectrum, frequency, -40.0 - i)

        assert len(extractor.find_candidates(spectrum)) == 8
        peaks = extractor.extract(spectrum)
        assert len(peaks) == 6
        assert [p.magnitude for p in peaks] == [-40.0, -41.0, -42.0, -43.0, -44.0, -45.0]

    def test_silence(self, extractor):
        assert extractor.extract(empty_spectrum()) == []

    def test_refined_frequency_on_notes(self, extractor):
        spectrum = empty_spectrum()
        best_bin = add_peak(spectrum, 440.0)
        peaks = extractor.extract(spectrum)
        assert peaks[0].frequency == pytest.approx(best_bin * SAMPLE_RATE / FFT_SIZE, abs=0.01)


class TestRepeatability:

    def test_same_spectrum_same_peaks(self, extractor):
        spectrum = empty_spectrum()
        for frequency in (220.0, 261.63, 329.63):
            add_peak(spectrum, frequency)

        first = extractor.extract(spectrum)
        second = extractor.extract(spectrum)

        assert first == second
        assert len(first) == 3

    def test_spectrum_not_modified(self, extractor):
        spectrum = empty_spectrum()
        add_peak(spectrum, 110.0, -40.0)
        add_peak(spectrum, 220.0, -55.0)
        before = spectrum.copy()

        extractor.extract(spectrum)

        np.testing.assert_array_equal(spectrum, before)
