"""
Analyze a WAV recording frame by frame.

Reads a WAV file, steps through it one hop at a time and runs the frame
analyzer on the most recent fft_size samples, printing one line per frame.
Useful for checking detector behaviour on recorded strums and chords.

Usage:
    python scripts/analyze_wav.py recording.wav --mode chord
    python scripts/analyze_wav.py strum.wav --mode poly --tuning drop_d
    python scripts/analyze_wav.py strum.wav --mode poly --tuning my_tuning.csv --report out.json
"""

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path

import numpy as np
from scipy.io import wavfile

from chord_tuner.analyzer import DetectionMode, Frame, FrameAnalyzer, FrameResult
from chord_tuner.autocorrelation import GUITAR_RANGE, WIDE_RANGE
from chord_tuner.constants import A4_REFERENCE, FFT_SIZE
from chord_tuner.logging_config import setup_logging
from chord_tuner.tunings import TUNINGS, get_tuning, load_tuning


def load_wav(path: str) -> tuple[int, np.ndarray]:
    """
    Load a WAV file as mono float samples in [-1, 1].

    Returns:
        (sample_rate, samples)
    """
    sample_rate, data = wavfile.read(path)

    if data.ndim > 1:
        data = data.mean(axis=1)

    if np.issubdtype(data.dtype, np.integer):
        info = np.iinfo(data.dtype)
        if info.min == 0:
            # Unsigned 8-bit PCM is centred on 128
            data = (data.astype(np.float64) - (info.max + 1) / 2) / ((info.max + 1) / 2)
        else:
            data = data.astype(np.float64) / max(abs(info.min), info.max)
    else:
        data = data.astype(np.float64)

    return int(sample_rate), data


def iter_frames(samples: np.ndarray, fft_size: int, hop_size: int):
    """Yield (start_index, buffer) for each full analysis window."""
    for end in range(fft_size, len(samples) + 1, hop_size):
        yield end - fft_size, samples[end - fft_size : end]


def format_result(result: FrameResult) -> str:
    """One-line summary of a frame result."""
    if result.mode == DetectionMode.MONO:
        if result.note is None:
            return "---"
        n = result.note
        return f"{n.label:<4} {n.frequency:8.2f} Hz {n.cents:+6.1f}c"

    if result.mode == DetectionMode.POLY:
        parts = []
        for r in result.readings:
            if r.note is None:
                parts.append(f"{r.target.id}:{r.target.label}  --  ")
            else:
                mark = "*" if r.in_tune else " "
                parts.append(f"{r.target.id}:{r.target.label} {r.cents:+6.1f}{mark}")
        return " | ".join(parts)

    notes = " ".join(n.label for n in result.peaks) or "---"
    chord = result.chord.full_name if result.chord else "?"
    return f"{chord:<16} [{notes}]"


def result_to_dict(time_s: float, result: FrameResult) -> dict:
    """JSON-friendly form of a frame result."""
    entry = {"time": round(time_s, 3), "valid": result.valid}
    if result.mode == DetectionMode.MONO:
        entry["note"] = asdict(result.note) if result.note else None
    elif result.mode == DetectionMode.POLY:
        entry["strings"] = [
            {
                "id": r.target.id,
                "label": r.target.label,
                "target_frequency": r.target.target_frequency,
                "frequency": r.note.frequency if r.note else None,
                "cents": r.cents if r.note else None,
                "in_tune": r.in_tune,
            }
            for r in result.readings
        ]
    else:
        entry["peaks"] = [asdict(n) for n in result.peaks]
        entry["chord"] = result.chord.full_name if result.chord else None
    return entry


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Frame-by-frame pitch and chord analysis of a WAV file")
    parser.add_argument("path", help="WAV file to analyze")
    parser.add_argument(
        "--mode",
        choices=[m.value for m in DetectionMode],
        default=DetectionMode.MONO.value,
        help="Detection mode (default: mono)",
    )
    parser.add_argument(
        "--tuning",
        default="standard",
        help=f"Preset ({', '.join(TUNINGS)}) or path to a tuning file (poly mode)",
    )
    parser.add_argument("--reference", type=float, default=A4_REFERENCE, help="A4 reference in Hz")
    parser.add_argument("--fft-size", type=int, default=FFT_SIZE, help="Analysis window size")
    parser.add_argument("--hop", type=int, default=2048, help="Samples between frames")
    parser.add_argument(
        "--guitar-range",
        action="store_true",
        help="Use the 70-1100 Hz autocorrelation range instead of 40-1200 Hz",
    )
    parser.add_argument("--report", help="Write per-frame results to this JSON file")
    parser.add_argument("--log-level", default=None, help="Log level for chord_tuner loggers")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    if not Path(args.path).exists():
        print(f"File not found: {args.path}", file=sys.stderr)
        return 1

    if args.tuning in TUNINGS:
        tuning = get_tuning(args.tuning)
    else:
        try:
            tuning = load_tuning(args.tuning)
        except (FileNotFoundError, ValueError) as e:
            print(f"Invalid tuning: {e}", file=sys.stderr)
            return 1

    sample_rate, samples = load_wav(args.path)
    print(f"Loaded {args.path}: {len(samples)} samples at {sample_rate} Hz "
          f"({len(samples) / sample_rate:.1f}s)")

    analyzer = FrameAnalyzer(
        sample_rate=sample_rate,
        fft_size=args.fft_size,
        reference=args.reference,
        mode=DetectionMode(args.mode),
        tuning=tuning,
        autocorrelation=GUITAR_RANGE if args.guitar_range else WIDE_RANGE,
    )

    entries = []
    total_frames = 0
    valid_frames = 0
    for start, buffer in iter_frames(samples, args.fft_size, args.hop):
        result = analyzer.advance(Frame(samples=buffer))
        time_s = (start + args.fft_size) / sample_rate
        print(f"{time_s:7.3f}s  {format_result(result)}")
        total_frames += 1
        valid_frames += result.valid
        if args.report:
            entries.append(result_to_dict(time_s, result))

    print(f"\n{valid_frames}/{total_frames} frames with detections")

    if args.report:
        report = {
            "file": str(Path(args.path).absolute()),
            "mode": args.mode,
            "sample_rate": sample_rate,
            "fft_size": args.fft_size,
            "hop_size": args.hop,
            "reference": args.reference,
            "tuning": tuning.name if args.mode == DetectionMode.POLY.value else None,
            "frames": entries,
        }
        with open(args.report, "w") as f:
            json.dump(report, f, indent=2)
        print(f"Report saved: {args.report}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
