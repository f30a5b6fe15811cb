"""CLI entrypoint for notesplit: subcommand dispatcher."""

import argparse
import json
import logging
import sys
from pathlib import Path


def _add_shared_args(parser: argparse.ArgumentParser) -> None:
    """Add arguments shared between subcommands."""
    parser.add_argument("-v", "--verbose", action="store_true", default=False,
                        help="Show per-segment debug logging")


def _add_analyze_args(parser: argparse.ArgumentParser) -> None:
    """Add arguments for the analyze subcommand."""
    parser.add_argument("input_file", help="Mono or stereo PCM WAV file (first channel is used).")
    parser.add_argument("--output-dir", default="./notesplit-output",
                        help="Output directory (default: ./notesplit-output)")
    parser.add_argument("--frame-size", type=int, default=2048,
                        help="Analysis window in samples; shorter segments are dropped (default: 2048)")
    parser.add_argument("--hop-size", type=int, default=None,
                        help="Frame stride in samples (default: frame size / 3)")
    parser.add_argument("--confidence", type=float, default=0.0,
                        help="Minimum pitch confidence, 0-1 (default: 0)")
    parser.add_argument("--median-filter", type=int, default=1,
                        help="Median filter window in frames, 1=off (default: 1)")
    parser.add_argument("--reference-pitch", type=float, default=440.0,
                        help="Frequency of A4 in Hz (default: 440)")
    parser.add_argument("--oracle", default="auto",
                        choices=["auto", "autocorr", "aubio"],
                        help="Onset/pitch detection backend (default: auto)")
    parser.add_argument("--segment-policy", default="skip",
                        choices=["skip", "merge"],
                        help="What to do with segments shorter than a frame (default: skip)")
    parser.add_argument("--save-segments", action="store_true", default=False,
                        help="Write every segment as a WAV inside a zip archive")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments with subcommands."""
    parser = argparse.ArgumentParser(
        prog="notesplit",
        description="Split melodic recordings into pitch-labelled note segments",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Segment a recording and track its pitch",
        description="Detect onsets, segment, track pitch and optionally export segments",
    )
    _add_shared_args(analyze_parser)
    _add_analyze_args(analyze_parser)

    note_parser = subparsers.add_parser(
        "note",
        help="Convert frequencies to note names",
    )
    note_parser.add_argument("frequencies", type=float, nargs="+", help="Frequencies in Hz")
    note_parser.add_argument("--reference-pitch", type=float, default=440.0,
                             help="Frequency of A4 in Hz (default: 440)")
    _add_shared_args(note_parser)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    return args


def _run_analyze(args: argparse.Namespace) -> None:
    """Run the analysis pipeline and write its outputs."""
    from notesplit.errors import ExportFailure, InvalidConfiguration, OracleInitializationFailure
    from notesplit.notes import frequency_to_note
    from notesplit.oracle import get_oracle
    from notesplit.pipeline import analyze
    from notesplit.types import AnalysisOptions, SampleBuffer
    from notesplit.wav import read_wav

    input_path = Path(args.input_file)
    if not input_path.exists():
        print(f"Error: file not found: {input_path}", file=sys.stderr)
        sys.exit(1)

    samples, sr = read_wav(input_path)
    options = AnalysisOptions(
        save_segments=args.save_segments,
        reference_pitch=args.reference_pitch,
        base_name=input_path.name,
        segment_policy=args.segment_policy,
    )

    try:
        oracle = get_oracle(args.oracle)
    except ImportError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    export_error = None
    try:
        result = analyze(
            SampleBuffer(samples, sr),
            frame_size=args.frame_size,
            hop_size=args.hop_size,
            confidence_threshold=args.confidence,
            median_filter_size=args.median_filter,
            options=options,
            oracle=oracle,
        )
    except (InvalidConfiguration, OracleInitializationFailure) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except ExportFailure as e:
        export_error = e
        result = e.result

    manifest_path = output_dir / f"{input_path.stem}_analysis.json"
    manifest_path.write_text(json.dumps(result.to_dict(), indent=2))

    print(f"Onsets: {len(result.onsets)}")
    print(f"Segments: {len(result.segments)}")
    for seg in result.segments:
        note = "-"
        if seg.dominant_frequency > 0:
            note = frequency_to_note(seg.dominant_frequency, args.reference_pitch)
        print(f"  {seg.index:3d}  {seg.start_time:8.3f}s - {seg.end_time:8.3f}s  "
              f"{seg.dominant_frequency:8.2f} Hz  {note}")
    print("Output:")
    print(f"  {manifest_path.name}")

    if export_error is not None:
        print(f"Error: {export_error}", file=sys.stderr)
        sys.exit(1)

    if result.archive is not None:
        zip_path = output_dir / f"{result.archive_name}.zip"
        zip_path.write_bytes(result.archive)
        print(f"  {zip_path.name}")


def _run_note(args: argparse.Namespace) -> None:
    """Print the note name for each frequency."""
    from notesplit.notes import frequency_to_note

    for freq in args.frequencies:
        note = frequency_to_note(freq, args.reference_pitch) or "-"
        print(f"{freq:g}\t{note}")


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint."""
    args = parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=level, format="%(name)s %(levelname)s: %(message)s")

    if args.command == "analyze":
        _run_analyze(args)
    elif args.command == "note":
        _run_note(args)


if __name__ == "__main__":
    main()
