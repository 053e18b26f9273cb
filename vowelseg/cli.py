"""
VowelSeg CLI - Argument parsing and dispatch.

Responsibilities:
- Argument parsing
- Logging setup from verbosity
- Input file checks
- Printing errors
- Exit codes (0 success, 1 fatal run error, 2 usage error)

Forbidden:
- No segmentation logic
- No file extraction
"""

import argparse
import logging
import sys
from pathlib import Path

from vowelseg import __version__
from vowelseg import config as defaults


VERBOSITY_LEVELS = {0: logging.WARNING, 1: logging.INFO, 2: logging.DEBUG}


def _positive_float(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {text!r}") from None
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {text}")
    return value


def _positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {text!r}") from None
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {text}")
    return value


def _add_analysis_options(parser: argparse.ArgumentParser, verbosity_help: str) -> None:
    parser.add_argument(
        "--input",
        metavar="PATH",
        required=True,
        help="Path to the input sound file (WAV, or any format libsndfile reads).",
    )
    parser.add_argument(
        "-t", "--time-step",
        metavar="SECONDS",
        type=_positive_float,
        default=defaults.DEFAULT_TIME_STEP,
        help=f"Analysis time step (default: {defaults.DEFAULT_TIME_STEP}).",
    )
    parser.add_argument(
        "-w", "--window",
        metavar="SECONDS",
        type=_positive_float,
        default=defaults.DEFAULT_WINDOW,
        help=f"Formant analysis window (default: {defaults.DEFAULT_WINDOW}).",
    )
    parser.add_argument(
        "-mf", "--max-formant",
        metavar="HZ",
        type=_positive_int,
        default=defaults.DEFAULT_MAX_FORMANT,
        help=(
            f"Maximum formant (default: {defaults.DEFAULT_MAX_FORMANT}); "
            "recommended 5500 for female and 5000 for male voices."
        ),
    )
    parser.add_argument(
        "-v", "--verbosity",
        type=int,
        choices=sorted(VERBOSITY_LEVELS),
        default=0,
        help=verbosity_help,
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="vowelseg",
        description="Extract single-pitch, single-vowel segments from a recording.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command")

    # run subcommand
    run_parser = subparsers.add_parser(
        "run",
        help="Segment a recording and extract homogeneous voiced segments.",
        description=(
            "Segment a recording and extract homogeneous voiced segments.\n\n"
            "Creates <base>_<startMs>_<endMs>.txt (feature rows) and .mp3 files\n"
            "next to the input for every accepted segment."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    _add_analysis_options(
        run_parser,
        "0 = normal; 1 = basic diagnostic; 2 = line-by-line output.",
    )
    run_parser.add_argument(
        "-dp", "--pitch-percent",
        metavar="PERCENT",
        type=_positive_float,
        default=defaults.DEFAULT_PITCH_TOLERANCE,
        help=f"Max %% variance in pitch within a segment (default: {defaults.DEFAULT_PITCH_TOLERANCE:g}).",
    )
    run_parser.add_argument(
        "-df1", "--f1-percent",
        metavar="PERCENT",
        type=_positive_float,
        default=defaults.DEFAULT_F1_TOLERANCE,
        help=f"Max %% variance in F1 within a segment (default: {defaults.DEFAULT_F1_TOLERANCE:g}).",
    )
    run_parser.add_argument(
        "-df2", "--f2-percent",
        metavar="PERCENT",
        type=_positive_float,
        default=defaults.DEFAULT_F2_TOLERANCE,
        help=f"Max %% variance in F2 within a segment (default: {defaults.DEFAULT_F2_TOLERANCE:g}).",
    )
    run_parser.add_argument(
        "--dry-run", "-test",
        dest="dry_run",
        action="store_true",
        help="Run analysis and segmentation but skip file extraction.",
    )
    run_parser.add_argument(
        "--features",
        metavar="PATH",
        help="Use an existing feature table instead of running the analysis.",
    )
    run_parser.add_argument(
        "--ffmpeg",
        metavar="PATH",
        default="ffmpeg",
        help="ffmpeg executable used for transcoding (default: ffmpeg).",
    )
    run_parser.add_argument(
        "--summary-json",
        metavar="PATH",
        help="Also write the run summary as JSON to PATH.",
    )

    # analyze subcommand
    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Only write the feature table (<base>.txt) for a recording.",
    )
    _add_analysis_options(analyze_parser, "0 = quiet; 1 or 2 = report analysis progress.")

    return parser


def _configure_logging(verbosity: int) -> None:
    logging.basicConfig(level=VERBOSITY_LEVELS[verbosity], format="%(message)s")


def cmd_run(args: argparse.Namespace) -> int:
    """
    Handle the 'run' subcommand.

    Returns exit code.
    """
    from vowelseg.config import ToleranceConfig
    from vowelseg.context import RunContext
    from vowelseg.errors import VowelSegError
    from vowelseg.pipeline import run_segmentation

    input_path = Path(args.input)
    features_path = Path(args.features) if args.features else None

    # The audio is only optional when nothing will be analysed or cut
    if not (args.dry_run and features_path is not None):
        if not input_path.is_file():
            print(f"Error: Input file not found: {input_path}", file=sys.stderr)
            return 1
    if features_path is not None and not features_path.is_file():
        print(f"Error: Feature table not found: {features_path}", file=sys.stderr)
        return 1

    try:
        ctx = RunContext(
            input_audio=input_path,
            config=ToleranceConfig.from_args(args),
            features_path=features_path,
            dry_run=args.dry_run,
            ffmpeg=args.ffmpeg,
            summary_json=Path(args.summary_json) if args.summary_json else None,
        )
        run_segmentation(ctx)
    except VowelSegError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


def cmd_analyze(args: argparse.Namespace) -> int:
    """
    Handle the 'analyze' subcommand.

    Returns exit code.
    """
    from vowelseg.audio import analyze_features
    from vowelseg.config import ToleranceConfig
    from vowelseg.context import RunContext
    from vowelseg.errors import VowelSegError

    input_path = Path(args.input)
    if not input_path.is_file():
        print(f"Error: Input file not found: {input_path}", file=sys.stderr)
        return 1

    try:
        config = ToleranceConfig(
            time_step=args.time_step,
            window=args.window,
            max_formant=args.max_formant,
        ).validate()
        ctx = RunContext(input_audio=input_path, config=config)
        table_path = analyze_features(input_path, ctx.feature_table_path, config)
    except VowelSegError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Feature table written: {table_path}")
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    _configure_logging(args.verbosity)

    if args.command == "run":
        sys.exit(cmd_run(args))
    if args.command == "analyze":
        sys.exit(cmd_analyze(args))
