"""Command-line interface for the Deluge Kit Generator.

WHY: Users need a simple way to turn sliced samples into kits from the
terminal. The CLI is a thin layer: it parses flags, builds the output
placement, calls synthesize(), and reports what was written or failed.

HOW: Uses argparse to accept input files, the combine-all flag, output
placement (directory, kit name, or Deluge card with sample directory),
the row play mode and the number of extraction workers. Status messages
go to stderr; logging is configured from DELUGE_LOG_LEVEL (or INFO with
--verbose).

RULES:
- Positional arguments: one or more input WAV paths, in row order
- Glob expansion is left to the shell
- Exit code 0 when every file succeeded, 1 on any failure
- Status output goes to stderr (not stdout)
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from deluge_kitgen.config import (
    COMBINED_KIT_NAME,
    DEFAULT_PLAYBACK_MODE_NAME,
    DEFAULT_SAMPLE_DIRECTORY,
    EXTRACT_WORKERS,
    LOG_LEVEL,
    SUPPORTED_FORMATS,
    parse_playback_mode,
)
from deluge_kitgen.core.card import Card
from deluge_kitgen.core.ir import PlaybackMode
from deluge_kitgen.core.synthesizer import OutputTarget, synthesize
from deluge_kitgen.errors import KitGenError


def _status(msg: str) -> None:
    """Print a status message to stderr."""
    print(msg, file=sys.stderr, flush=True)


def _configure_logging(verbose: bool) -> None:
    level = logging.INFO if verbose else getattr(logging, LOG_LEVEL, logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    Separated from main() so tests can inspect the parser without
    running the pipeline.
    """
    parser = argparse.ArgumentParser(
        prog="deluge-kitgen",
        description="Generate Synthstrom Deluge kits from the regions "
                    "(cue markers) stored in WAV files.",
    )

    parser.add_argument(
        "files",
        nargs="+",
        help="Source WAV files. Row order follows the order given here.",
    )

    parser.add_argument(
        "--combine-all",
        action="store_true",
        help="Create a single kit containing the regions of all files. "
             "Files without regions are ignored.",
    )

    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory for the kit files (default: next to each source file).",
    )

    parser.add_argument(
        "--kit-name",
        default=COMBINED_KIT_NAME,
        help="Name of the combined kit with --combine-all (default: %(default)s).",
    )

    parser.add_argument(
        "--card",
        default=None,
        help="Root directory of a Deluge card. Kits are written to KITS/KITnnn.XML "
             "and samples are copied onto the card.",
    )

    parser.add_argument(
        "--sample-dir",
        default=DEFAULT_SAMPLE_DIRECTORY,
        help="Card directory samples are copied into with --card. Relative paths "
             "are inside SAMPLES/; absolute paths must be inside the card "
             "(default: %(default)s).",
    )

    parser.add_argument(
        "-f", "--force",
        action="store_true",
        help="Replace samples that already exist on the card.",
    )

    parser.add_argument(
        "--playback-mode",
        default=DEFAULT_PLAYBACK_MODE_NAME,
        choices=[m.name.lower() for m in PlaybackMode],
        type=str.lower,
        help="Sample play mode for every row (default: %(default)s).",
    )

    parser.add_argument(
        "--workers",
        type=int,
        default=EXTRACT_WORKERS,
        help="Number of files read in parallel (default: %(default)s).",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log progress details.",
    )

    return parser


def _build_output(args: argparse.Namespace) -> OutputTarget:
    card = Card.open(args.card) if args.card else None
    return OutputTarget(
        directory=Path(args.output_dir) if args.output_dir else None,
        kit_name=args.kit_name,
        card=card,
        sample_dir=Path(args.sample_dir),
        replace_samples=args.force,
        playback_mode=parse_playback_mode(args.playback_mode),
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the CLI.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    - Returns the process exit code
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.output_dir and not Path(args.output_dir).is_dir():
        _status("Error: Output directory does not exist: {}".format(args.output_dir))
        return 1

    for name in args.files:
        ext = Path(name).suffix.lower()
        if ext not in SUPPORTED_FORMATS:
            _status("Warning: '{}' does not look like a WAV file".format(name))

    try:
        output = _build_output(args)
        result = synthesize(
            args.files,
            combine_all=args.combine_all,
            output=output,
            workers=args.workers,
        )
    except KitGenError as e:
        if args.combine_all:
            _status("Error processing multiple samples: {}".format(e))
        else:
            _status("Error: {}".format(e))
        return 1

    for path in result.written:
        _status("Wrote kit: {}".format(path))
    for error in result.failures:
        _status("Error processing {}".format(error))

    _status("Done! {} kit(s) written, {} file(s) failed".format(
        len(result.written), len(result.failures)
    ))
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
