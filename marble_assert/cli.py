"""
CLI interface for the marble assertion engine.

Supports two modes:
  render    Print aligned marble diagrams for a set of timelines.
  compare   Compare expected and actual events, print the annotated diff.
"""
from __future__ import annotations

import argparse
import logging
import sys

from marble_assert.models import DEFAULT_COMPACT_THRESHOLD, DEFAULT_MIN_WIDTH


def _setup_logging(verbose: bool = False) -> None:
    """Configure structured logging."""
    level = logging.DEBUG if verbose else logging.INFO
    fmt = "%(asctime)s [%(levelname)-7s] %(name)s — %(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="marble_assert",
        description="Marble diagram renderer and expected/actual event matcher",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug-level logging",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # --- render ---
    render_p = sub.add_parser("render", help="Render aligned marble diagrams")
    render_p.add_argument("--timelines", required=True, help="Path to timelines.json")
    render_p.add_argument(
        "--threshold", type=int, default=DEFAULT_COMPACT_THRESHOLD,
        help=f"Idle ticks before a gap is compacted (default {DEFAULT_COMPACT_THRESHOLD})",
    )
    render_p.add_argument(
        "--min-width", type=int, default=DEFAULT_MIN_WIDTH,
        help=f"Minimum diagram width (default {DEFAULT_MIN_WIDTH})",
    )

    # --- compare ---
    compare_p = sub.add_parser("compare", help="Compare expected and actual events")
    compare_p.add_argument("--expectations", required=True, help="Path to expectations.json")
    compare_p.add_argument("--expected", required=True, help="Path to expected.jsonl")
    compare_p.add_argument("--actual", required=True, help="Path to actual.jsonl")

    args = parser.parse_args(argv)
    _setup_logging(verbose=args.verbose)

    logger = logging.getLogger("marble_assert.cli")

    if args.command == "render":
        from marble_assert.loader import load_timelines
        from marble_assert.models import RenderConfig
        from marble_assert.renderer import print_all

        try:
            config = RenderConfig(threshold=args.threshold, min_width=args.min_width)
            for line in print_all(load_timelines(args.timelines), config):
                print(line)
        except Exception as exc:
            logger.exception("Render failed")
            print(f"ERROR: {exc}", file=sys.stderr)
            sys.exit(1)

    elif args.command == "compare":
        from marble_assert.matcher import compare_files

        try:
            matcher = compare_files(args.expectations, args.expected, args.actual)
        except Exception as exc:
            logger.exception("Compare failed")
            print(f"ERROR: {exc}", file=sys.stderr)
            sys.exit(1)

        if matcher.failed():
            print("MATCH FAILED ✗", file=sys.stderr)
            print(matcher.annotate(), file=sys.stderr)
            sys.exit(1)
        print("MATCH OK ✓")


if __name__ == "__main__":
    main()
