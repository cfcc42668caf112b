"""
Progress report CLI.

Usage::

    python -m roadmap_engine.report --state progress.json --format csv
    python -m roadmap_engine.report --db data/progress.db --user u1 --format pdf

``--state`` accepts either a ``ProgressState`` document or a previous
JSON export (version 1.0). Exits 1 when the state cannot be loaded.
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

from roadmap_engine.models import ExportOptions, ProgressState
from roadmap_engine.progress.export import export_progress_data, import_progress_data
from roadmap_engine.progress.store import ProgressStore
from roadmap_engine.progress.validation import validate_learning_path
from roadmap_engine.utils import parse_timestamp, setup_logging

logger = logging.getLogger(__name__)


def load_state_file(path: str) -> Optional[ProgressState]:
    """Read *path* as a state or export document; ``None`` when invalid."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            text = fh.read()
        doc = json.loads(text)
    except (OSError, ValueError) as exc:
        logger.error("Cannot read state file %s: %s", path, exc)
        return None

    if isinstance(doc, dict) and "version" in doc:
        return import_progress_data(text)
    if not isinstance(doc, dict):
        logger.error("Expected a JSON object in %s", path)
        return None

    try:
        state = ProgressState.model_validate(doc)
    except ValidationError as exc:
        logger.error("Invalid progress state in %s (%d errors)", path, exc.error_count())
        return None

    for path_id, lp in state.learning_paths.items():
        for warning in validate_learning_path(lp).warnings:
            logger.warning("path=%s | %s", path_id, warning)
    return state


def _parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="python -m roadmap_engine.report",
        description="Export learning progress as JSON, CSV or a text report.",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--state", help="Path to a progress state or export JSON file.")
    source.add_argument("--db", help="Path to a SQLite progress store (requires --user).")
    parser.add_argument("--user", help="User id whose records are read from --db.")
    parser.add_argument(
        "--format",
        choices=["json", "csv", "pdf"],
        default="json",
        help="Output format (default: json).",
    )
    parser.add_argument(
        "--no-analytics",
        action="store_true",
        help="Omit the analytics block.",
    )
    parser.add_argument(
        "--no-achievements",
        action="store_true",
        help="Omit achievements.",
    )
    parser.add_argument("--start", help="Only count activity on or after this date (ISO-8601).")
    parser.add_argument("--end", help="Only count activity on or before this date (ISO-8601).")
    parser.add_argument("--out", help="Write the export to this file instead of stdout.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    return parser.parse_args(argv)


def main(argv: List[str] | None = None) -> None:
    """CLI main entry-point."""
    args = _parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    if args.db:
        if not args.user:
            logger.error("--db requires --user")
            sys.exit(1)
        state: Optional[ProgressState] = ProgressStore(args.db).load_state(args.user)
    else:
        state = load_state_file(args.state)
    if state is None:
        sys.exit(1)

    for flag in ("start", "end"):
        raw = getattr(args, flag)
        if raw and parse_timestamp(raw) is None:
            logger.error("Invalid --%s date: %s", flag, raw)
            sys.exit(1)

    options = ExportOptions(
        format=args.format,
        include_analytics=not args.no_analytics,
        include_achievements=not args.no_achievements,
        start=args.start,
        end=args.end,
    )
    text = export_progress_data(state, options)

    if args.out:
        with open(args.out, "w", encoding="utf-8") as fh:
            fh.write(text)
            fh.write("\n")
        logger.info("report_written | path=%s | format=%s", args.out, args.format)
    else:
        sys.stdout.write(text + "\n")
    sys.exit(0)


if __name__ == "__main__":
    main()
