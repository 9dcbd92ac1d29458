"""
CLI (Command Line Interface).

This module provides the terminal commands of the sync tool, e.g.:

    lecturesync sync "Lecture json.csv" --document server/data/lectures.json
    lecturesync sync https://docs.google.com/.../pub?output=csv --dry-run
    lecturesync thumbnails --document server/data/lectures.json
    lecturesync groups "Lecture json.csv"

Note:
- The API server edits the same lectures.json, do not run a sync while
  lectures are being edited in the admin UI.
- Progress goes to stderr (logging), the summary table to stdout.
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
from pathlib import Path

from rich import box
from rich.console import Console
from rich.table import Table

from lecturesync.config import SyncConfig, load_config
from lecturesync.errors import LectureSyncError
from lecturesync.logging_utils import configure_logging
from lecturesync.pipeline import fix_thumbnails, read_export, sync_schedule
from lecturesync.reconcile import batch_for_column
from lecturesync.storage import JsonDocumentStore
from lecturesync.timetable import extract_course_groups, parse

console = Console()


def _resolve_config(args: argparse.Namespace) -> SyncConfig:
    """
    Load the config file (if any) and apply command line overrides.
    """
    config = load_config(args.config)
    if getattr(args, "document", None):
        config = dataclasses.replace(config, document_path=Path(args.document))
    return config


def _print_summary(counts: dict[str, dict[str, int]]) -> None:
    """
    Print lectures per course; courses without lectures are left out.
    """
    table = Table(title="Summary", box=box.SIMPLE)
    table.add_column("Batch")
    table.add_column("Course", justify="right")
    table.add_column("Lectures", justify="right")

    total = 0
    for batch_key, courses in counts.items():
        for course_id, count in courses.items():
            if count > 0:
                table.add_row(batch_key, course_id, str(count))
                total += count

    console.print(table)
    console.print(f"Total lectures: {total}")


def _cmd_sync(args: argparse.Namespace) -> int:
    """
    Re-date the stored lectures according to the timetable export.
    """
    config = _resolve_config(args)
    store = JsonDocumentStore(config.document_path)

    export_text = read_export(args.export)
    result = sync_schedule(export_text, store, config=config, dry_run=args.dry_run)

    if result.written:
        console.print(f"lectures.json updated successfully: {config.document_path}")
    else:
        console.print("Dry run, nothing written.")
    _print_summary(result.counts)
    return 0


def _cmd_thumbnails(args: argparse.Namespace) -> int:
    """
    Regenerate missing or outdated YouTube thumbnails.
    """
    config = _resolve_config(args)
    store = JsonDocumentStore(config.document_path)

    updated = fix_thumbnails(store, dry_run=args.dry_run)

    if args.dry_run:
        console.print(f"{updated} lecture thumbnails would be updated.")
    else:
        console.print(f"Successfully updated {updated} lecture thumbnails!")
    return 0


def _cmd_groups(args: argparse.Namespace) -> int:
    """
    Show which courses each timetable column feeds.
    """
    config = _resolve_config(args)
    matrix = parse(read_export(args.export))
    groups = extract_course_groups(matrix, config.slot_columns)

    table = Table(title="Course groups", box=box.SIMPLE)
    table.add_column("Column", justify="right")
    table.add_column("Batch")
    table.add_column("Courses")

    for column, course_ids in groups.items():
        batch = batch_for_column(column, config.batches)
        pretty = ", ".join(str(c) for c in course_ids) if course_ids else "(unused)"
        table.add_row(str(column), batch.key, pretty)

    console.print(table)
    return 0


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="lecturesync", description="Sync lectures.json with the timetable export")
    sub = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", type=str, default=None, help="JSON config file")
    common.add_argument("-v", "--verbose", action="store_true", help="Show every matched slot")

    p_sync = sub.add_parser("sync", parents=[common], help="Re-date lectures from a timetable export")
    p_sync.add_argument("export", type=str, help="CSV export file or URL (e.g. 'Lecture json.csv')")
    p_sync.add_argument("--document", type=str, default=None, help="Path of lectures.json")
    p_sync.add_argument("--dry-run", action="store_true", help="Reconcile but do not write")

    p_thumbs = sub.add_parser("thumbnails", parents=[common], help="Fix missing/outdated lecture thumbnails")
    p_thumbs.add_argument("--document", type=str, default=None, help="Path of lectures.json")
    p_thumbs.add_argument("--dry-run", action="store_true", help="Count but do not write")

    p_groups = sub.add_parser("groups", parents=[common], help="Show the course groups of a timetable export")
    p_groups.add_argument("export", type=str, help="CSV export file or URL")

    return parser


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(logging.DEBUG if args.verbose else logging.INFO)

    handlers = {
        "sync": _cmd_sync,
        "thumbnails": _cmd_thumbnails,
        "groups": _cmd_groups,
    }
    handler = handlers.get(args.command)
    if handler is None:
        raise SystemExit(2)

    try:
        raise SystemExit(handler(args))
    except LectureSyncError as exc:
        logging.getLogger(__name__).error("%s", exc)
        raise SystemExit(1)
