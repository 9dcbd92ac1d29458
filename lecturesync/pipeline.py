"""
Sync runs (export -> reconcile -> lectures.json).

A run is one read-modify-write of the lecture document:

    1. read the timetable export (file or published sheet URL)
    2. parse it into a matrix
    3. load the whole lecture document
    4. reconcile in memory
    5. write the whole new document once, at the very end

Every fatal error happens before step 5, so a failed run leaves the old
document untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import requests

from lecturesync.config import SyncConfig
from lecturesync.errors import StoreIOError
from lecturesync.model import CourseScheduleMap
from lecturesync.reconcile import reconcile, summarize
from lecturesync.storage import DocumentStore, build_document, existing_schedule
from lecturesync.thumbnails import backfill_thumbnails
from lecturesync.timetable import parse

LOGGER = logging.getLogger(__name__)

HTTP_TIMEOUT = 30


@dataclass
class SyncResult:
    document: Dict[str, Any]
    schedule: CourseScheduleMap
    counts: Dict[str, Dict[str, int]]
    written: bool


# ---------------------------------------------------------------------------
# Export source
# ---------------------------------------------------------------------------


def read_export(source: str | Path) -> str:
    """
    Return the raw CSV text of the timetable export.

    source is either a local file or an http(s) URL, e.g. the CSV link of a
    published spreadsheet.
    """
    text = str(source)

    if text.startswith(("http://", "https://")):
        LOGGER.info("Downloading timetable export from %s", text)
        try:
            resp = requests.get(text, timeout=HTTP_TIMEOUT)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise StoreIOError(f"Cannot download timetable export {text}: {exc}") from exc
        # without a declared charset requests falls back to latin-1
        if "charset" not in resp.headers.get("Content-Type", "").lower():
            resp.encoding = "utf-8"
        return resp.text.lstrip("\ufeff")

    path = Path(source)
    try:
        # spreadsheet exports often start with a BOM
        return path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        raise StoreIOError(f"Cannot read timetable export {path}: {exc}") from exc


# ---------------------------------------------------------------------------
# Runs
# ---------------------------------------------------------------------------


def sync_schedule(
    export_text: str,
    store: DocumentStore,
    config: Optional[SyncConfig] = None,
    dry_run: bool = False,
    new_id: Optional[Callable[[], int]] = None,
) -> SyncResult:
    """
    Reconcile the lecture document with a timetable export.
    """
    config = config or SyncConfig()

    matrix = parse(export_text)
    previous = store.load()

    existing = existing_schedule(previous, config.batches)
    schedule = reconcile(matrix, existing, config=config, new_id=new_id)
    document = build_document(previous, schedule)

    written = False
    if dry_run:
        LOGGER.info("Dry run: lecture document left unchanged")
    else:
        store.save(document)
        written = True
        LOGGER.info("Lecture document updated")

    return SyncResult(document=document, schedule=schedule, counts=summarize(schedule), written=written)


def fix_thumbnails(store: DocumentStore, dry_run: bool = False) -> int:
    """
    Regenerate outdated thumbnails in the stored document.

    Returns the number of lectures that got a new thumbnail. The document is
    only written when something changed.
    """
    document = store.load()
    updated = backfill_thumbnails(document)

    if updated and not dry_run:
        store.save(document)
    return updated
