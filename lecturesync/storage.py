"""
Persistent storage of the lecture document (lectures.json).

The document has this shape:

    {
      "liveClassAnnouncement": {...} | null,
      "globalAnnouncements": [...],
      "Batch A": {"lectures": {"1": [lecture, ...], "2": [...]}},
      "Batch B": {"lectures": {"101": [...], ...}}
    }

Design rationale:
- The document is always read and written as a whole.
- Writes are atomic (temp file + rename), so a crash never leaves half a file.
- The API server edits the same file, so a sync must not run while the
  admin UI is saving lectures.
- Stores are objects passed into the pipeline, so tests can use
  MemoryDocumentStore instead of touching real files.
"""

from __future__ import annotations

import contextlib
import copy
import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from lecturesync.errors import StoreIOError
from lecturesync.model import RESERVED_KEYS, BatchSpec, CourseScheduleMap, LectureRecord

LOGGER = logging.getLogger(__name__)


def _apply_mode(tmp_name: str, target: Path) -> None:
    """
    Give the temp file the permissions of the document it replaces.

    NamedTemporaryFile creates files with mode 0600; the API server may read
    lectures.json as another user. New documents get 0666 minus the umask.
    """
    if target.exists():
        shutil.copymode(target, tmp_name)
        return

    umask = os.umask(0)
    os.umask(umask)
    os.chmod(tmp_name, 0o666 & ~umask)


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


class DocumentStore:
    """
    Whole-document read/write interface.
    """

    def load(self) -> Dict[str, Any]:
        raise NotImplementedError

    def save(self, document: Dict[str, Any]) -> None:
        raise NotImplementedError


class JsonDocumentStore(DocumentStore):
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"JsonDocumentStore({str(self.path)!r})"

    def load(self) -> Dict[str, Any]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise StoreIOError(f"Cannot read lecture document {self.path}: {exc}") from exc

        if not isinstance(data, dict):
            raise StoreIOError(f"Lecture document {self.path} must contain a JSON object")
        return data

    def save(self, document: Dict[str, Any]) -> None:
        """
        Write the document atomically.

        The JSON is written to a temp file in the same folder and then renamed
        over the old document, so readers see either the old or the new file.
        """
        payload = json.dumps(document, indent=2, ensure_ascii=False)
        tmp_name: Optional[str] = None

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            _apply_mode(tmp_name, self.path)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            if tmp_name is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
            raise StoreIOError(f"Cannot write lecture document {self.path}: {exc}") from exc

        LOGGER.debug("Wrote %d bytes to %s", len(payload), self.path)


class MemoryDocumentStore(DocumentStore):
    """
    Keeps the document in memory. Used by tests.
    """

    def __init__(self, document: Optional[Dict[str, Any]] = None) -> None:
        self.document: Dict[str, Any] = copy.deepcopy(document) if document is not None else {}
        self.saves = 0

    def load(self) -> Dict[str, Any]:
        return copy.deepcopy(self.document)

    def save(self, document: Dict[str, Any]) -> None:
        self.document = copy.deepcopy(document)
        self.saves += 1


# ---------------------------------------------------------------------------
# Document <-> schedule
# ---------------------------------------------------------------------------


def existing_schedule(document: Dict[str, Any], batches: Iterable[BatchSpec]) -> CourseScheduleMap:
    """
    Read the current lectures of every batch as LectureRecord lists.

    Missing batches or courses simply yield empty mappings.
    """
    schedule: CourseScheduleMap = {}

    for batch in batches:
        batch_data = document.get(batch.key)
        lectures = batch_data.get("lectures") if isinstance(batch_data, dict) else None
        courses: Dict[str, list] = {}

        if isinstance(lectures, dict):
            for course_key, entries in lectures.items():
                if not isinstance(entries, list):
                    LOGGER.warning("Ignoring malformed lecture list for %s course %s", batch.key, course_key)
                    continue
                try:
                    course_id = int(course_key)
                except ValueError:
                    course_id = 0
                courses[str(course_key)] = [
                    LectureRecord.from_dict(entry, batch=batch.key, course_id=course_id)
                    for entry in entries
                    if isinstance(entry, dict)
                ]

        schedule[batch.key] = courses

    return schedule


def build_document(previous: Dict[str, Any], schedule: CourseScheduleMap) -> Dict[str, Any]:
    """
    Build the replacement document from a reconciled schedule.

    The announcement keys are copied unchanged from the previous document.
    Other keys (also non-"lectures" keys inside a batch) are carried over as-is;
    only the lecture lists of the synced batches are replaced.
    """
    document: Dict[str, Any] = {}

    for key in RESERVED_KEYS:
        if key in previous:
            document[key] = copy.deepcopy(previous[key])

    for batch_key, courses in schedule.items():
        old_batch = previous.get(batch_key)
        batch_data: Dict[str, Any] = {
            "lectures": {course_id: [r.to_dict() for r in records] for course_id, records in courses.items()}
        }
        if isinstance(old_batch, dict):
            for key, value in old_batch.items():
                if key != "lectures":
                    batch_data[key] = copy.deepcopy(value)
        document[batch_key] = batch_data

    for key, value in previous.items():
        if key not in document:
            document[key] = copy.deepcopy(value)

    return document
