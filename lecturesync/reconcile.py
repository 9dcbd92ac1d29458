"""
Schedule reconciliation (timetable matrix + existing lectures -> new lectures).

For every batch and course, the timetable is walked top to bottom. Each filled
time slot of a course takes the NEXT stored lecture of that course (by
position) and gives it the new date/time/day:

    existing  [L1, L2, L3]          (titles + video links)
    timetable  Mon 10:00, Wed 10:00, Fri 10:00
    result    [L1@Mon, L2@Wed, L3@Fri]

Important rules (DO NOT CHANGE):
- Matching is positional, never by title.
- No new lectures are invented: extra slots get nothing once the stored
  lectures of a course are used up.
- Stored lectures beyond the last matched slot are dropped.
- Column -> batch: column 1 -> first batch, column 2 -> second batch, and so
  on round-robin (odd/even with two batches).

Mismatches are reported as warnings, the result is not changed by them.
"""

from __future__ import annotations

import itertools
import logging
import time
from collections import Counter
from typing import Callable, Dict, Optional, Sequence

from lecturesync.config import SyncConfig
from lecturesync.model import BatchSpec, CourseScheduleMap, LectureRecord
from lecturesync.temporal import normalize_date, normalize_time
from lecturesync.thumbnails import canonicalize_thumbnail
from lecturesync.timetable import TimetableMatrix, extract_course_groups, iter_schedule_rows

LOGGER = logging.getLogger(__name__)


class IdFactory:
    """
    Monotonic lecture id generator for one sync run.

    Ids start at the current time in milliseconds, so they stay in the same
    range as ids created by the admin UI, but never repeat within a run.
    """

    def __init__(self, start: Optional[int] = None) -> None:
        if start is None:
            start = int(time.time() * 1000)
        self._counter = itertools.count(start)

    def __call__(self) -> int:
        return next(self._counter)


def batch_for_column(column: int, batches: Sequence[BatchSpec]) -> BatchSpec:
    """
    Return the batch that owns a slot column (1-based).
    """
    return batches[(column - 1) % len(batches)]


def reconcile(
    matrix: TimetableMatrix,
    existing: CourseScheduleMap,
    config: Optional[SyncConfig] = None,
    new_id: Optional[Callable[[], int]] = None,
) -> CourseScheduleMap:
    """
    Re-date the existing lectures according to the timetable matrix.

    Returns a complete CourseScheduleMap: every course in every batch range is
    present, courses without matched slots get an empty list.
    """
    config = config or SyncConfig()
    new_id = new_id or IdFactory()
    batches = config.batches

    groups = extract_course_groups(matrix, config.slot_columns)

    # next stored lecture to use, per batch and course
    cursors: Dict[str, Dict[int, int]] = {}
    result: CourseScheduleMap = {}
    for batch in batches:
        cursors[batch.key] = {cid: 0 for cid in batch.course_ids()}
        result[batch.key] = {str(cid): [] for cid in batch.course_ids()}

    exhausted: Counter = Counter()
    out_of_range: set = set()

    for row in iter_schedule_rows(matrix, config.slot_columns):
        line = row.index + 1

        if not row.date.strip():
            continue

        date = normalize_date(row.date)
        if date is None:
            LOGGER.warning("Row %d: cannot parse date %r, row skipped", line, row.date)
            continue

        LOGGER.info("Processing date: %s -> %s (%s)", row.date, date, row.day)

        for column, slot in row.slots.items():
            if not slot.strip():
                continue

            start = normalize_time(slot)
            if start is None:
                LOGGER.warning(
                    "Row %d, column %d: cannot parse time slot %r, slot skipped (courses %s)",
                    line,
                    column,
                    slot,
                    groups.get(column, []),
                )
                continue

            batch = batch_for_column(column, batches)
            course_ids = groups.get(column, [])
            LOGGER.debug("  Column %d: %s -> %s for courses %s (%s)", column, slot, start, course_ids, batch.key)

            for course_id in course_ids:
                if not batch.owns(course_id):
                    if (batch.key, course_id) not in out_of_range:
                        LOGGER.warning(
                            "Column %d lists course %d, which is outside the course range of %s; ignored",
                            column,
                            course_id,
                            batch.key,
                        )
                        out_of_range.add((batch.key, course_id))
                    continue

                stored = existing.get(batch.key, {}).get(str(course_id), [])
                index = cursors[batch.key][course_id]

                if index >= len(stored):
                    exhausted[(batch.key, course_id)] += 1
                    continue

                source = stored[index]
                record = LectureRecord(
                    id=new_id(),
                    title=source.title,
                    youtube_url=source.youtube_url,
                    thumbnail_url=source.thumbnail_url or canonicalize_thumbnail(source.youtube_url),
                    date=date,
                    time=start,
                    day=row.day or None,
                    course_id=course_id,
                    batch=batch.key,
                    delivered=False,
                    currently_live=False,
                )
                result[batch.key][str(course_id)].append(record)
                cursors[batch.key][course_id] = index + 1

                LOGGER.debug("    Added lecture %d for course %d: %s", index + 1, course_id, source.title)

    _report_mismatches(batches, existing, cursors, exhausted)
    return result


def _report_mismatches(
    batches: Sequence[BatchSpec],
    existing: CourseScheduleMap,
    cursors: Dict[str, Dict[int, int]],
    exhausted: Counter,
) -> None:
    """
    Log courses whose slot count did not match their stored lecture count.
    """
    for batch in batches:
        stored_courses = existing.get(batch.key, {})

        for course_key, stored in stored_courses.items():
            try:
                course_id = int(course_key)
            except ValueError:
                course_id = None
            if course_id is None or not batch.owns(course_id):
                if stored:
                    LOGGER.warning(
                        "%s course %s is outside the batch course range; its %d lectures were dropped",
                        batch.key,
                        course_key,
                        len(stored),
                    )
                continue

            used = cursors[batch.key][course_id]
            if used < len(stored):
                LOGGER.warning(
                    "%s course %d: %d stored lectures had no timetable slot and were dropped",
                    batch.key,
                    course_id,
                    len(stored) - used,
                )

        for course_id in batch.course_ids():
            missing = exhausted.get((batch.key, course_id), 0)
            if missing:
                LOGGER.warning(
                    "%s course %d: %d timetable slots had no stored lecture left and were skipped",
                    batch.key,
                    course_id,
                    missing,
                )


def summarize(schedule: CourseScheduleMap) -> Dict[str, Dict[str, int]]:
    """
    Return the number of lectures per batch and course.
    """
    return {
        batch_key: {course_id: len(records) for course_id, records in courses.items()}
        for batch_key, courses in schedule.items()
    }
