"""
Parsing of the weekly timetable export (CSV -> matrix).

Layout of the export:

    row 0    title row, ignored
    row 1    group header: column 0 is a label, columns 1..8 each contain
             something like "Morning [1, 2, 103]" -> course ids fed by that column
    row 2..  schedule rows: column 0 = date (MM-DD-YY), columns 1..8 = time
             slots ("01:00PM to 02:00PM" or empty), column 9 = weekday label

Important rules:
- Rows may have different lengths (spreadsheet exports drop trailing empty
  cells). Short rows are padded, they are NOT an error.
- Broken quoting is an error: the whole run must stop before anything is written.
- Cells stay raw strings, normalization happens in lecturesync.temporal.
"""

from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterator, List

from lecturesync.errors import StructuralParseError

LOGGER = logging.getLogger(__name__)

DEFAULT_SLOT_COLUMNS = 8

HEADER_ROW = 1
FIRST_SCHEDULE_ROW = 2

_BRACKET_RE = re.compile(r"\[([^\]]+)\]")


TimetableMatrix = List[List[str]]


@dataclass
class ScheduleRow:
    """
    One dated row of the timetable.

    slots maps column index (1..slot_columns) -> raw time slot text.
    """

    index: int
    date: str
    slots: Dict[int, str]
    day: str


# ---------------------------------------------------------------------------
# CSV -> matrix
# ---------------------------------------------------------------------------


def parse(raw_text: str) -> TimetableMatrix:
    """
    Parse the raw CSV export into a rectangular matrix of strings.
    """
    reader = csv.reader(io.StringIO(raw_text, newline=""), strict=True)

    rows: TimetableMatrix = []
    try:
        for row in reader:
            rows.append(list(row))
    except csv.Error as exc:
        raise StructuralParseError(f"Malformed timetable export near line {reader.line_num}: {exc}") from exc

    # pad ragged rows to the widest row
    width = max((len(r) for r in rows), default=0)
    for row in rows:
        row.extend([""] * (width - len(row)))

    return rows


def _cell(row: List[str], column: int) -> str:
    return row[column] if column < len(row) else ""


# ---------------------------------------------------------------------------
# Group header
# ---------------------------------------------------------------------------


def parse_course_group(cell: str) -> List[int]:
    """
    Extract the course ids of one header cell, e.g. "Slot 1 [1, 2, 103]" -> [1, 2, 103].

    A cell without brackets feeds no course.
    """
    match = _BRACKET_RE.search(cell or "")
    if not match:
        return []

    ids: List[int] = []
    for token in match.group(1).split(","):
        token = token.strip()
        if not token:
            continue
        try:
            course_id = int(token)
        except ValueError:
            LOGGER.warning("Ignoring non-numeric course id %r in group header cell %r", token, cell)
            continue
        if course_id not in ids:
            ids.append(course_id)
    return ids


def extract_course_groups(
    matrix: TimetableMatrix,
    slot_columns: int = DEFAULT_SLOT_COLUMNS,
) -> Dict[int, List[int]]:
    """
    Map every slot column (1..slot_columns) to the course ids listed in the header row.
    """
    if len(matrix) <= HEADER_ROW:
        raise StructuralParseError("Timetable export has no group header row (row 2)")

    header = matrix[HEADER_ROW]
    return {column: parse_course_group(_cell(header, column)) for column in range(1, slot_columns + 1)}


# ---------------------------------------------------------------------------
# Schedule rows
# ---------------------------------------------------------------------------


def iter_schedule_rows(
    matrix: TimetableMatrix,
    slot_columns: int = DEFAULT_SLOT_COLUMNS,
) -> Iterator[ScheduleRow]:
    """
    Yield every row below the group header in file order.

    The weekday label is the column right after the slot columns.
    """
    day_column = slot_columns + 1

    for index in range(FIRST_SCHEDULE_ROW, len(matrix)):
        row = matrix[index]
        yield ScheduleRow(
            index=index,
            date=_cell(row, 0),
            slots={column: _cell(row, column) for column in range(1, slot_columns + 1)},
            day=_cell(row, day_column),
        )
