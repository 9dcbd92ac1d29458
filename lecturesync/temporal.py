"""
Date and time normalization for timetable cells.

The timetable export writes dates as MM-DD-YY and time slots as
"01:00PM to 02:00PM". lectures.json stores ISO dates (YYYY-MM-DD) and
24-hour start times (HH:MM).

Both helpers return None instead of raising: one bad cell must never abort a run.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Optional

# First "H:MM AM/PM" token of a cell, only the start of the range is kept
_TIME_RE = re.compile(r"(\d{1,2}):(\d{2})(AM|PM)", re.IGNORECASE)


def normalize_date(value: Optional[str]) -> Optional[str]:
    """
    Convert 'MM-DD-YY' to 'YYYY-MM-DD'.

    The year is always placed in the 2000s ("24" -> "2024"). There is no
    century rollover: exports from 2100 onwards would need a different rule.
    """
    text = (value or "").strip()
    if not text:
        return None

    parts = [p.strip() for p in text.split("-")]
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        return None

    month, day, year = parts
    if len(year) != 2:
        return None

    try:
        parsed = date(int(f"20{year}"), int(month), int(day))
    except ValueError:
        return None

    return parsed.isoformat()


def normalize_time(value: Optional[str]) -> Optional[str]:
    """
    Extract the start time of a slot like '01:00PM to 02:00PM' as 24-hour 'HH:MM'.

    12 PM -> 12:00, 12 AM -> 00:00. Returns None when no time token is found.
    """
    match = _TIME_RE.search(value or "")
    if not match:
        return None

    hours = int(match.group(1))
    minutes = int(match.group(2))
    period = match.group(3).upper()

    if not (0 <= hours <= 12 and 0 <= minutes <= 59):
        return None

    if period == "PM" and hours != 12:
        hours += 12
    elif period == "AM" and hours == 12:
        hours = 0

    return f"{hours:02d}:{minutes:02d}"
