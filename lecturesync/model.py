"""
Central data model definitions used across the project.

This module defines the canonical structure of lecture records and cohorts so that:
- all modules share the same field names
- the JSON key names of lectures.json live in exactly one place
- the reconciler can work on typed objects instead of raw dicts
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional


@dataclass
class LectureRecord:
    """
    Represents one recorded lecture as stored in lectures.json.

    title and youtube_url carry the identity of a lecture across sync runs.
    date/time/day/delivered/currentlyLive are derived from the timetable.
    """

    id: int
    title: str
    youtube_url: str
    thumbnail_url: str
    date: Optional[str]
    time: Optional[str]
    day: Optional[str]
    course_id: int
    batch: str
    delivered: bool = False
    currently_live: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], batch: str = "", course_id: int = 0) -> "LectureRecord":
        """
        Build a record from a lectures.json entry.

        Entries written by hand or by older versions of the admin UI may miss
        fields, so every key falls back to a neutral default.
        """
        raw_id = data.get("id", 0)
        try:
            record_id = int(raw_id)
        except (TypeError, ValueError):
            record_id = 0

        raw_course = data.get("course_id", course_id)
        try:
            record_course = int(raw_course)
        except (TypeError, ValueError):
            record_course = course_id

        return cls(
            id=record_id,
            title=str(data.get("title") or ""),
            youtube_url=str(data.get("youtube_url") or ""),
            thumbnail_url=str(data.get("thumbnail_url") or ""),
            date=data.get("date"),
            time=data.get("time"),
            day=data.get("day"),
            course_id=record_course,
            batch=str(data.get("batch") or batch),
            delivered=bool(data.get("delivered", False)),
            currently_live=bool(data.get("currentlyLive", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Return the JSON representation (key order matches lectures.json).
        """
        return {
            "title": self.title,
            "youtube_url": self.youtube_url,
            "thumbnail_url": self.thumbnail_url,
            "date": self.date,
            "time": self.time,
            "day": self.day,
            "course_id": self.course_id,
            "batch": self.batch,
            "delivered": self.delivered,
            "currentlyLive": self.currently_live,
            "id": self.id,
        }


@dataclass(frozen=True)
class BatchSpec:
    """
    One cohort and the inclusive range of course ids it owns.
    """

    key: str
    first_course_id: int
    last_course_id: int

    def course_ids(self) -> Iterator[int]:
        return iter(range(self.first_course_id, self.last_course_id + 1))

    def owns(self, course_id: int) -> bool:
        return self.first_course_id <= course_id <= self.last_course_id


DEFAULT_BATCHES = (
    BatchSpec("Batch A", 1, 15),
    BatchSpec("Batch B", 101, 115),
)


# Top-level keys of lectures.json that are not batches, never touched by a sync
RESERVED_KEYS = ("liveClassAnnouncement", "globalAnnouncements")

# batch key -> course id (as string) -> ordered lectures
CourseScheduleMap = Dict[str, Dict[str, List[LectureRecord]]]
