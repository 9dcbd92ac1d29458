"""
YouTube thumbnail derivation.

A lecture only stores the link to its video. The thumbnail shown on the
lecture cards is derived from the video id:

    https://img.youtube.com/vi/<video id>/maxresdefault.jpg

Supported link shapes (checked in this order, first match wins):
- https://youtu.be/<id>?t=5
- https://www.youtube.com/watch?v=<id>&t=5
- https://www.youtube.com/embed/<id>
- https://www.youtube.com/live/<id>?si=...

This is best-effort enrichment: anything unrecognized yields "".
"""

from __future__ import annotations

import logging
import re
from typing import Any, MutableMapping, Optional
from urllib.parse import parse_qs, urlsplit

from lecturesync.model import RESERVED_KEYS

LOGGER = logging.getLogger(__name__)

THUMBNAIL_HOST = "img.youtube.com"
THUMBNAIL_TEMPLATE = "https://img.youtube.com/vi/{video_id}/maxresdefault.jpg"


def _after_marker(url: str, marker: str) -> Optional[str]:
    """
    Return the text after marker, cut at the first '?' or '&'.
    """
    _, _, tail = url.partition(marker)
    video_id = re.split(r"[?&]", tail, maxsplit=1)[0]
    return video_id or None


def _extract_video_id(url: str) -> Optional[str]:
    if "youtu.be/" in url:
        return _after_marker(url, "youtu.be/")
    if "youtube.com/watch" in url:
        parts = urlsplit(url)
        # a watch link is only read as a full URL, "youtube.com/watch?v=x" is not one
        if not parts.scheme:
            return None
        values = parse_qs(parts.query).get("v")
        return values[0] if values else None
    if "youtube.com/embed/" in url:
        return _after_marker(url, "embed/")
    if "youtube.com/live/" in url:
        return _after_marker(url, "live/")
    return None


def canonicalize_thumbnail(url: Optional[str]) -> str:
    """
    Convert a YouTube video URL into its canonical thumbnail URL.

    Returns "" for empty input, unknown URL shapes and malformed URLs.
    """
    if not url:
        return ""

    try:
        video_id = _extract_video_id(str(url))
    except ValueError as exc:
        # urlsplit rejects e.g. broken IPv6 hosts
        LOGGER.warning("Invalid YouTube URL %r: %s", url, exc)
        return ""

    if not video_id:
        return ""
    return THUMBNAIL_TEMPLATE.format(video_id=video_id)


def needs_thumbnail_refresh(lecture: MutableMapping[str, Any]) -> bool:
    """
    A stored thumbnail is replaced when it is missing, is a copy of the video
    link (old admin UI behaviour) or is not hosted on img.youtube.com.
    """
    thumbnail = lecture.get("thumbnail_url") or ""
    return (
        not thumbnail
        or thumbnail == lecture.get("youtube_url")
        or THUMBNAIL_HOST not in thumbnail
    )


def backfill_thumbnails(document: MutableMapping[str, Any]) -> int:
    """
    Regenerate outdated thumbnails of every lecture in a lectures.json document.

    The document is modified in place. Returns how many lectures actually got
    a different thumbnail, so a second run over the same document returns 0.
    """
    updated = 0

    for batch_key, batch in document.items():
        if batch_key in RESERVED_KEYS or not isinstance(batch, dict):
            continue
        lectures = batch.get("lectures")
        if not isinstance(lectures, dict):
            continue

        for course_id, course_lectures in lectures.items():
            if not isinstance(course_lectures, list):
                continue
            for lecture in course_lectures:
                if not isinstance(lecture, dict) or not lecture.get("youtube_url"):
                    continue
                if not needs_thumbnail_refresh(lecture):
                    continue

                generated = canonicalize_thumbnail(lecture["youtube_url"])
                if generated == lecture.get("thumbnail_url"):
                    continue

                lecture["thumbnail_url"] = generated
                updated += 1
                LOGGER.info(
                    "Updated %s - Course %s - Lecture: %s",
                    batch_key,
                    course_id,
                    lecture.get("title", ""),
                )

    return updated
