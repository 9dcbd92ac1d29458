"""
Error types shared by all modules.

Fatal conditions are raised as exceptions and abort a run before anything is
written. Single cells that cannot be normalized are NOT errors: the
normalizers return None and the reconciler logs and skips that slot.
"""

from __future__ import annotations


class LectureSyncError(Exception):
    """Base class for all fatal lecturesync errors."""


class StructuralParseError(LectureSyncError):
    """The timetable export is structurally broken (bad quoting, no header row)."""


class StoreIOError(LectureSyncError):
    """The export or the lecture document could not be read or written."""


class ConfigError(LectureSyncError):
    """The config file contains invalid values."""
