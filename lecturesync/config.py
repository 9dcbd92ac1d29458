"""
Configuration for sync runs.

Defaults match the current timetable:
- two cohorts, "Batch A" (courses 1..15) and "Batch B" (courses 101..115)
- 8 time slot columns
- lectures.json inside the package data folder

An optional JSON file can override any of these, e.g.:

    {
      "document_path": "server/data/lectures.json",
      "slot_columns": 8,
      "batches": [
        {"key": "Batch A", "first_course_id": 1, "last_course_id": 15},
        {"key": "Batch B", "first_course_id": 101, "last_course_id": 115}
      ]
    }

Relative paths are resolved against the folder of the config file.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple

from lecturesync.errors import ConfigError, StoreIOError
from lecturesync.model import DEFAULT_BATCHES, BatchSpec
from lecturesync.timetable import DEFAULT_SLOT_COLUMNS

LOGGER = logging.getLogger(__name__)


def _default_document_path() -> Path:
    """
    Return the default path of lectures.json inside the package.

    Using a function instead of a constant makes testing easier,
    because tests can override the path.
    """
    base_dir = Path(__file__).resolve().parent
    return base_dir / "data" / "lectures.json"


@dataclass(frozen=True)
class SyncConfig:
    batches: Tuple[BatchSpec, ...] = DEFAULT_BATCHES
    slot_columns: int = DEFAULT_SLOT_COLUMNS
    document_path: Path = field(default_factory=_default_document_path)

    @property
    def batch_keys(self) -> Tuple[str, ...]:
        return tuple(b.key for b in self.batches)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], base_path: Optional[Path] = None) -> "SyncConfig":
        """
        Build a config from a parsed JSON mapping; missing keys keep their defaults.
        """
        base = base_path or Path.cwd()
        defaults = cls()

        batches = defaults.batches
        raw_batches = data.get("batches")
        if raw_batches is not None:
            if not isinstance(raw_batches, list) or not raw_batches:
                raise ValueError("'batches' must be a non-empty list")
            parsed = []
            for entry in raw_batches:
                try:
                    parsed.append(
                        BatchSpec(
                            key=str(entry["key"]),
                            first_course_id=int(entry["first_course_id"]),
                            last_course_id=int(entry["last_course_id"]),
                        )
                    )
                except (KeyError, TypeError, ValueError) as exc:
                    raise ValueError(f"Invalid batch entry: {entry!r}") from exc
            batches = tuple(parsed)

        slot_columns = int(data.get("slot_columns", defaults.slot_columns))
        if slot_columns < 1:
            raise ValueError("'slot_columns' must be at least 1")

        document_path = defaults.document_path
        if data.get("document_path"):
            document_path = Path(str(data["document_path"]))
            if not document_path.is_absolute():
                document_path = (base / document_path).resolve()

        return cls(batches=batches, slot_columns=slot_columns, document_path=document_path)


def load_config(path: str | Path | None = None) -> SyncConfig:
    """
    Load a SyncConfig from a JSON file, or return the defaults when no path is given.
    """
    if path is None:
        return SyncConfig()

    config_path = Path(path)
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise StoreIOError(f"Cannot read config file {config_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a JSON object")

    try:
        config = SyncConfig.from_mapping(data, base_path=config_path.resolve().parent)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid config file {config_path}: {exc}") from exc

    LOGGER.debug("Loaded config from %s: %s", config_path, config)
    return config
