"""Local snapshot cache.

Each snapshot lives in its own JSON file, data/cache/{kind}/{key}.json:

    {"written_at": "2025-07-01T06:00:00+00:00", "payload": {...}}

get() honours the per-kind TTL, peek() ignores it (stale fallback and the
previous snapshot for change detection). A file that cannot be read or
validated is treated as absent. Last write wins; there is no locking.
"""

import json
import re
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, TypeAdapter, ValidationError

from dualis.logging import get_logger
from dualis.models import GradeReport, ScheduleWeek, Semester

logger = get_logger(__name__)


class CacheKind(str, Enum):
    SCHEDULE = "schedule"  # key: week start, ISO date
    GRADES = "grades"  # key: semester id or "current"
    SEMESTERS = "semesters"  # key: SEMESTERS_KEY
    NOTICES = "notices"  # key: NOTICES_KEY, seen notification ids


SEMESTERS_KEY = "all"
NOTICES_KEY = "seen"
CURRENT_SEMESTER_KEY = "current"

_ADAPTERS: dict[CacheKind, TypeAdapter] = {
    CacheKind.SCHEDULE: TypeAdapter(ScheduleWeek),
    CacheKind.GRADES: TypeAdapter(GradeReport),
    CacheKind.SEMESTERS: TypeAdapter(list[Semester]),
    CacheKind.NOTICES: TypeAdapter(list[str]),
}


class CacheEntry(BaseModel):
    written_at: datetime
    payload: Any


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _safe_key(key: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]", "_", key) or "_"


class CacheStore:
    """Typed, file-backed snapshot store.

    Args:
        cache_dir: Root directory; one subdirectory per CacheKind.
        ttl: Per-kind overrides of default_ttl.
        default_ttl: TTL for kinds not listed in ttl.
        clock: Returns the current time (timezone-aware).
    """

    def __init__(
        self,
        cache_dir: str | Path,
        ttl: dict[CacheKind, timedelta] | None = None,
        default_ttl: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.cache_dir = Path(cache_dir)
        self.ttl = ttl or {}
        self.default_ttl = default_ttl
        self.clock = clock

    def ttl_for(self, kind: CacheKind) -> timedelta:
        return self.ttl.get(kind, self.default_ttl)

    def path_for(self, kind: CacheKind, key: str) -> Path:
        return self.cache_dir / kind.value / f"{_safe_key(key)}.json"

    def _load(self, kind: CacheKind, key: str) -> tuple[datetime, Any] | None:
        path = self.path_for(kind, key)
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                entry = CacheEntry.model_validate(json.load(f))
            value = _ADAPTERS[kind].validate_python(entry.payload)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning("cache_entry_unreadable", kind=kind.value, key=key, error=str(e))
            return None
        written_at = entry.written_at
        if written_at.tzinfo is None:
            written_at = written_at.replace(tzinfo=timezone.utc)
        return written_at, value

    def get(self, kind: CacheKind, key: str) -> Any | None:
        """Return the cached value, or None if missing, unreadable or expired."""
        loaded = self._load(kind, key)
        if loaded is None:
            logger.debug("cache_miss", kind=kind.value, key=key)
            return None
        written_at, value = loaded
        if self.clock() - written_at > self.ttl_for(kind):
            logger.debug("cache_expired", kind=kind.value, key=key, written_at=written_at.isoformat())
            return None
        logger.debug("cache_hit", kind=kind.value, key=key)
        return value

    def peek(self, kind: CacheKind, key: str) -> Any | None:
        """Return the cached value regardless of its age."""
        loaded = self._load(kind, key)
        return loaded[1] if loaded is not None else None

    def set(self, kind: CacheKind, key: str, value: Any) -> Path:
        """Overwrite the entry for (kind, key), stamped with the current time.

        Returns:
            Path to the written file.
        """
        path = self.path_for(kind, key)
        path.parent.mkdir(parents=True, exist_ok=True)
        entry = {
            "written_at": self.clock().isoformat(),
            "payload": _ADAPTERS[kind].dump_python(value, mode="json"),
        }
        with open(path, "w", encoding="utf-8") as f:
            json.dump(entry, f, indent=2, ensure_ascii=False)
        logger.debug("cache_written", kind=kind.value, key=key)
        return path

    def clear(self, kind: CacheKind, key: str | None = None) -> int:
        """Remove one entry, or every entry of kind when key is None.

        Returns:
            Number of files removed.
        """
        if key is not None:
            paths = [self.path_for(kind, key)]
        else:
            paths = list((self.cache_dir / kind.value).glob("*.json"))

        removed = 0
        for path in paths:
            if path.exists():
                path.unlink()
                removed += 1
        logger.info("cache_cleared", kind=kind.value, key=key, removed=removed)
        return removed
