"""
Common helpers shared by services and routes: time conversion, slot and room parsing.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pacer.errors import InvalidRoomOrKey

_SLOT_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
_ROOM_RE = re.compile(r"^course-(.+)-module-(\d+)-lesson-(.+)$")


def iso_format(dt: Optional[datetime]) -> Optional[str]:
    """Format a stored (naive UTC) datetime as ISO string with Z suffix."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.isoformat() + "Z"


def to_storage(dt: datetime) -> datetime:
    """Aware datetime -> naive UTC, the representation every DateTime column holds."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def from_storage(dt: Optional[datetime]) -> Optional[datetime]:
    """Naive UTC column value -> aware UTC datetime."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def resolve_zone(*candidates: Optional[str]) -> ZoneInfo:
    """First non-empty zone name wins; an unknown name is an invalid key."""
    for name in candidates:
        if not name or not name.strip():
            continue
        try:
            return ZoneInfo(name.strip())
        except (ZoneInfoNotFoundError, ValueError):
            raise InvalidRoomOrKey(f"Unknown time zone: {name}")
    return ZoneInfo("UTC")


def local_date(instant: datetime, zone: ZoneInfo) -> date:
    """Calendar date of an instant in the given zone."""
    return from_storage(instant).astimezone(zone).date()


def parse_slot_time(value: Optional[str]) -> time:
    """Parse a daily slot "HH:MM" (24h)."""
    m = _SLOT_RE.match((value or "").strip())
    if not m:
        raise InvalidRoomOrKey(f"Invalid daily lesson time: {value!r}")
    hours, minutes = int(m.group(1)), int(m.group(2))
    if hours > 23 or minutes > 59:
        raise InvalidRoomOrKey(f"Invalid daily lesson time: {value!r}")
    return time(hours, minutes)


def slot_instant(day: date, slot: time, zone: ZoneInfo) -> datetime:
    """Local wall-clock slot on a given day -> aware UTC instant."""
    return datetime.combine(day, slot, tzinfo=zone).astimezone(timezone.utc)


@dataclass(frozen=True)
class RoomKey:
    course_id: str
    module_number: int
    lesson_number: str

    def __str__(self) -> str:
        return f"course-{self.course_id}-module-{self.module_number}-lesson-{self.lesson_number}"


def parse_room_name(room_name: str) -> RoomKey:
    """Parse course-{courseId}-module-{n}-lesson-{lessonNumber}."""
    m = _ROOM_RE.match((room_name or "").strip())
    if not m:
        raise InvalidRoomOrKey(f"Invalid room name format: {room_name}")
    return RoomKey(course_id=m.group(1), module_number=int(m.group(2)), lesson_number=m.group(3))
