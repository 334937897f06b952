"""Unit tests for common utils (pure functions only)."""
from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

import pytest

from pacer.errors import InvalidRoomOrKey
from pacer.utils.common import (
    RoomKey,
    from_storage,
    iso_format,
    local_date,
    parse_room_name,
    parse_slot_time,
    resolve_zone,
    slot_instant,
    to_storage,
)


@pytest.mark.unit
class TestIsoFormat:
    def test_appends_z(self):
        result = iso_format(datetime(2025, 1, 15, 12, 30, 0))
        assert result == "2025-01-15T12:30:00Z"

    def test_none(self):
        assert iso_format(None) is None

    def test_aware_converted_to_utc(self):
        dt = datetime(2025, 1, 15, 13, 30, tzinfo=ZoneInfo("Africa/Lagos"))
        assert iso_format(dt) == "2025-01-15T12:30:00Z"


@pytest.mark.unit
class TestStorageConversion:
    def test_aware_to_naive_utc(self):
        dt = datetime(2025, 6, 1, 9, 0, tzinfo=ZoneInfo("America/New_York"))
        assert to_storage(dt) == datetime(2025, 6, 1, 13, 0)

    def test_naive_is_utc_on_the_way_back(self):
        assert from_storage(datetime(2025, 6, 1, 13, 0)) == datetime(2025, 6, 1, 13, 0, tzinfo=timezone.utc)

    def test_local_date_crosses_midnight(self):
        # 23:30 UTC is already the next day in Lagos (UTC+1)
        assert local_date(datetime(2025, 6, 1, 23, 30), ZoneInfo("Africa/Lagos")) == date(2025, 6, 2)


@pytest.mark.unit
class TestResolveZone:
    def test_first_non_empty_wins(self):
        assert resolve_zone(None, "", "Africa/Lagos", "UTC") == ZoneInfo("Africa/Lagos")

    def test_defaults_to_utc(self):
        assert resolve_zone(None, None) == ZoneInfo("UTC")

    def test_unknown_zone_is_invalid(self):
        with pytest.raises(InvalidRoomOrKey):
            resolve_zone("Mars/Olympus_Mons")


@pytest.mark.unit
class TestSlotTime:
    @pytest.mark.parametrize("value,expected", [("09:00", time(9, 0)), ("7:05", time(7, 5)), (" 23:59 ", time(23, 59))])
    def test_valid(self, value, expected):
        assert parse_slot_time(value) == expected

    @pytest.mark.parametrize("value", ["", None, "9", "24:00", "12:60", "9am", "09:00:00"])
    def test_invalid(self, value):
        with pytest.raises(InvalidRoomOrKey):
            parse_slot_time(value)

    def test_slot_instant_follows_dst(self):
        zone = ZoneInfo("America/New_York")
        # EST (UTC-5) before the 2025-03-09 switch, EDT (UTC-4) after
        assert slot_instant(date(2025, 3, 8), time(9, 0), zone) == datetime(2025, 3, 8, 14, 0, tzinfo=timezone.utc)
        assert slot_instant(date(2025, 3, 10), time(9, 0), zone) == datetime(2025, 3, 10, 13, 0, tzinfo=timezone.utc)


@pytest.mark.unit
class TestRoomName:
    def test_parse(self):
        key = parse_room_name("course-65f0a1b2-module-3-lesson-3.2")
        assert key == RoomKey(course_id="65f0a1b2", module_number=3, lesson_number="3.2")

    def test_course_id_may_contain_dashes(self):
        key = parse_room_name("course-abc-def-module-1-lesson-1.1")
        assert key.course_id == "abc-def"

    def test_str_round_trips(self):
        assert str(parse_room_name("course-c1-module-2-lesson-2.1")) == "course-c1-module-2-lesson-2.1"

    @pytest.mark.parametrize("name", ["", "c1-module-1-lesson-1", "course-c1-module-x-lesson-1", "course-c1-lesson-1"])
    def test_malformed(self, name):
        with pytest.raises(InvalidRoomOrKey):
            parse_room_name(name)
