"""
Tests for src/services/slot_generator.py and the calendar settings schema
it consumes.
"""
import uuid
import pytest
from pydantic import ValidationError

from src.schemas.calendar import CalendarConfig, WorkingWindow, time_to_minutes, minutes_to_time
from src.services.slot_generator import (
    DURATION_KEYS,
    DurationBucket,
    empty_day_table,
    ensure_complete_buckets,
    generate_day_slots,
)
from conftest import WEEKDAY_HOURS, WEEKEND_HOURS

MONDAY = "2025-01-13"
SATURDAY = "2025-01-18"


def _config(working_hours, buffer=0) -> CalendarConfig:
    return CalendarConfig.from_row(working_hours, {"bufferMinutes": buffer})


def _roster(*configs):
    ids = [uuid.uuid4() for _ in configs]
    return ids, dict(zip(ids, configs))


def _times(entries):
    return [t for t, _ in entries]


# ---------------------------------------------------------------------------
# Bucket completeness
# ---------------------------------------------------------------------------


class TestBuckets:
    def test_duration_keys(self):
        assert DURATION_KEYS == ("30", "45", "60", "90", "120", "150", "180", "240", "300", "360")
        assert DurationBucket.MIN_90.key == "90"

    def test_empty_table_has_every_bucket(self):
        table = empty_day_table()
        assert set(table) == set(DURATION_KEYS)
        assert all(v == [] for v in table.values())

    def test_ensure_complete_buckets_fills_missing(self):
        table = ensure_complete_buckets({"60": [["09:00", 1]]})
        assert set(table) == set(DURATION_KEYS)
        assert table["60"] == [["09:00", 1]]
        assert table["360"] == []

    def test_ensure_complete_buckets_drops_unknown_keys(self):
        table = ensure_complete_buckets({"15": [["09:00", 1]], "30": []})
        assert "15" not in table

    def test_ensure_complete_buckets_handles_none(self):
        assert ensure_complete_buckets(None) == empty_day_table()

    def test_zero_providers_gives_complete_empty_table(self):
        table = generate_day_slots([], {}, MONDAY)
        assert table == empty_day_table()


# ---------------------------------------------------------------------------
# generate_day_slots
# ---------------------------------------------------------------------------


class TestGenerateDaySlots:
    def test_two_identical_providers_count_two(self):
        ids, calendars = _roster(_config(WEEKDAY_HOURS), _config(WEEKDAY_HOURS))
        table = generate_day_slots(ids, calendars, MONDAY)

        assert table["60"][0] == ["09:00", 2]
        assert table["60"][-1] == ["16:00", 2]
        assert len(table["60"]) == 15
        assert all(count == 2 for _, count in table["60"])

    def test_no_duplicate_times(self):
        ids, calendars = _roster(_config(WEEKDAY_HOURS), _config(WEEKDAY_HOURS))
        table = generate_day_slots(ids, calendars, MONDAY)
        for entries in table.values():
            times = _times(entries)
            assert len(times) == len(set(times))

    def test_times_sorted_ascending(self):
        ids, calendars = _roster(_config(WEEKDAY_HOURS))
        table = generate_day_slots(ids, calendars, MONDAY)
        for entries in table.values():
            minutes = [time_to_minutes(t) for t in _times(entries)]
            assert minutes == sorted(minutes)

    def test_weekday_and_weekend_providers_are_exclusive(self):
        weekday = _config(WEEKDAY_HOURS)
        weekend = _config(WEEKEND_HOURS)
        ids, calendars = _roster(weekday, weekend)

        monday = generate_day_slots(ids, calendars, MONDAY)
        assert monday["60"][0] == ["09:00", 1]
        assert "07:00" not in _times(monday["60"])

        saturday = generate_day_slots(ids, calendars, SATURDAY)
        assert saturday["60"][0] == ["07:00", 1]
        assert saturday["60"][-1] == ["12:00", 1]
        assert all(time_to_minutes(t) < time_to_minutes("13:00") for t in _times(saturday["30"]))
        assert "09:00" in _times(saturday["60"])  # 09:00 is inside the weekend window too
        assert all(count == 1 for _, count in saturday["60"])

    def test_off_day_contributes_nothing(self):
        ids, calendars = _roster(_config(WEEKDAY_HOURS))
        assert generate_day_slots(ids, calendars, SATURDAY) == empty_day_table()

    def test_buffer_shrinks_usable_window(self):
        ids, calendars = _roster(_config(WEEKDAY_HOURS, buffer=30))
        table = generate_day_slots(ids, calendars, MONDAY)
        assert table["60"][-1] == ["15:30", 1]
        assert len(table["60"]) == 14

    def test_long_duration_exactly_fits(self):
        """A six-hour weekend window holds exactly one 360-minute start."""
        ids, calendars = _roster(_config(WEEKEND_HOURS))
        table = generate_day_slots(ids, calendars, SATURDAY)
        assert table["360"] == [["07:00", 1]]
        assert table["300"] == [["07:00", 1], ["07:30", 1], ["08:00", 1]]

    def test_duration_longer_than_window_is_empty(self):
        ids, calendars = _roster(_config({"mon": {"start": "09:00", "end": "11:00"}}))
        table = generate_day_slots(ids, calendars, MONDAY)
        assert table["120"] == [["09:00", 1]]
        assert table["150"] == []
        assert table["360"] == []

    def test_overlapping_windows_aggregate(self):
        morning = _config({"mon": {"start": "09:00", "end": "12:00"}})
        day = _config({"mon": {"start": "10:00", "end": "17:00"}})
        ids, calendars = _roster(morning, day)
        table = dict((t, c) for t, c in generate_day_slots(ids, calendars, MONDAY)["60"])

        assert table["09:00"] == 1
        assert table["10:00"] == 2
        assert table["11:00"] == 2
        assert table["11:30"] == 1
        assert table["16:00"] == 1

    def test_single_provider_grid_starts_at_window_start(self):
        ids, calendars = _roster(_config({"mon": {"start": "09:15", "end": "11:00"}}))
        table = generate_day_slots(ids, calendars, MONDAY)
        assert _times(table["30"]) == ["09:15", "09:45", "10:15"]

    def test_misaligned_providers_count_at_each_others_times(self):
        on_the_hour = _config({"mon": {"start": "09:00", "end": "17:00"}})
        quarter_past = _config({"mon": {"start": "09:15", "end": "17:00"}})
        ids, calendars = _roster(on_the_hour, quarter_past)
        sixty = dict((t, c) for t, c in generate_day_slots(ids, calendars, MONDAY)["60"])

        assert sixty["09:00"] == 1
        assert sixty["09:15"] == 2
        assert sixty["10:00"] == 2
        assert sixty["15:45"] == 2
        assert sixty["16:00"] == 2
        assert "16:15" not in sixty

    def test_misaligned_counts_respect_buffer(self):
        on_the_hour = _config({"mon": {"start": "09:00", "end": "12:00"}}, buffer=30)
        quarter_past = _config({"mon": {"start": "09:15", "end": "12:00"}})
        ids, calendars = _roster(on_the_hour, quarter_past)
        sixty = dict((t, c) for t, c in generate_day_slots(ids, calendars, MONDAY)["60"])

        # 10:45 + 60 runs past the first provider's 11:30 usable end
        assert sixty["09:45"] == 2
        assert sixty["10:30"] == 2
        assert sixty["10:45"] == 1
        assert sixty["11:00"] == 1

    def test_every_entry_within_window_bounds(self):
        ids, calendars = _roster(_config(WEEKDAY_HOURS, buffer=15), _config(WEEKEND_HOURS))
        for target in (MONDAY, SATURDAY):
            table = generate_day_slots(ids, calendars, target)
            for key, entries in table.items():
                for time_str, count in entries:
                    assert count >= 1
                    start = time_to_minutes(time_str)
                    assert start >= time_to_minutes("07:00")
                    assert start + int(key) <= time_to_minutes("17:00")

    def test_provider_without_calendar_is_skipped(self):
        with_calendar = uuid.uuid4()
        without_calendar = uuid.uuid4()
        calendars = {with_calendar: _config(WEEKDAY_HOURS)}
        table = generate_day_slots([with_calendar, without_calendar], calendars, MONDAY)
        assert table["60"][0] == ["09:00", 1]

    def test_accepts_provider_objects(self):
        class _Provider:
            def __init__(self, pid):
                self.id = pid

        pid = uuid.uuid4()
        table = generate_day_slots([_Provider(pid)], {pid: _config(WEEKDAY_HOURS)}, MONDAY)
        assert table["30"][0] == ["09:00", 1]

    def test_custom_step(self):
        ids, calendars = _roster(_config(WEEKDAY_HOURS))
        table = generate_day_slots(ids, calendars, MONDAY, step_minutes=60)
        assert _times(table["60"])[:3] == ["09:00", "10:00", "11:00"]

    @pytest.mark.parametrize("step", [0, -30])
    def test_non_positive_step_rejected(self, step):
        with pytest.raises(ValueError):
            generate_day_slots([], {}, MONDAY, step_minutes=step)

    def test_invalid_date_rejected(self):
        with pytest.raises(ValueError):
            generate_day_slots([], {}, "2025-13-40")


# ---------------------------------------------------------------------------
# Calendar settings schema
# ---------------------------------------------------------------------------


class TestCalendarConfig:
    def test_time_conversions(self):
        assert time_to_minutes("09:30") == 570
        assert minutes_to_time(570) == "09:30"
        assert minutes_to_time(0) == "00:00"

    @pytest.mark.parametrize("value", ["9:30", "24:00", "12:60", "", "noon"])
    def test_time_to_minutes_rejects(self, value):
        with pytest.raises(ValueError):
            time_to_minutes(value)

    @pytest.mark.parametrize("key", ["bufferMinutes", "buffer_minutes", "bufferTime"])
    def test_buffer_aliases(self, key):
        config = CalendarConfig.from_row(WEEKDAY_HOURS, {key: 15})
        assert config.buffer_minutes == 15

    def test_buffer_defaults_to_zero(self):
        assert CalendarConfig.from_row(WEEKDAY_HOURS, None).buffer_minutes == 0

    def test_negative_buffer_rejected(self):
        with pytest.raises(ValidationError):
            CalendarConfig.from_row(WEEKDAY_HOURS, {"bufferMinutes": -5})

    def test_window_start_must_precede_end(self):
        with pytest.raises(ValidationError):
            WorkingWindow(start="17:00", end="09:00")

    def test_unknown_weekday_rejected(self):
        with pytest.raises(ValidationError):
            CalendarConfig.from_row({"monday": {"start": "09:00", "end": "17:00"}}, {})

    def test_window_for_unlisted_day_is_none(self):
        config = CalendarConfig.from_row({"mon": {"start": "09:00", "end": "17:00"}}, {})
        assert config.window_for("tue") is None
        assert config.window_for("mon").start_minutes == 540

    def test_unknown_settings_keys_are_kept(self):
        config = CalendarConfig.from_row(WEEKDAY_HOURS, {"bufferMinutes": 0, "color": "blue"})
        assert config.buffer_minutes == 0
