from datetime import date, datetime, time

import pytest

from consultancy.errors import BookingValidationError, TimestampGranularityMismatch
from consultancy.scheduling.time_grid import (
    SlotPattern,
    TimeSlot,
    daily_slots,
    month_days,
    normalize_slot,
    range_slots,
    slot_key,
)


def test_daily_slots_yields_nine_hourly_slots_within_business_hours() -> None:
    slots = daily_slots(date(2025, 6, 2))

    assert [slot.timestamp.hour for slot in slots] == [8, 9, 10, 11, 12, 13, 14, 15, 16]
    assert all(slot.duration_minutes == 60 for slot in slots)
    assert slots[-1].end == datetime(2025, 6, 2, 17, 0)


def test_daily_slots_is_repeatable() -> None:
    assert daily_slots(date(2025, 6, 2)) == daily_slots(date(2025, 6, 2))


def test_range_slots_matches_requested_window() -> None:
    slots = range_slots(date(2025, 6, 2), date(2025, 6, 3), 'daily', time(9, 0), time(11, 0))

    assert [slot.timestamp for slot in slots] == [
        datetime(2025, 6, 2, 9, 0),
        datetime(2025, 6, 2, 10, 0),
        datetime(2025, 6, 3, 9, 0),
        datetime(2025, 6, 3, 10, 0),
    ]


def test_range_slots_weekdays_only_skips_weekend() -> None:
    slots = range_slots(date(2025, 6, 2), date(2025, 6, 15), SlotPattern.WEEKDAYS_ONLY)

    assert slots
    assert all(slot.timestamp.weekday() < 5 for slot in slots)
    assert len(slots) == 10 * 9


def test_range_slots_weekends_only_keeps_weekend() -> None:
    slots = range_slots(date(2025, 6, 2), date(2025, 6, 15), 'weekendsOnly')

    assert {slot.timestamp.date() for slot in slots} == {
        date(2025, 6, 7),
        date(2025, 6, 8),
        date(2025, 6, 14),
        date(2025, 6, 15),
    }


def test_range_slots_is_empty_for_reversed_range() -> None:
    assert range_slots(date(2025, 6, 3), date(2025, 6, 2)) == []


@pytest.mark.parametrize(
    ('raw_value', 'expected'),
    [
        ('daily', SlotPattern.DAILY),
        ('weekdaysOnly', SlotPattern.WEEKDAYS_ONLY),
        (' weekdays ', SlotPattern.WEEKDAYS_ONLY),
        ('weekends_only', SlotPattern.WEEKENDS_ONLY),
        (SlotPattern.WEEKENDS_ONLY, SlotPattern.WEEKENDS_ONLY),
    ],
)
def test_slot_pattern_parse_accepts_known_spellings(raw_value, expected: SlotPattern) -> None:
    assert SlotPattern.parse(raw_value) is expected


def test_slot_pattern_parse_rejects_unknown_value() -> None:
    with pytest.raises(BookingValidationError) as exception_info:
        SlotPattern.parse('fortnightly')

    assert exception_info.value.detail == "Unknown slot pattern: 'fortnightly'."


def test_time_slot_rejects_sub_minute_timestamp() -> None:
    with pytest.raises(TimestampGranularityMismatch):
        TimeSlot(datetime(2025, 6, 2, 9, 0, 30))


def test_time_slot_at_normalizes_timestamp() -> None:
    slot = TimeSlot.at(datetime(2025, 6, 2, 9, 0, 30, 250))

    assert slot.timestamp == datetime(2025, 6, 2, 9, 0)
    assert slot.key == '2025-06-02T09:00'


def test_slot_key_refuses_to_truncate_silently() -> None:
    with pytest.raises(TimestampGranularityMismatch):
        slot_key(datetime(2025, 6, 2, 9, 0, 0, 1))

    assert slot_key(normalize_slot(datetime(2025, 6, 2, 9, 0, 0, 1))) == '2025-06-02T09:00'


def test_month_days_starts_grid_on_sunday() -> None:
    days = month_days(date(2026, 10, 18))

    assert days[:4] == [None, None, None, None]
    assert days[4] == date(2026, 10, 1)
    assert days[-1] == date(2026, 10, 31)
    assert len(days) == 35


def test_month_days_handles_december() -> None:
    days = [day for day in month_days(date(2025, 12, 5)) if day is not None]

    assert days[0] == date(2025, 12, 1)
    assert days[-1] == date(2025, 12, 31)
