"""Candidate slot generation.

Every function here is pure: slots are naive local datetimes on whole
minutes, produced in ascending order.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Iterable

from consultancy.core import config
from consultancy.errors import BookingValidationError, TimestampGranularityMismatch

OPEN_TIME = time(config.BUSINESS_OPEN_HOUR, 0)
DAY_END_TIME = time(config.BUSINESS_CLOSE_HOUR, 0) if config.BUSINESS_CLOSE_HOUR < 24 else time.max
SLOT_DURATION_MINUTES = config.SLOT_DURATION_MINUTES
SLOT_KEY_FORMAT = '%Y-%m-%dT%H:%M'

WEEKEND_DAYS = {5, 6}


class SlotPattern(str, Enum):
    DAILY = 'daily'
    WEEKDAYS_ONLY = 'weekdaysOnly'
    WEEKENDS_ONLY = 'weekendsOnly'

    @classmethod
    def parse(cls, value: 'str | SlotPattern') -> 'SlotPattern':
        if isinstance(value, cls):
            return value

        normalized = (value or '').strip().lower().replace('_', '').replace(' ', '')
        aliases = {
            'daily': cls.DAILY,
            'weekdays': cls.WEEKDAYS_ONLY,
            'weekdaysonly': cls.WEEKDAYS_ONLY,
            'weekends': cls.WEEKENDS_ONLY,
            'weekendsonly': cls.WEEKENDS_ONLY,
        }
        if normalized not in aliases:
            raise BookingValidationError(f'Unknown slot pattern: {value!r}.')
        return aliases[normalized]

    def includes(self, day: date) -> bool:
        if self is SlotPattern.WEEKDAYS_ONLY:
            return day.weekday() not in WEEKEND_DAYS
        if self is SlotPattern.WEEKENDS_ONLY:
            return day.weekday() in WEEKEND_DAYS
        return True


@dataclass(frozen=True, order=True)
class TimeSlot:
    timestamp: datetime
    duration_minutes: int = SLOT_DURATION_MINUTES

    def __post_init__(self):
        if self.timestamp.second or self.timestamp.microsecond:
            raise TimestampGranularityMismatch(
                f'Slot {self.timestamp.isoformat()} is not on a minute boundary.'
            )

    @classmethod
    def at(cls, timestamp: datetime, duration_minutes: int = SLOT_DURATION_MINUTES) -> 'TimeSlot':
        return cls(normalize_slot(timestamp), duration_minutes)

    @property
    def end(self) -> datetime:
        return self.timestamp + timedelta(minutes=self.duration_minutes)

    @property
    def key(self) -> str:
        return slot_key(self.timestamp)


def normalize_slot(timestamp: datetime) -> datetime:
    return timestamp.replace(second=0, microsecond=0)


def slot_key(timestamp: datetime | TimeSlot) -> str:
    """Canonical comparison key of a slot timestamp.

    Raises TimestampGranularityMismatch instead of silently truncating, so a
    sub-minute value never compares unequal to its canonical slot unnoticed.
    """
    if isinstance(timestamp, TimeSlot):
        timestamp = timestamp.timestamp
    if timestamp.second or timestamp.microsecond:
        raise TimestampGranularityMismatch(
            f'Slot {timestamp.isoformat()} is not on a minute boundary.'
        )
    return timestamp.strftime(SLOT_KEY_FORMAT)


def daily_slots(
    day: date,
    start: time = OPEN_TIME,
    end: time = DAY_END_TIME,
    duration_minutes: int = SLOT_DURATION_MINUTES,
) -> list[TimeSlot]:
    slots: list[TimeSlot] = []
    current = datetime.combine(day, start.replace(second=0, microsecond=0))
    day_end = datetime.combine(day, end)
    step = timedelta(minutes=duration_minutes)

    while current < day_end:
        slots.append(TimeSlot(current, duration_minutes))
        current += step

    return slots


def iterate_days(start_date: date, end_date: date) -> Iterable[date]:
    current_day = start_date
    while current_day <= end_date:
        yield current_day
        current_day += timedelta(days=1)


def range_slots(
    start_date: date,
    end_date: date,
    pattern: SlotPattern | str = SlotPattern.DAILY,
    start: time = OPEN_TIME,
    end: time = DAY_END_TIME,
    duration_minutes: int = SLOT_DURATION_MINUTES,
) -> list[TimeSlot]:
    pattern = SlotPattern.parse(pattern)
    seen: set[datetime] = set()
    slots: list[TimeSlot] = []

    for current_day in iterate_days(start_date, end_date):
        if not pattern.includes(current_day):
            continue
        for slot in daily_slots(current_day, start, end, duration_minutes):
            if slot.timestamp not in seen:
                seen.add(slot.timestamp)
                slots.append(slot)

    return slots


def month_days(reference: date) -> list[date | None]:
    """Sunday-first month grid for ``reference``'s month, blanks as None."""
    first_day = reference.replace(day=1)
    if first_day.month == 12:
        next_month = first_day.replace(year=first_day.year + 1, month=1)
    else:
        next_month = first_day.replace(month=first_day.month + 1)

    leading_blanks = (first_day.weekday() + 1) % 7
    days: list[date | None] = [None] * leading_blanks
    days.extend(iterate_days(first_day, next_month - timedelta(days=1)))
    return days
