"""Which days and slots are offered to clients.

An index is a snapshot: rebuild it from fresh records after every change
instead of keeping one around.
"""

from datetime import date, datetime
from typing import Iterable

from consultancy.core import config
from consultancy.models.status import BookingStatus
from consultancy.scheduling.time_grid import (
    TimeSlot,
    daily_slots,
    month_days,
    normalize_slot,
    slot_key,
)


def occupies_slot(record, deleted_block_policy: str | None = None) -> bool:
    """Whether a booking record keeps its slot away from new bookings.

    Restored blocks never occupy. Deleted records only occupy when they are
    still flagged as admin blocks and the policy keeps deleted blocks in
    place.
    """
    policy = deleted_block_policy or config.DELETED_BLOCK_POLICY

    if record.status == BookingStatus.RESTORED:
        return False
    if record.deleted:
        return bool(record.is_admin_block) and policy == config.KEEP_OCCUPIED
    return True


class AvailabilityIndex:
    def __init__(self, occupied: Iterable[datetime | str] = ()):
        self._occupied = frozenset(
            key if isinstance(key, str) else slot_key(key) for key in occupied
        )

    @classmethod
    def from_records(cls, records: Iterable, deleted_block_policy: str | None = None) -> 'AvailabilityIndex':
        return cls(
            normalize_slot(record.slot)
            for record in records
            if record.slot is not None and occupies_slot(record, deleted_block_policy)
        )

    @property
    def occupied(self) -> frozenset[str]:
        return self._occupied

    def __contains__(self, slot: datetime | TimeSlot) -> bool:
        return slot_key(slot) in self._occupied

    def __len__(self) -> int:
        return len(self._occupied)

    def is_slot_available(self, slot: datetime | TimeSlot) -> bool:
        return slot_key(slot) not in self._occupied

    def is_day_selectable(self, day: date | datetime, today: date | None = None) -> bool:
        if isinstance(day, datetime):
            day = day.date()
        today = today or date.today()

        if day < today:
            return False

        return not all(slot.key in self._occupied for slot in daily_slots(day))

    def available_slots(self, day: date) -> list[TimeSlot]:
        return [slot for slot in daily_slots(day) if slot.key not in self._occupied]

    def selectable_days(self, reference: date, today: date | None = None) -> list[date]:
        return [
            day for day in month_days(reference)
            if day is not None and self.is_day_selectable(day, today)
        ]
