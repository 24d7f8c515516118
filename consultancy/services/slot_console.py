"""Admin slot management: bulk blocking, listing, restore and delete."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Iterator

from consultancy.errors import SlotUnavailable
from consultancy.models.booking import BookingRecord
from consultancy.scheduling.time_grid import TimeSlot, normalize_slot, range_slots
from consultancy.schemas.booking import Actor, BulkBlockRequest, parse_model
from consultancy.services.lifecycle import BookingLifecycle, require_admin
from consultancy.services.queries import active_blocks

logger = logging.getLogger(__name__)


class BlockSelection:
    """Candidate slots an admin is about to block, kept unique and ordered."""

    def __init__(self, slots: Iterable[TimeSlot | datetime] = ()):
        self._slots: dict[datetime, TimeSlot] = {}
        self.add(slots)

    def add(self, slots: Iterable[TimeSlot | datetime]) -> int:
        added = 0
        for slot in slots:
            if not isinstance(slot, TimeSlot):
                slot = TimeSlot.at(slot)
            if slot.timestamp not in self._slots:
                self._slots[slot.timestamp] = slot
                added += 1
        return added

    def remove(self, slot: TimeSlot | datetime) -> bool:
        timestamp = slot.timestamp if isinstance(slot, TimeSlot) else normalize_slot(slot)
        return self._slots.pop(timestamp, None) is not None

    def clear(self) -> None:
        self._slots.clear()

    @property
    def slots(self) -> list[TimeSlot]:
        return sorted(self._slots.values())

    def __len__(self) -> int:
        return len(self._slots)

    def __iter__(self) -> Iterator[TimeSlot]:
        return iter(self.slots)

    def __contains__(self, slot: TimeSlot | datetime) -> bool:
        timestamp = slot.timestamp if isinstance(slot, TimeSlot) else normalize_slot(slot)
        return timestamp in self._slots


@dataclass
class BulkBlockResult:
    created: list[BookingRecord] = field(default_factory=list)
    skipped: list[TimeSlot] = field(default_factory=list)


class SlotManagementConsole:
    def __init__(self, lifecycle: BookingLifecycle):
        self.lifecycle = lifecycle
        self.repository = lifecycle.repository

    def preview(self, request: BulkBlockRequest | dict) -> list[TimeSlot]:
        request = parse_model(BulkBlockRequest, request)
        return range_slots(
            request.start_date,
            request.end_date,
            request.pattern,
            request.start_time,
            request.end_time,
        )

    def new_selection(self, request: BulkBlockRequest | dict | None = None) -> BlockSelection:
        selection = BlockSelection()
        if request is not None:
            selection.add(self.preview(request))
        return selection

    def create_blocks(
        self,
        slots: Iterable[TimeSlot | datetime],
        actor: Actor,
        now: datetime | None = None,
    ) -> BulkBlockResult:
        """Insert one admin block per slot as independent writes.

        Past and already occupied slots are skipped. A storage failure stops
        the batch; blocks written before it stay in place.
        """
        require_admin(actor)
        now = now or self.lifecycle.clock()
        selection = slots if isinstance(slots, BlockSelection) else BlockSelection(slots)
        index = self.repository.availability_index()
        result = BulkBlockResult()

        for slot in selection:
            if slot.timestamp < now:
                result.skipped.append(slot)
                continue
            try:
                record = self.lifecycle.create_admin_block(slot, actor, index=index)
            except SlotUnavailable:
                result.skipped.append(slot)
                continue
            result.created.append(record)

        logger.info(
            'Admin %s blocked %s slot(s), skipped %s',
            actor.user_id, len(result.created), len(result.skipped),
        )
        return result

    def list_active_blocks(self, now: datetime | None = None) -> list[BookingRecord]:
        records = self.repository.query({'is_admin_block': True, 'deleted': False})
        return active_blocks(records, now or self.lifecycle.clock())

    def restore(self, booking_id: int, actor: Actor) -> BookingRecord:
        return self.lifecycle.restore(booking_id, actor)

    def delete(self, booking_id: int, actor: Actor) -> BookingRecord:
        return self.lifecycle.delete(booking_id, actor)

    def cancel_booking(self, booking_id: int, actor: Actor) -> BookingRecord:
        return self.lifecycle.admin_cancel(booking_id, actor)
