"""Advisory pre-write slot check.

The guard only reads a snapshot. Two callers holding the same stale index
can both pass it; the unique slot lock in storage rejects the second write.
"""

import logging
from datetime import datetime

from consultancy.errors import SlotUnavailable
from consultancy.scheduling.availability import AvailabilityIndex
from consultancy.scheduling.time_grid import TimeSlot, slot_key

logger = logging.getLogger(__name__)


def is_conflicting(slot: datetime | TimeSlot, index: AvailabilityIndex) -> bool:
    return not index.is_slot_available(slot)


def ensure_slot_free(slot: datetime | TimeSlot, index: AvailabilityIndex) -> None:
    if is_conflicting(slot, index):
        logger.info('Rejected write for occupied slot %s', slot_key(slot))
        raise SlotUnavailable(f'The {slot_key(slot).replace("T", " ")} slot is already taken.')
