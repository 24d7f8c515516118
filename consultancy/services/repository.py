"""Storage access for booking records.

Every write is committed on its own. The unique ``slot_lock`` column is
what finally settles two concurrent claims on the same slot.
"""

import logging
import time
from typing import Callable, Iterable, Iterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from consultancy.core import config
from consultancy.errors import (
    BookingNotFound,
    BookingValidationError,
    PersistenceError,
    SlotAlreadyClaimed,
)
from consultancy.models.booking import BookingRecord
from consultancy.scheduling.availability import AvailabilityIndex
from consultancy.scheduling.time_grid import normalize_slot

logger = logging.getLogger(__name__)

QUERYABLE_FIELDS = {
    'id',
    'user_id',
    'slot',
    'contact_email',
    'consultation_type',
    'status',
    'payment_status',
    'is_admin_block',
    'deleted',
    'transaction_id',
}
ORDERABLE_FIELDS = {'slot', 'created_at', 'updated_at', 'id'}


class BookingRepository:
    def __init__(self, db: Session, deleted_block_policy: str | None = None):
        self.db = db
        self.deleted_block_policy = deleted_block_policy or config.DELETED_BLOCK_POLICY

    def insert(self, record: BookingRecord) -> BookingRecord:
        if record.slot is None:
            raise BookingValidationError('A slot is required.')

        record.slot = normalize_slot(record.slot)
        record.refresh_slot_lock(self.deleted_block_policy)
        self._commit(record)
        return record

    def update(self, record: BookingRecord | int, fields: dict, extra: Iterable = ()) -> BookingRecord:
        """Apply ``fields`` and persist them together with any ``extra`` rows."""
        if not isinstance(record, BookingRecord):
            record = self.get(record)

        for key, value in fields.items():
            if not hasattr(BookingRecord, key):
                raise BookingValidationError(f'Unknown booking field: {key}.')
            setattr(record, key, value)

        if 'slot' in fields:
            record.slot = normalize_slot(record.slot)
        record.refresh_slot_lock(self.deleted_block_policy)
        self._commit(record, *extra)
        return record

    def get(self, booking_id: int) -> BookingRecord:
        try:
            record = self.db.query(BookingRecord).filter(BookingRecord.id == booking_id).first()
        except SQLAlchemyError as exc:
            logger.exception('Failed to load booking %s', booking_id)
            raise PersistenceError() from exc

        if record is None:
            raise BookingNotFound()
        return record

    def query(
        self,
        filters: dict | None = None,
        order_by: str | None = 'slot',
        descending: bool = False,
        limit: int | None = None,
    ) -> list[BookingRecord]:
        filters = filters or {}
        unknown = set(filters) - QUERYABLE_FIELDS
        if unknown:
            raise BookingValidationError(f'Cannot filter bookings by: {", ".join(sorted(unknown))}.')
        if order_by is not None and order_by not in ORDERABLE_FIELDS:
            raise BookingValidationError(f'Cannot order bookings by: {order_by}.')

        try:
            query = self.db.query(BookingRecord).filter_by(**filters)
            if order_by is not None:
                column = getattr(BookingRecord, order_by)
                query = query.order_by(column.desc() if descending else column.asc(), BookingRecord.id.asc())
            if limit is not None:
                query = query.limit(limit)
            return query.all()
        except SQLAlchemyError as exc:
            logger.exception('Booking query failed')
            raise PersistenceError() from exc

    def snapshot(self) -> list[BookingRecord]:
        return self.query()

    def availability_index(self) -> AvailabilityIndex:
        return AvailabilityIndex.from_records(self.snapshot(), self.deleted_block_policy)

    def subscribe(
        self,
        filters: dict | None = None,
        poll_seconds: float | None = None,
        max_polls: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> Iterator[list[BookingRecord]]:
        """Yield the matching records now and again whenever they change.

        Change detection polls the table. ``max_polls`` bounds the loop.
        """
        interval = config.SUBSCRIPTION_POLL_SECONDS if poll_seconds is None else poll_seconds
        last_fingerprint = None
        polls = 0

        while max_polls is None or polls < max_polls:
            self.db.expire_all()
            records = self.query(filters)
            fingerprint = tuple(
                (record.id, record.updated_at, record.status, record.deleted, record.is_admin_block, record.slot_lock)
                for record in records
            )
            if fingerprint != last_fingerprint:
                last_fingerprint = fingerprint
                yield records

            polls += 1
            if max_polls is None or polls < max_polls:
                sleep(interval)

    def watch_availability(self, **subscribe_options) -> Iterator[AvailabilityIndex]:
        for records in self.subscribe(**subscribe_options):
            yield AvailabilityIndex.from_records(records, self.deleted_block_policy)

    def _commit(self, *objects) -> None:
        try:
            self.db.add_all(objects)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            logger.warning('Slot claim rejected by storage: %s', exc.orig)
            raise SlotAlreadyClaimed() from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception('Failed to persist booking changes')
            raise PersistenceError() from exc

        for obj in objects:
            self.db.refresh(obj)
