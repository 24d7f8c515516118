"""Sorting, filtering and paging helpers for booking listings."""

from datetime import date, datetime
from enum import Enum
from math import ceil
from typing import Iterable, Sequence

from consultancy.errors import BookingValidationError
from consultancy.models.status import BookingStatus

DEFAULT_ROWS_PER_PAGE = 10


class SortField(str, Enum):
    CREATED = 'created'
    BOOKED = 'booked'


class SortOrder(str, Enum):
    ASC = 'asc'
    DESC = 'desc'


class StatusFilter(str, Enum):
    ALL = 'all'
    ACTIVE = 'active'
    CANCELLED = 'cancelled'


def _sort_value(record, field: SortField) -> datetime:
    if field is SortField.CREATED:
        return record.created_at or datetime.min
    return record.slot


def sort_bookings(
    records: Iterable,
    field: SortField | str | None = None,
    order: SortOrder | str = SortOrder.DESC,
) -> list:
    records = list(records)
    if field is None:
        return records

    field = SortField(field)
    order = SortOrder(order)
    return sorted(records, key=lambda record: _sort_value(record, field), reverse=order is SortOrder.DESC)


def is_visible(record) -> bool:
    return not record.deleted and record.status != BookingStatus.RESTORED


def client_bookings(records: Iterable) -> list:
    """Bookings made by clients, latest slot first."""
    return sorted(
        (record for record in records if not record.is_admin_block and is_visible(record)),
        key=lambda record: record.slot,
        reverse=True,
    )


def upcoming(records: Iterable, now: datetime | None = None) -> list:
    now = now or datetime.now()
    return [record for record in records if record.slot >= now]


def active_blocks(records: Iterable, now: datetime | None = None) -> list:
    blocks = (record for record in records if record.is_admin_block and not record.deleted)
    return sorted(upcoming(blocks, now), key=lambda record: record.slot)


def filter_bookings(
    records: Iterable,
    status_filter: StatusFilter | str = StatusFilter.ALL,
    start_date: date | None = None,
    end_date: date | None = None,
    today: date | None = None,
) -> list:
    """Visible bookings from ``today`` onwards, narrowed by status and date range."""
    status_filter = StatusFilter(status_filter)
    today = today or date.today()
    if start_date and end_date and end_date < start_date:
        raise BookingValidationError('End date must be on or after the start date.')

    filtered = [record for record in records if is_visible(record) and record.slot.date() >= today]

    if status_filter is StatusFilter.ACTIVE:
        filtered = [record for record in filtered if not record.is_admin_block]
    elif status_filter is StatusFilter.CANCELLED:
        filtered = [record for record in filtered if record.is_admin_block]

    if start_date:
        filtered = [record for record in filtered if record.slot.date() >= start_date]
    if end_date:
        filtered = [record for record in filtered if record.slot.date() <= end_date]

    return filtered


def status_label(record) -> str:
    if record.is_admin_block:
        return 'Cancelled'
    if record.status == BookingStatus.AWAITING_ADMIN_RESPONSE:
        return 'Pending'
    if record.payment_status:
        return 'Confirmed'
    return 'Unpaid'


def status_counts(records: Iterable) -> dict[str, int]:
    counts = {'active': 0, 'cancelled': 0}
    for record in records:
        if not is_visible(record):
            continue
        counts['cancelled' if record.is_admin_block else 'active'] += 1
    return counts


def page_count(total: int, rows_per_page: int = DEFAULT_ROWS_PER_PAGE) -> int:
    if rows_per_page < 1:
        raise BookingValidationError('Rows per page must be at least 1.')
    return ceil(total / rows_per_page)


def paginate(records: Sequence, page: int = 0, rows_per_page: int = DEFAULT_ROWS_PER_PAGE) -> list:
    if page < 0:
        raise BookingValidationError('Page numbers start at 0.')
    if rows_per_page < 1:
        raise BookingValidationError('Rows per page must be at least 1.')
    return list(records[page * rows_per_page:(page + 1) * rows_per_page])
