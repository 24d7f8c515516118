from datetime import date, datetime
from types import SimpleNamespace

import pytest

from consultancy.errors import BookingValidationError
from consultancy.models.status import BookingStatus
from consultancy.services.queries import (
    SortField,
    SortOrder,
    StatusFilter,
    active_blocks,
    client_bookings,
    filter_bookings,
    page_count,
    paginate,
    sort_bookings,
    status_counts,
    status_label,
)


def make_record(record_id: int, slot: datetime, created_at: datetime, status: BookingStatus, **flags):
    return SimpleNamespace(
        id=record_id,
        slot=slot,
        created_at=created_at,
        status=status.value,
        payment_status=flags.get('payment_status', False),
        is_admin_block=flags.get('is_admin_block', False),
        deleted=flags.get('deleted', False),
    )


@pytest.fixture
def records():
    return [
        make_record(1, datetime(2025, 6, 3, 9), datetime(2025, 5, 20), BookingStatus.AWAITING_ADMIN_RESPONSE),
        make_record(2, datetime(2025, 6, 2, 10), datetime(2025, 5, 22), BookingStatus.PENDING_PAYMENT),
        make_record(
            3, datetime(2025, 6, 4, 11), datetime(2025, 5, 21), BookingStatus.BOOKING_APPROVED, payment_status=True
        ),
        make_record(4, datetime(2025, 6, 2, 15), datetime(2025, 5, 25), BookingStatus.ADMIN_CANCELLED_SLOT, is_admin_block=True),
        make_record(
            5, datetime(2025, 6, 5, 8), datetime(2025, 5, 26), BookingStatus.ADMIN_CANCELLED_SLOT,
            is_admin_block=True, deleted=True,
        ),
        make_record(6, datetime(2025, 5, 30, 9), datetime(2025, 5, 10), BookingStatus.AWAITING_ADMIN_RESPONSE),
        make_record(7, datetime(2025, 6, 6, 9), datetime(2025, 5, 27), BookingStatus.RESTORED),
    ]


@pytest.mark.parametrize(
    ('field', 'order', 'expected_ids'),
    [
        (SortField.CREATED, SortOrder.ASC, [6, 1, 3, 2, 4, 5, 7]),
        ('created', 'desc', [7, 5, 4, 2, 3, 1, 6]),
        (SortField.BOOKED, SortOrder.ASC, [6, 2, 4, 1, 3, 5, 7]),
        ('booked', 'desc', [7, 5, 3, 1, 4, 2, 6]),
        (None, 'desc', [1, 2, 3, 4, 5, 6, 7]),
    ],
)
def test_sort_bookings(records, field, order, expected_ids: list[int]) -> None:
    assert [record.id for record in sort_bookings(records, field, order)] == expected_ids


def test_client_bookings_hide_blocks_and_deleted_records(records) -> None:
    assert [record.id for record in client_bookings(records)] == [3, 1, 2, 6]


def test_active_blocks_are_upcoming_and_ascending(records) -> None:
    later_block = make_record(
        8, datetime(2025, 6, 9, 9), datetime(2025, 5, 27), BookingStatus.ADMIN_CANCELLED_SLOT, is_admin_block=True
    )

    blocks = active_blocks([later_block, *records], now=datetime(2025, 6, 1, 12))

    assert [record.id for record in blocks] == [4, 8]


@pytest.mark.parametrize(
    ('status_filter', 'expected_ids'),
    [
        (StatusFilter.ALL, [1, 2, 3, 4]),
        ('active', [1, 2, 3]),
        ('cancelled', [4]),
    ],
)
def test_filter_bookings_by_status(records, status_filter, expected_ids: list[int]) -> None:
    filtered = filter_bookings(records, status_filter, today=date(2025, 6, 1))

    assert [record.id for record in filtered] == expected_ids


def test_filter_bookings_by_inclusive_date_range(records) -> None:
    filtered = filter_bookings(
        records,
        start_date=date(2025, 6, 2),
        end_date=date(2025, 6, 3),
        today=date(2025, 6, 1),
    )

    assert [record.id for record in filtered] == [1, 2, 4]


def test_filter_bookings_excludes_past_days(records) -> None:
    filtered = filter_bookings(records, today=date(2025, 6, 3))

    assert [record.id for record in filtered] == [1, 3]


def test_filter_bookings_rejects_reversed_range(records) -> None:
    with pytest.raises(BookingValidationError) as exception_info:
        filter_bookings(records, start_date=date(2025, 6, 3), end_date=date(2025, 6, 2))

    assert exception_info.value.detail == 'End date must be on or after the start date.'


def test_filter_bookings_rejects_unknown_status(records) -> None:
    with pytest.raises(ValueError):
        filter_bookings(records, 'archived')


@pytest.mark.parametrize(
    ('record_index', 'label'),
    [
        (0, 'Pending'),
        (1, 'Unpaid'),
        (2, 'Confirmed'),
        (3, 'Cancelled'),
    ],
)
def test_status_label(records, record_index: int, label: str) -> None:
    assert status_label(records[record_index]) == label


def test_status_counts_skip_hidden_records(records) -> None:
    assert status_counts(records) == {'active': 4, 'cancelled': 1}


def test_paginate_slices_pages(records) -> None:
    assert [record.id for record in paginate(records, page=1, rows_per_page=3)] == [4, 5, 6]
    assert [record.id for record in paginate(records, page=2, rows_per_page=3)] == [7]
    assert paginate(records, page=5, rows_per_page=3) == []
    assert page_count(len(records), rows_per_page=3) == 3
    assert page_count(0) == 0


@pytest.mark.parametrize(
    ('page', 'rows_per_page', 'error_detail'),
    [
        (-1, 10, 'Page numbers start at 0.'),
        (0, 0, 'Rows per page must be at least 1.'),
        (2, -3, 'Rows per page must be at least 1.'),
    ],
)
def test_paginate_rejects_bad_arguments(records, page: int, rows_per_page: int, error_detail: str) -> None:
    with pytest.raises(BookingValidationError) as exception_info:
        paginate(records, page=page, rows_per_page=rows_per_page)

    assert exception_info.value.detail == error_detail
