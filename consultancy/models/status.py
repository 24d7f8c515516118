"""Booking status values shared by the model, the index and the services."""

from enum import Enum


class BookingStatus(str, Enum):
    AWAITING_ADMIN_RESPONSE = 'Awaiting Admin Response'
    PENDING_PAYMENT = 'Pending Payment'
    BOOKING_APPROVED = 'Booking Approved'
    ADMIN_CANCELLED_SLOT = 'Admin Cancelled Slot'
    RESTORED = 'Restored'


ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.AWAITING_ADMIN_RESPONSE: frozenset(
        {BookingStatus.PENDING_PAYMENT, BookingStatus.ADMIN_CANCELLED_SLOT}
    ),
    BookingStatus.PENDING_PAYMENT: frozenset(
        {BookingStatus.BOOKING_APPROVED, BookingStatus.ADMIN_CANCELLED_SLOT}
    ),
    BookingStatus.BOOKING_APPROVED: frozenset({BookingStatus.ADMIN_CANCELLED_SLOT}),
    BookingStatus.ADMIN_CANCELLED_SLOT: frozenset({BookingStatus.RESTORED}),
    BookingStatus.RESTORED: frozenset(),
}


def can_transition(current: BookingStatus | str, target: BookingStatus | str) -> bool:
    return BookingStatus(target) in ALLOWED_TRANSITIONS[BookingStatus(current)]
