"""Errors raised by the scheduling engine.

Every error carries a ``detail`` message meant for the end user or the
calling boundary.
"""


class SchedulingError(Exception):
    default_detail = 'Scheduling request failed.'

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class BookingValidationError(SchedulingError):
    """Malformed or missing booking input, caught before any write."""
    default_detail = 'Invalid booking request.'


class InvalidTransition(BookingValidationError):
    default_detail = 'This booking cannot move to the requested status.'


class SlotUnavailable(SchedulingError):
    default_detail = 'This time slot is no longer available.'


class SlotAlreadyClaimed(SlotUnavailable):
    """The storage layer rejected a second claim on the same slot."""
    default_detail = 'This time slot was just booked by someone else.'


class BookingNotFound(SchedulingError):
    default_detail = 'Booking not found.'


class PersistenceError(SchedulingError):
    default_detail = 'Database unavailable. Verify DATABASE_URL and database credentials.'


class NotificationDispatchError(SchedulingError):
    default_detail = 'Notification could not be delivered.'


class TimestampGranularityMismatch(SchedulingError):
    default_detail = 'Slot timestamps must fall on a whole minute.'


class PermissionDenied(SchedulingError):
    default_detail = 'Only admins can manage consultation slots.'
