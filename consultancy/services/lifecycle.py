"""Booking status transitions.

Client path: Awaiting Admin Response -> Pending Payment -> Booking Approved.
Admin lane: Admin Cancelled Slot -> Restored, or soft-deleted in place.
Each transition is a single-record write.
"""

import logging
from datetime import datetime
from typing import Callable

from consultancy.core import config
from consultancy.errors import (
    BookingValidationError,
    InvalidTransition,
    PermissionDenied,
)
from consultancy.models.booking import BookingRecord
from consultancy.models.status import BookingStatus, can_transition
from consultancy.ports.payment import PaymentGateway
from consultancy.scheduling.availability import AvailabilityIndex
from consultancy.scheduling.conflicts import ensure_slot_free
from consultancy.scheduling.time_grid import TimeSlot, daily_slots, normalize_slot
from consultancy.schemas.booking import (
    Actor,
    BookingSubmission,
    PaymentRequest,
    PaymentResult,
    SLOT_OFFSET_MESSAGE,
    parse_model,
)
from consultancy.services.outbox import approval_notices
from consultancy.services.repository import BookingRepository

logger = logging.getLogger(__name__)


def require_admin(actor: Actor) -> None:
    if actor is None or not actor.is_admin:
        raise PermissionDenied()


def is_offered_slot(slot: datetime) -> bool:
    return any(candidate.timestamp == slot for candidate in daily_slots(slot.date()))


class BookingLifecycle:
    def __init__(
        self,
        repository: BookingRepository,
        payment_gateway: PaymentGateway | None = None,
        admin_email: str | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.repository = repository
        self.payment_gateway = payment_gateway
        self.admin_email = config.ADMIN_NOTIFICATION_EMAIL if admin_email is None else admin_email
        self.clock = clock

    def submit_booking(
        self,
        data: BookingSubmission | dict,
        user_id: str | None = None,
        index: AvailabilityIndex | None = None,
    ) -> BookingRecord:
        submission = parse_model(BookingSubmission, data)
        slot = normalize_slot(submission.slot)

        if slot <= self.clock():
            raise BookingValidationError('Bookings must be scheduled in the future.')

        if not is_offered_slot(slot):
            raise BookingValidationError('Bookings must start on one of the offered hourly slots.')

        if index is None:
            index = self.repository.availability_index()
        ensure_slot_free(slot, index)

        record = BookingRecord(
            user_id=user_id,
            slot=slot,
            contact_name=submission.name,
            contact_email=submission.email,
            contact_phone=submission.phone,
            consultation_type=submission.consultation_type,
            description=submission.description,
            status=BookingStatus.AWAITING_ADMIN_RESPONSE.value,
            payment_status=False,
            is_admin_block=False,
            deleted=False,
        )
        record = self.repository.insert(record)
        logger.info('Booking %s submitted for %s', record.id, record.slot)
        return record

    def create_admin_block(
        self,
        slot: datetime | TimeSlot,
        actor: Actor,
        index: AvailabilityIndex | None = None,
    ) -> BookingRecord:
        require_admin(actor)
        if isinstance(slot, TimeSlot):
            slot = slot.timestamp
        if slot.tzinfo is not None:
            raise BookingValidationError(SLOT_OFFSET_MESSAGE)
        slot = normalize_slot(slot)

        if index is None:
            index = self.repository.availability_index()
        ensure_slot_free(slot, index)

        record = BookingRecord(
            user_id=actor.user_id,
            slot=slot,
            status=BookingStatus.ADMIN_CANCELLED_SLOT.value,
            payment_status=False,
            is_admin_block=True,
            deleted=False,
        )
        return self.repository.insert(record)

    def approve(self, booking_id: int, actor: Actor) -> BookingRecord:
        require_admin(actor)
        record = self.repository.get(booking_id)
        self._check_transition(record, BookingStatus.PENDING_PAYMENT)

        notices = approval_notices(record, self.admin_email)
        record = self.repository.update(
            record,
            {'status': BookingStatus.PENDING_PAYMENT.value},
            extra=notices,
        )
        logger.info('Booking %s approved, %s notice(s) queued', record.id, len(notices))
        return record

    def request_payment(
        self,
        booking_id: int,
        payer_reference: str,
        amount: float | None = None,
    ) -> BookingRecord:
        if self.payment_gateway is None:
            raise RuntimeError('No payment gateway configured.')

        record = self.repository.get(booking_id)
        if record.deleted or record.booking_status != BookingStatus.PENDING_PAYMENT or record.payment_status:
            raise InvalidTransition('Only bookings pending payment can be paid for.')

        payer_reference = (payer_reference or '').strip()
        if not payer_reference:
            raise BookingValidationError('A payer reference is required.')

        amount = config.CONSULTANCY_AMOUNT if amount is None else amount
        if amount < 0:
            raise BookingValidationError('Payment amount cannot be negative.')

        request = PaymentRequest(booking_id=record.id, amount=amount, payer_reference=payer_reference)
        try:
            reference = self.payment_gateway.request_payment(request)
        except Exception:
            logger.exception('Payment request for booking %s failed', record.id)
            raise

        fields = {'payment_requested_at': self.clock()}
        if reference:
            fields['transaction_id'] = reference
        return self.repository.update(record, fields)

    def record_payment_result(self, booking_id: int, result: PaymentResult | dict) -> BookingRecord:
        """Persist the outcome reported by the payment service."""
        result = parse_model(PaymentResult, result)
        record = self.repository.get(booking_id)

        if record.payment_status and record.transaction_id == result.transaction_id:
            return record

        if record.deleted or record.booking_status != BookingStatus.PENDING_PAYMENT:
            raise InvalidTransition('Payment results can only be recorded for bookings pending payment.')

        fields = {
            'transaction_id': result.transaction_id,
            'payment_status_date': result.status_date or self.clock(),
            'payment_status': result.success,
        }
        if result.success:
            fields['status'] = BookingStatus.BOOKING_APPROVED.value

        record = self.repository.update(record, fields)
        logger.info(
            'Payment %s for booking %s recorded as %s',
            result.transaction_id, record.id, 'successful' if result.success else 'unsuccessful',
        )
        return record

    def admin_cancel(self, booking_id: int, actor: Actor) -> BookingRecord:
        require_admin(actor)
        record = self.repository.get(booking_id)
        self._check_transition(record, BookingStatus.ADMIN_CANCELLED_SLOT)

        record = self.repository.update(
            record,
            {'status': BookingStatus.ADMIN_CANCELLED_SLOT.value, 'is_admin_block': True},
        )
        logger.info('Booking %s cancelled by admin %s', record.id, actor.user_id)
        return record

    def restore(self, booking_id: int, actor: Actor) -> BookingRecord:
        require_admin(actor)
        record = self.repository.get(booking_id)
        self._check_transition(record, BookingStatus.RESTORED)

        record = self.repository.update(
            record,
            {'status': BookingStatus.RESTORED.value, 'is_admin_block': False},
        )
        logger.info('Slot %s restored by admin %s', record.slot, actor.user_id)
        return record

    def delete(self, booking_id: int, actor: Actor) -> BookingRecord:
        """Soft-delete an admin block.

        ``is_admin_block`` is left as it is; whether the slot frees up is
        decided by the repository's deleted-block policy.
        """
        require_admin(actor)
        record = self.repository.get(booking_id)
        if record.deleted:
            raise InvalidTransition('This slot has already been deleted.')
        if record.booking_status != BookingStatus.ADMIN_CANCELLED_SLOT:
            raise InvalidTransition('Only admin cancelled slots can be deleted.')

        record = self.repository.update(record, {'deleted': True})
        logger.info('Slot %s deleted by admin %s', record.slot, actor.user_id)
        return record

    def _check_transition(self, record: BookingRecord, target: BookingStatus) -> None:
        if record.deleted:
            raise InvalidTransition('Deleted bookings cannot change status.')
        if not can_transition(record.status, target):
            raise InvalidTransition(
                f'A booking in "{record.status}" cannot move to "{target.value}".'
            )
