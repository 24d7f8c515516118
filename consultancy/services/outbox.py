"""Notification outbox.

Notices are stored in the same commit as the transition that triggers them
and delivered later by ``OutboxWorker``. A failed delivery is logged and
retried with exponential backoff; it never touches the booking itself.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from consultancy.core import config
from consultancy.errors import NotificationDispatchError, PersistenceError
from consultancy.models.booking import BookingRecord
from consultancy.models.notification import FAILED, PENDING, SENT, NotificationOutbox
from consultancy.ports.notification import Notifier
from consultancy.schemas.booking import NotificationMessage

logger = logging.getLogger(__name__)

APPROVAL_SUBJECT = 'Pro Services Booking Approval'
APPROVAL_USER_MESSAGE = (
    'Your Pro - Service appointment has been approved and is now pending payment. '
    'Please proceed with payment to confirm your booking.'
)
APPROVAL_ADMIN_MESSAGE = (
    "Booking approved: {name}'s booking ({phone}) has been moved to Pending Payment status."
)


def approval_notices(record: BookingRecord, admin_email: str | None = None) -> list[NotificationOutbox]:
    if not (record.contact_name and record.contact_email and record.contact_phone):
        logger.warning(
            'Skipping approval notice for booking %s - missing name, email or phone', record.id
        )
        return []

    notices = [
        NotificationOutbox(
            booking_id=record.id,
            channel='sms',
            recipient=record.contact_phone,
            message=APPROVAL_USER_MESSAGE,
        ),
        NotificationOutbox(
            booking_id=record.id,
            channel='email',
            recipient=record.contact_email,
            subject=APPROVAL_SUBJECT,
            message=APPROVAL_USER_MESSAGE,
        ),
    ]
    if admin_email:
        notices.append(
            NotificationOutbox(
                booking_id=record.id,
                channel='email',
                recipient=admin_email,
                subject=APPROVAL_SUBJECT,
                message=APPROVAL_ADMIN_MESSAGE.format(name=record.contact_name, phone=record.contact_phone),
            )
        )
    return notices


@dataclass
class DispatchSummary:
    sent: int = 0
    retried: int = 0
    failed: int = 0

    @property
    def processed(self) -> int:
        return self.sent + self.retried + self.failed


class OutboxWorker:
    def __init__(
        self,
        db: Session,
        notifier: Notifier,
        max_attempts: int = config.NOTIFICATION_MAX_ATTEMPTS,
        backoff_seconds: int = config.NOTIFICATION_BACKOFF_SECONDS,
        batch_size: int = config.NOTIFICATION_BATCH_SIZE,
    ):
        self.db = db
        self.notifier = notifier
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.batch_size = batch_size

    def retry_delay(self, attempts: int) -> timedelta:
        return timedelta(seconds=self.backoff_seconds * 2 ** max(attempts - 1, 0))

    def due_messages(self, now: datetime) -> list[NotificationOutbox]:
        try:
            return (
                self.db.query(NotificationOutbox)
                .filter(
                    NotificationOutbox.status == PENDING,
                    NotificationOutbox.next_attempt_at <= now,
                )
                .order_by(NotificationOutbox.next_attempt_at.asc(), NotificationOutbox.id.asc())
                .limit(self.batch_size)
                .all()
            )
        except SQLAlchemyError as exc:
            logger.exception('Failed to load pending notifications')
            raise PersistenceError() from exc

    def dispatch_pending(self, now: datetime | None = None) -> DispatchSummary:
        now = now or datetime.now()
        summary = DispatchSummary()

        for notice in self.due_messages(now):
            notice.attempts = (notice.attempts or 0) + 1
            try:
                self._deliver(notice)
            except NotificationDispatchError as exc:
                notice.last_error = exc.detail
                if notice.attempts >= self.max_attempts:
                    notice.status = FAILED
                    summary.failed += 1
                    logger.error(
                        'Giving up on %s notice %s after %s attempts: %s',
                        notice.channel, notice.id, notice.attempts, exc.detail,
                    )
                else:
                    notice.next_attempt_at = now + self.retry_delay(notice.attempts)
                    summary.retried += 1
                    logger.warning(
                        'Notice %s failed (attempt %s), retrying at %s: %s',
                        notice.id, notice.attempts, notice.next_attempt_at, exc.detail,
                    )
            else:
                notice.status = SENT
                notice.sent_at = now
                notice.last_error = None
                summary.sent += 1
                logger.info('Sent %s notice %s for booking %s', notice.channel, notice.id, notice.booking_id)

            self._save()

        return summary

    def run(
        self,
        poll_seconds: float = 5.0,
        max_cycles: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> DispatchSummary:
        total = DispatchSummary()
        cycles = 0

        while max_cycles is None or cycles < max_cycles:
            summary = self.dispatch_pending()
            total.sent += summary.sent
            total.retried += summary.retried
            total.failed += summary.failed
            cycles += 1
            if max_cycles is None or cycles < max_cycles:
                sleep(poll_seconds)

        return total

    def _deliver(self, notice: NotificationOutbox) -> None:
        message = NotificationMessage(
            recipient=notice.recipient,
            channel=notice.channel,
            subject=notice.subject,
            message=notice.message,
        )
        try:
            self.notifier.send(message)
        except NotificationDispatchError:
            raise
        except Exception as exc:
            raise NotificationDispatchError(
                f'{notice.channel} notice to {notice.recipient} failed: {exc}'
            ) from exc

    def _save(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception('Failed to record notification delivery state')
            raise PersistenceError() from exc
