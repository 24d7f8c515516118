"""Notification outbox model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text

from consultancy.database import Base

PENDING = "pending"
SENT = "sent"
FAILED = "failed"


class NotificationOutbox(Base):
    """A notice queued alongside the transition that triggered it."""
    __tablename__ = "notification_outbox"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("consultancy_bookings.id"), index=True)
    channel = Column(String, nullable=False)  # sms/email
    recipient = Column(String, nullable=False)
    subject = Column(String)
    message = Column(Text, nullable=False)
    status = Column(String, nullable=False, default=PENDING, index=True)
    attempts = Column(Integer, nullable=False, default=0)
    next_attempt_at = Column(DateTime, nullable=False, default=datetime.now)
    last_error = Column(Text)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    sent_at = Column(DateTime)
