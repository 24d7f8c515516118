"""Booking record model definitions."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String, UniqueConstraint

from consultancy.database import Base
from consultancy.models.status import BookingStatus
from consultancy.scheduling.availability import occupies_slot
from consultancy.scheduling.time_grid import slot_key


class BookingRecord(Base):
    """A client booking or an admin block occupying one consultation slot."""
    __tablename__ = "consultancy_bookings"
    __table_args__ = (
        UniqueConstraint("slot_lock", name="uq_consultancy_bookings_slot_lock"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True)
    slot = Column(DateTime, nullable=False, index=True)
    # Canonical slot key while the record occupies its slot, NULL otherwise.
    slot_lock = Column(String(16), nullable=True)
    contact_name = Column(String)
    contact_email = Column(String)
    contact_phone = Column(String)
    consultation_type = Column(String)
    description = Column(String)
    status = Column(String, nullable=False, default=BookingStatus.AWAITING_ADMIN_RESPONSE.value)
    payment_status = Column(Boolean, nullable=False, default=False)
    is_admin_block = Column(Boolean, nullable=False, default=False)
    deleted = Column(Boolean, nullable=False, default=False)
    transaction_id = Column(String)
    payment_status_date = Column(DateTime)
    payment_requested_at = Column(DateTime)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    @property
    def booking_status(self) -> BookingStatus:
        return BookingStatus(self.status)

    def refresh_slot_lock(self, deleted_block_policy: str | None = None) -> None:
        self.slot_lock = slot_key(self.slot) if occupies_slot(self, deleted_block_policy) else None

    def __repr__(self):
        return f"<BookingRecord {self.id} {self.slot} {self.status}>"
