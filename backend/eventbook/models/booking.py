"""
Booking model representing a user's enrollment in an event.

Key design decisions:
- Status is one-way: Confirmed -> Cancelled. Rows are never deleted.
- Partial unique index on (user_id, event_id) WHERE status = 'Confirmed'
  allows at most one active booking per user per event while still letting
  a user enroll again after cancelling.
"""

import enum

from sqlalchemy import Column, Integer, String, ForeignKey, Index, CheckConstraint, text
from sqlalchemy.orm import relationship

from eventbook.db.base import Base, TimestampMixin


class BookingStatus(str, enum.Enum):
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value)

    event = relationship("Event", lazy="raise")

    __table_args__ = (
        Index(
            "uq_bookings_user_event_confirmed",
            "user_id",
            "event_id",
            unique=True,
            postgresql_where=text("status = 'Confirmed'"),
            sqlite_where=text("status = 'Confirmed'"),
        ),
        CheckConstraint("status IN ('Confirmed', 'Cancelled')", name="check_booking_status"),
    )

    @property
    def is_confirmed(self) -> bool:
        return self.status == BookingStatus.CONFIRMED.value

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, user={self.user_id}, event={self.event_id}, status={self.status})>"
