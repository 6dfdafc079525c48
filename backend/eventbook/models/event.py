"""
Event model with enrollment capacity tracking.

Key design decisions:
- `slots_booked` is denormalized (avoids COUNT over bookings) and only ever
  changes through the booking manager's guarded UPDATE
- CHECK constraints keep 0 <= slots_booked <= available_slots at the DB level
- Index on (date, start_time) serves the date-ordered listings
"""

from sqlalchemy import Column, Integer, String, Date, Time, ForeignKey, Index, CheckConstraint

from eventbook.db.base import Base, TimestampMixin


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(String(2000), nullable=True)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    venue = Column(String(255), nullable=False)
    contact_email = Column(String(255), nullable=True)
    available_slots = Column(Integer, nullable=False)
    slots_booked = Column(Integer, nullable=False, default=0)
    organizer_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    __table_args__ = (
        CheckConstraint("available_slots > 0", name="check_available_slots_positive"),
        CheckConstraint("slots_booked >= 0", name="check_slots_booked_non_negative"),
        CheckConstraint("slots_booked <= available_slots", name="check_slots_booked_lte_available"),
        Index("ix_events_date_start", "date", "start_time"),
    )

    @property
    def remaining_slots(self) -> int:
        return self.available_slots - self.slots_booked

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, booked={self.slots_booked}/{self.available_slots})>"
