"""
SQLAlchemy stores for events and bookings sharing one AsyncSession.

CONCURRENCY: guarded updates instead of read-then-write
=======================================================

The slot counter is never written from a value read earlier in Python.
Every mutation is a single conditional UPDATE:

    UPDATE events SET slots_booked = slots_booked + :delta
    WHERE id = :id
      AND slots_booked + :delta BETWEEN 0 AND available_slots
      [AND slots_booked = :expected_before]

The row lock taken by the UPDATE serializes concurrent enrollments for the
same event; under READ COMMITTED PostgreSQL re-evaluates the WHERE clause
against the committed row, so two requests racing for the last slot cannot
both match. rowcount == 0 means the guard rejected the change.

Booking status flips use the same pattern (WHERE status = :expected), so a
double cancel can only succeed once. The CHECK constraints and the partial
unique index on bookings are the final safety net.
"""

from functools import wraps
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager

from eventbook.core.exceptions import DuplicateEnrollment, NotFound, StoreUnavailable
from eventbook.core.logging import get_logger
from eventbook.models.booking import Booking, BookingStatus
from eventbook.models.event import Event
from eventbook.services.interfaces.stores import BookingStore, EventStore, UnitOfWork

logger = get_logger(__name__)


def translate_store_errors(func):
    """Surface connection-level database failures as StoreUnavailable."""

    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except (OperationalError, InterfaceError, PoolTimeoutError, OSError) as e:
            logger.error("store_unavailable", operation=func.__qualname__, error=str(e))
            raise StoreUnavailable() from e

    return wrapper


class SqlEventStore(EventStore):

    def __init__(self, session: AsyncSession):
        self.session = session

    @translate_store_errors
    async def get_event(self, event_id: int) -> Event:
        result = await self.session.execute(select(Event).where(Event.id == event_id))
        event = result.scalar_one_or_none()
        if not event:
            raise NotFound(f"Event {event_id} not found")
        return event

    @translate_store_errors
    async def list_events(self) -> list[Event]:
        result = await self.session.execute(
            select(Event).order_by(Event.date.asc(), Event.start_time.asc(), Event.id.asc())
        )
        return list(result.scalars().all())

    @translate_store_errors
    async def adjust_slots(
        self,
        event_id: int,
        delta: int,
        expected_before: Optional[int] = None,
    ) -> Optional[Event]:
        new_value = Event.slots_booked + delta
        conditions = [
            Event.id == event_id,
            new_value >= 0,
            new_value <= Event.available_slots,
        ]
        if expected_before is not None:
            conditions.append(Event.slots_booked == expected_before)

        result = await self.session.execute(
            update(Event)
            .where(*conditions)
            .values(slots_booked=new_value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None

        refreshed = await self.session.execute(
            select(Event)
            .where(Event.id == event_id)
            .execution_options(populate_existing=True)
        )
        return refreshed.scalar_one()

    @translate_store_errors
    async def create_event(self, *, organizer_id: Optional[int] = None, **fields) -> Event:
        event = Event(slots_booked=0, organizer_id=organizer_id, **fields)
        self.session.add(event)
        await self.session.flush()
        await self.session.refresh(event)
        return event


class SqlBookingStore(BookingStore):

    def __init__(self, session: AsyncSession):
        self.session = session

    @translate_store_errors
    async def insert_booking(self, user_id: int, event_id: int) -> Booking:
        booking = Booking(
            user_id=user_id,
            event_id=event_id,
            status=BookingStatus.CONFIRMED.value,
        )
        self.session.add(booking)
        try:
            await self.session.flush()
        except IntegrityError as e:
            # Lost a race against a concurrent enroll for the same user
            logger.info("booking_insert_conflict", user_id=user_id, event_id=event_id)
            raise DuplicateEnrollment() from e
        await self.session.refresh(booking)
        return booking

    @translate_store_errors
    async def find_confirmed_booking(self, user_id: int, event_id: int) -> Optional[Booking]:
        result = await self.session.execute(
            select(Booking).where(
                Booking.user_id == user_id,
                Booking.event_id == event_id,
                Booking.status == BookingStatus.CONFIRMED.value,
            )
        )
        return result.scalar_one_or_none()

    @translate_store_errors
    async def get_booking(self, booking_id: int) -> Booking:
        result = await self.session.execute(select(Booking).where(Booking.id == booking_id))
        booking = result.scalar_one_or_none()
        if not booking:
            raise NotFound("Booking not found")
        return booking

    @translate_store_errors
    async def set_status(
        self,
        booking_id: int,
        status: str,
        expected: Optional[str] = None,
    ) -> Optional[Booking]:
        conditions = [Booking.id == booking_id]
        if expected is not None:
            conditions.append(Booking.status == expected)

        result = await self.session.execute(
            update(Booking)
            .where(*conditions)
            .values(status=status)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None

        refreshed = await self.session.execute(
            select(Booking)
            .where(Booking.id == booking_id)
            .execution_options(populate_existing=True)
        )
        return refreshed.scalar_one()

    @translate_store_errors
    async def list_confirmed_by_user(self, user_id: int) -> list[Booking]:
        result = await self.session.execute(
            select(Booking)
            .join(Booking.event)
            .options(contains_eager(Booking.event))
            .where(
                Booking.user_id == user_id,
                Booking.status == BookingStatus.CONFIRMED.value,
            )
            .order_by(Event.date.asc(), Event.start_time.asc(), Booking.id.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())


class SqlUnitOfWork(UnitOfWork):
    """Both stores bound to the request's session; commit/rollback act on it."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.events = SqlEventStore(session)
        self.bookings = SqlBookingStore(session)

    @translate_store_errors
    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()
