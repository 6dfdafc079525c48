"""
Store ports consumed by the booking manager.

The manager never talks to a database directly: it reads and writes through
an EventStore and a BookingStore that share one UnitOfWork. Implementations:
- SqlUnitOfWork (eventbook.infrastructure.sql_store): AsyncSession-backed
- InMemoryUnitOfWork (eventbook.infrastructure.memory_store): embedded, no DB
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import date, time
from typing import AsyncIterator, Optional

from eventbook.models.booking import Booking
from eventbook.models.event import Event


class EventStore(ABC):

    @abstractmethod
    async def get_event(self, event_id: int) -> Event:
        """Return the event or raise NotFound."""

    @abstractmethod
    async def list_events(self) -> list[Event]:
        """All events ordered by date, then start time."""

    @abstractmethod
    async def adjust_slots(
        self,
        event_id: int,
        delta: int,
        expected_before: Optional[int] = None,
    ) -> Optional[Event]:
        """
        Atomically apply `slots_booked += delta`.

        The update only applies when the result stays within
        0..available_slots and, if given, when slots_booked currently equals
        `expected_before` (compare-and-swap). Returns the updated event, or
        None when the guard did not match.
        """

    @abstractmethod
    async def create_event(
        self,
        *,
        title: str,
        date: date,
        start_time: time,
        end_time: time,
        venue: str,
        available_slots: int,
        description: Optional[str] = None,
        contact_email: Optional[str] = None,
        organizer_id: Optional[int] = None,
    ) -> Event:
        pass


class BookingStore(ABC):

    @abstractmethod
    async def insert_booking(self, user_id: int, event_id: int) -> Booking:
        """Create a Confirmed booking. Raises DuplicateEnrollment if one exists."""

    @abstractmethod
    async def find_confirmed_booking(self, user_id: int, event_id: int) -> Optional[Booking]:
        pass

    @abstractmethod
    async def get_booking(self, booking_id: int) -> Booking:
        """Return the booking or raise NotFound."""

    @abstractmethod
    async def set_status(
        self,
        booking_id: int,
        status: str,
        expected: Optional[str] = None,
    ) -> Optional[Booking]:
        """
        Set the booking status. With `expected`, only applies when the
        current status matches; returns None when it does not.
        """

    @abstractmethod
    async def list_confirmed_by_user(self, user_id: int) -> list[Booking]:
        """Confirmed bookings with `event` loaded, ordered by event date."""


class UnitOfWork(ABC):
    """
    A pair of stores sharing one transaction.

    Usage:
        async with uow.atomic():
            await uow.events.adjust_slots(...)
            await uow.bookings.insert_booking(...)

    Leaving the block normally commits; any exception rolls back every write
    made inside it and propagates.
    """

    events: EventStore
    bookings: BookingStore

    @abstractmethod
    async def commit(self) -> None:
        pass

    @abstractmethod
    async def rollback(self) -> None:
        pass

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator["UnitOfWork"]:
        try:
            yield self
            await self.commit()
        except BaseException:
            await self.rollback()
            raise
