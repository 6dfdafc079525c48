"""
Embedded in-process stores for running the booking manager without a database.

Counter and status mutations run under a per-event asyncio.Lock. Each unit of
work keeps an undo journal of compensating actions; rollback replays it in
reverse, so a failed enroll never leaves an incremented counter behind.
Compensations apply deltas rather than restoring snapshots, which keeps
changes committed meanwhile by other units of work intact.
"""

import asyncio
import itertools
from collections import defaultdict
from datetime import datetime, timezone
from typing import Callable, Optional

from eventbook.core.exceptions import DuplicateEnrollment, NotFound
from eventbook.models.booking import Booking, BookingStatus
from eventbook.models.event import Event
from eventbook.services.interfaces.stores import BookingStore, EventStore, UnitOfWork


class InMemoryStore:
    """Shared state. Create one per process and a unit of work per operation."""

    def __init__(self):
        self.events: dict[int, Event] = {}
        self.bookings: dict[int, Booking] = {}
        self.locks: defaultdict[int, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._event_ids = itertools.count(1)
        self._booking_ids = itertools.count(1)

    def next_event_id(self) -> int:
        return next(self._event_ids)

    def next_booking_id(self) -> int:
        return next(self._booking_ids)

    def unit_of_work(self) -> "InMemoryUnitOfWork":
        return InMemoryUnitOfWork(self)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryEventStore(EventStore):

    def __init__(self, store: InMemoryStore, journal: list[Callable[[], None]]):
        self.store = store
        self.journal = journal

    async def get_event(self, event_id: int) -> Event:
        event = self.store.events.get(event_id)
        if event is None:
            raise NotFound(f"Event {event_id} not found")
        return event

    async def list_events(self) -> list[Event]:
        return sorted(
            self.store.events.values(),
            key=lambda e: (e.date, e.start_time, e.id),
        )

    async def adjust_slots(
        self,
        event_id: int,
        delta: int,
        expected_before: Optional[int] = None,
    ) -> Optional[Event]:
        async with self.store.locks[event_id]:
            event = self.store.events.get(event_id)
            if event is None:
                return None
            if expected_before is not None and event.slots_booked != expected_before:
                return None
            new_value = event.slots_booked + delta
            if not 0 <= new_value <= event.available_slots:
                return None
            event.slots_booked = new_value
            event.updated_at = _now()

        def undo():
            event.slots_booked -= delta

        self.journal.append(undo)
        return event

    async def create_event(self, *, organizer_id: Optional[int] = None, **fields) -> Event:
        now = _now()
        event = Event(
            id=self.store.next_event_id(),
            slots_booked=0,
            organizer_id=organizer_id,
            created_at=now,
            updated_at=now,
            **fields,
        )
        self.store.events[event.id] = event
        self.journal.append(lambda: self.store.events.pop(event.id, None))
        return event


class InMemoryBookingStore(BookingStore):

    def __init__(self, store: InMemoryStore, journal: list[Callable[[], None]]):
        self.store = store
        self.journal = journal

    def _confirmed(self, user_id: int, event_id: int) -> Optional[Booking]:
        for booking in self.store.bookings.values():
            if booking.user_id == user_id and booking.event_id == event_id and booking.is_confirmed:
                return booking
        return None

    async def insert_booking(self, user_id: int, event_id: int) -> Booking:
        async with self.store.locks[event_id]:
            if self._confirmed(user_id, event_id) is not None:
                raise DuplicateEnrollment()
            now = _now()
            booking = Booking(
                id=self.store.next_booking_id(),
                user_id=user_id,
                event_id=event_id,
                status=BookingStatus.CONFIRMED.value,
                created_at=now,
                updated_at=now,
            )
            booking.event = self.store.events.get(event_id)
            self.store.bookings[booking.id] = booking

        self.journal.append(lambda: self.store.bookings.pop(booking.id, None))
        return booking

    async def find_confirmed_booking(self, user_id: int, event_id: int) -> Optional[Booking]:
        return self._confirmed(user_id, event_id)

    async def get_booking(self, booking_id: int) -> Booking:
        booking = self.store.bookings.get(booking_id)
        if booking is None:
            raise NotFound("Booking not found")
        return booking

    async def set_status(
        self,
        booking_id: int,
        status: str,
        expected: Optional[str] = None,
    ) -> Optional[Booking]:
        booking = self.store.bookings.get(booking_id)
        if booking is None:
            return None
        async with self.store.locks[booking.event_id]:
            if expected is not None and booking.status != expected:
                return None
            previous = booking.status
            booking.status = status
            booking.updated_at = _now()

        def undo():
            booking.status = previous

        self.journal.append(undo)
        return booking

    async def list_confirmed_by_user(self, user_id: int) -> list[Booking]:
        bookings = [
            b for b in self.store.bookings.values()
            if b.user_id == user_id and b.is_confirmed
        ]
        return sorted(bookings, key=lambda b: (b.event.date, b.event.start_time, b.id))


class InMemoryUnitOfWork(UnitOfWork):

    def __init__(self, store: InMemoryStore):
        self.store = store
        self._journal: list[Callable[[], None]] = []
        self.events = InMemoryEventStore(store, self._journal)
        self.bookings = InMemoryBookingStore(store, self._journal)

    async def commit(self) -> None:
        self._journal.clear()

    async def rollback(self) -> None:
        while self._journal:
            self._journal.pop()()
