"""
Booking manager: enrollment state transitions for events.

Rules:
- Enroll succeeds only while slots_booked < available_slots, and a user
  holds at most one Confirmed booking per event.
- Cancel flips Confirmed -> Cancelled (terminal) and releases the slot,
  allowed only while the event starts at least CANCELLATION_WINDOW_HOURS
  from now.

The capacity check and the counter change are one guarded store update
(see EventStore.adjust_slots); the booking write happens in the same unit of
work, so either both land or neither does. There is no read-then-write of
the counter and no retry loop: a rejected guard is the answer.
"""

import time as timer
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from eventbook.core.config import get_settings
from eventbook.core.exceptions import (
    AlreadyCancelled,
    BookingError,
    CancellationWindowClosed,
    CapacityExceeded,
    DuplicateEnrollment,
    NotFound,
)
from eventbook.core.logging import get_logger
from eventbook.core.metrics import enroll_latency, record_cancel, record_enroll
from eventbook.models.booking import Booking, BookingStatus
from eventbook.models.event import Event
from eventbook.services.interfaces.stores import UnitOfWork

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _resolve_timezone(name: str) -> tzinfo:
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


class BookingManager:

    def __init__(
        self,
        uow: UnitOfWork,
        *,
        clock: Callable[[], datetime] = _utcnow,
        cancellation_window: Optional[timedelta] = None,
        event_timezone: Optional[tzinfo] = None,
    ):
        settings = get_settings()
        self.uow = uow
        self.clock = clock
        if cancellation_window is None:
            cancellation_window = timedelta(hours=settings.CANCELLATION_WINDOW_HOURS)
        self.cancellation_window = cancellation_window
        self.event_timezone = event_timezone or _resolve_timezone(settings.EVENT_TIMEZONE)

    def event_start(self, event: Event) -> datetime:
        """Start instant of an event; date and start_time are local to EVENT_TIMEZONE."""
        return datetime.combine(event.date, event.start_time, tzinfo=self.event_timezone)

    def is_cancellable(self, event: Event) -> bool:
        return self.event_start(event) - self.clock() >= self.cancellation_window

    async def enroll(self, user_id: int, event_id: int) -> Booking:
        started = timer.perf_counter()
        try:
            booking = await self._enroll(user_id, event_id)
        except BookingError as e:
            record_enroll(e.code)
            logger.warning("enroll_rejected", user_id=user_id, event_id=event_id, reason=e.code)
            raise
        finally:
            enroll_latency.observe(timer.perf_counter() - started)

        record_enroll("confirmed")
        return booking

    async def _enroll(self, user_id: int, event_id: int) -> Booking:
        await self.uow.events.get_event(event_id)

        if await self.uow.bookings.find_confirmed_booking(user_id, event_id):
            raise DuplicateEnrollment()

        async with self.uow.atomic():
            event = await self.uow.events.adjust_slots(event_id, +1)
            if event is None:
                raise CapacityExceeded()
            booking = await self.uow.bookings.insert_booking(user_id, event_id)

        logger.info(
            "booking_created",
            booking_id=booking.id,
            user_id=user_id,
            event_id=event_id,
            slots_booked=event.slots_booked,
            available_slots=event.available_slots,
        )
        return booking

    async def cancel(self, user_id: int, booking_id: int) -> Booking:
        try:
            booking = await self._cancel(user_id, booking_id)
        except BookingError as e:
            record_cancel(e.code)
            logger.warning("cancel_rejected", user_id=user_id, booking_id=booking_id, reason=e.code)
            raise

        record_cancel("cancelled")
        return booking

    async def _cancel(self, user_id: int, booking_id: int) -> Booking:
        booking = await self.uow.bookings.get_booking(booking_id)
        # Someone else's booking is indistinguishable from a missing one
        if booking.user_id != user_id:
            raise NotFound("Booking not found")
        if booking.status == BookingStatus.CANCELLED.value:
            raise AlreadyCancelled()
        event_id = booking.event_id

        event = await self.uow.events.get_event(event_id)
        if not self.is_cancellable(event):
            hours = int(self.cancellation_window.total_seconds() // 3600)
            raise CancellationWindowClosed(
                f"Cancellation closes {hours} hours before the event starts"
            )

        async with self.uow.atomic():
            cancelled = await self.uow.bookings.set_status(
                booking_id,
                BookingStatus.CANCELLED.value,
                expected=BookingStatus.CONFIRMED.value,
            )
            if cancelled is None:
                # A concurrent cancel got there first
                raise AlreadyCancelled()
            released = await self.uow.events.adjust_slots(event_id, -1)

        if released is None:
            logger.warning("slot_release_floored", event_id=event_id, booking_id=booking_id)

        logger.info(
            "booking_cancelled",
            booking_id=booking_id,
            user_id=user_id,
            event_id=event_id,
        )
        return cancelled

    async def list_bookings(self, user_id: int) -> list[Booking]:
        return await self.uow.bookings.list_confirmed_by_user(user_id)

    async def list_events(self) -> list[Event]:
        return await self.uow.events.list_events()

    async def get_event(self, event_id: int) -> Event:
        return await self.uow.events.get_event(event_id)
