"""
Booking manager rules against the embedded in-memory store.

The Yielding* stores insert a suspension point before every read so that
asyncio.gather genuinely interleaves two operations: both pass their
pre-checks before either writes, which is exactly the race the guarded
updates must survive.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from eventbook.core.exceptions import (
    AlreadyCancelled,
    CancellationWindowClosed,
    CapacityExceeded,
    DuplicateEnrollment,
    NotFound,
)
from eventbook.infrastructure.memory_store import (
    InMemoryBookingStore,
    InMemoryEventStore,
    InMemoryStore,
    InMemoryUnitOfWork,
)
from eventbook.models.booking import BookingStatus
from eventbook.services.booking_manager import BookingManager

NOW = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)
USER_A, USER_B = 1, 2


class YieldingEventStore(InMemoryEventStore):
    async def get_event(self, event_id):
        await asyncio.sleep(0)
        return await super().get_event(event_id)


class YieldingBookingStore(InMemoryBookingStore):
    async def find_confirmed_booking(self, user_id, event_id):
        await asyncio.sleep(0)
        return await super().find_confirmed_booking(user_id, event_id)

    async def get_booking(self, booking_id):
        await asyncio.sleep(0)
        return await super().get_booking(booking_id)


class YieldingUnitOfWork(InMemoryUnitOfWork):
    def __init__(self, store):
        super().__init__(store)
        self.events = YieldingEventStore(store, self._journal)
        self.bookings = YieldingBookingStore(store, self._journal)


def make_manager(store, now=NOW, uow_class=InMemoryUnitOfWork):
    return BookingManager(
        uow_class(store),
        clock=lambda: now,
        cancellation_window=timedelta(hours=10),
        event_timezone=timezone.utc,
    )


async def make_event(store, *, starts_at=NOW + timedelta(hours=20), available_slots=2, slots_booked=0):
    uow = store.unit_of_work()
    async with uow.atomic():
        event = await uow.events.create_event(
            title="Team Offsite",
            date=starts_at.date(),
            start_time=starts_at.time(),
            end_time=(starts_at + timedelta(hours=2)).time(),
            venue="Hall A",
            available_slots=available_slots,
        )
    event.slots_booked = slots_booked
    return event


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.mark.asyncio
async def test_documented_scenario(store):
    """2 slots, 1 taken: A fills it, B bounces, A cancels, B gets in."""
    event = await make_event(store, available_slots=2, slots_booked=1)
    manager = make_manager(store)

    booking_a = await manager.enroll(USER_A, event.id)
    assert booking_a.status == BookingStatus.CONFIRMED.value
    assert event.slots_booked == 2

    with pytest.raises(CapacityExceeded):
        await manager.enroll(USER_B, event.id)
    assert event.slots_booked == 2

    cancelled = await manager.cancel(USER_A, booking_a.id)
    assert cancelled.status == BookingStatus.CANCELLED.value
    assert event.slots_booked == 1

    booking_b = await manager.enroll(USER_B, event.id)
    assert booking_b.status == BookingStatus.CONFIRMED.value
    assert event.slots_booked == 2


@pytest.mark.asyncio
async def test_enroll_unknown_event(store):
    with pytest.raises(NotFound):
        await make_manager(store).enroll(USER_A, 404)


@pytest.mark.asyncio
async def test_enroll_full_event_changes_nothing(store):
    event = await make_event(store, available_slots=3, slots_booked=3)

    with pytest.raises(CapacityExceeded):
        await make_manager(store).enroll(USER_A, event.id)

    assert event.slots_booked == 3
    assert store.bookings == {}


@pytest.mark.asyncio
async def test_duplicate_enrollment_rejected(store):
    event = await make_event(store, available_slots=5)
    manager = make_manager(store)
    await manager.enroll(USER_A, event.id)

    with pytest.raises(DuplicateEnrollment):
        await manager.enroll(USER_A, event.id)

    assert event.slots_booked == 1
    assert len(store.bookings) == 1


@pytest.mark.asyncio
async def test_reenroll_after_cancel(store):
    event = await make_event(store, available_slots=5)
    manager = make_manager(store)
    first = await manager.enroll(USER_A, event.id)
    await manager.cancel(USER_A, first.id)

    second = await manager.enroll(USER_A, event.id)

    assert second.id != first.id
    assert event.slots_booked == 1
    assert store.bookings[first.id].status == BookingStatus.CANCELLED.value


@pytest.mark.asyncio
async def test_concurrent_enrolls_for_last_slot(store):
    event = await make_event(store, available_slots=2, slots_booked=1)
    managers = [make_manager(store, uow_class=YieldingUnitOfWork) for _ in range(2)]

    results = await asyncio.gather(
        managers[0].enroll(USER_A, event.id),
        managers[1].enroll(USER_B, event.id),
        return_exceptions=True,
    )

    assert sum(1 for r in results if isinstance(r, CapacityExceeded)) == 1
    confirmed = [b for b in store.bookings.values() if b.is_confirmed]
    assert len(confirmed) == 1
    assert event.slots_booked == 2


@pytest.mark.asyncio
async def test_many_concurrent_enrolls_never_overbook(store):
    event = await make_event(store, available_slots=3)
    managers = [make_manager(store, uow_class=YieldingUnitOfWork) for _ in range(10)]

    results = await asyncio.gather(
        *(m.enroll(user_id, event.id) for user_id, m in enumerate(managers, start=1)),
        return_exceptions=True,
    )

    assert sum(1 for r in results if isinstance(r, CapacityExceeded)) == 7
    assert event.slots_booked == 3
    assert len(store.bookings) == 3


@pytest.mark.asyncio
async def test_concurrent_duplicate_enroll_rolls_back_increment(store):
    """Both requests pass the pre-check; the losing insert must undo its increment."""
    event = await make_event(store, available_slots=5)
    managers = [make_manager(store, uow_class=YieldingUnitOfWork) for _ in range(2)]

    results = await asyncio.gather(
        managers[0].enroll(USER_A, event.id),
        managers[1].enroll(USER_A, event.id),
        return_exceptions=True,
    )

    assert sum(1 for r in results if isinstance(r, DuplicateEnrollment)) == 1
    assert event.slots_booked == 1
    assert len(store.bookings) == 1


@pytest.mark.asyncio
async def test_cancel_twice_does_not_decrement_again(store):
    event = await make_event(store, available_slots=5)
    manager = make_manager(store)
    booking = await manager.enroll(USER_A, event.id)
    await manager.cancel(USER_A, booking.id)

    with pytest.raises(AlreadyCancelled):
        await manager.cancel(USER_A, booking.id)

    assert event.slots_booked == 0


@pytest.mark.asyncio
async def test_concurrent_cancels_release_one_slot(store):
    event = await make_event(store, available_slots=5, slots_booked=2)
    booking = await make_manager(store).enroll(USER_A, event.id)
    managers = [make_manager(store, uow_class=YieldingUnitOfWork) for _ in range(2)]

    results = await asyncio.gather(
        managers[0].cancel(USER_A, booking.id),
        managers[1].cancel(USER_A, booking.id),
        return_exceptions=True,
    )

    assert sum(1 for r in results if isinstance(r, AlreadyCancelled)) == 1
    assert event.slots_booked == 2


@pytest.mark.asyncio
async def test_cancel_someone_elses_booking(store):
    event = await make_event(store)
    manager = make_manager(store)
    booking = await manager.enroll(USER_A, event.id)

    with pytest.raises(NotFound):
        await manager.cancel(USER_B, booking.id)

    assert booking.status == BookingStatus.CONFIRMED.value


@pytest.mark.asyncio
async def test_cancel_unknown_booking(store):
    with pytest.raises(NotFound):
        await make_manager(store).cancel(USER_A, 999)


@pytest.mark.asyncio
async def test_cancel_inside_window_rejected(store):
    event = await make_event(store, starts_at=NOW + timedelta(hours=9, minutes=59))
    manager = make_manager(store)
    booking = await manager.enroll(USER_A, event.id)

    with pytest.raises(CancellationWindowClosed):
        await manager.cancel(USER_A, booking.id)

    assert booking.status == BookingStatus.CONFIRMED.value
    assert event.slots_booked == 1


@pytest.mark.asyncio
async def test_cancel_exactly_at_window_boundary(store):
    event = await make_event(store, starts_at=NOW + timedelta(hours=10))
    manager = make_manager(store)
    booking = await manager.enroll(USER_A, event.id)

    cancelled = await manager.cancel(USER_A, booking.id)

    assert cancelled.status == BookingStatus.CANCELLED.value


@pytest.mark.asyncio
async def test_cancel_window_uses_event_timezone(store):
    # 18:00 wall-clock in UTC+2 is 16:00 UTC: only 8 hours after NOW
    event = await make_event(store, starts_at=datetime(2026, 3, 1, 18, 0))
    manager = BookingManager(
        InMemoryUnitOfWork(store),
        clock=lambda: NOW,
        cancellation_window=timedelta(hours=10),
        event_timezone=timezone(timedelta(hours=2)),
    )
    booking = await manager.enroll(USER_A, event.id)

    with pytest.raises(CancellationWindowClosed):
        await manager.cancel(USER_A, booking.id)


@pytest.mark.asyncio
async def test_cancel_floors_counter_at_zero(store):
    event = await make_event(store, available_slots=5)
    manager = make_manager(store)
    booking = await manager.enroll(USER_A, event.id)
    event.slots_booked = 0

    cancelled = await manager.cancel(USER_A, booking.id)

    assert cancelled.status == BookingStatus.CANCELLED.value
    assert event.slots_booked == 0


@pytest.mark.asyncio
async def test_list_bookings_only_confirmed_soonest_first(store):
    later = await make_event(store, starts_at=NOW + timedelta(days=5))
    sooner = await make_event(store, starts_at=NOW + timedelta(days=1))
    dropped = await make_event(store, starts_at=NOW + timedelta(days=2))
    manager = make_manager(store)

    await manager.enroll(USER_A, later.id)
    await manager.enroll(USER_A, sooner.id)
    cancelled = await manager.enroll(USER_A, dropped.id)
    await manager.cancel(USER_A, cancelled.id)
    await manager.enroll(USER_B, later.id)

    bookings = await manager.list_bookings(USER_A)

    assert [b.event_id for b in bookings] == [sooner.id, later.id]
    assert all(b.user_id == USER_A for b in bookings)
    assert bookings[0].event.title == "Team Offsite"


@pytest.mark.asyncio
async def test_list_events_ordered_by_start(store):
    third = await make_event(store, starts_at=NOW + timedelta(days=3))
    first = await make_event(store, starts_at=NOW + timedelta(days=1, hours=2))
    second = await make_event(store, starts_at=NOW + timedelta(days=1, hours=5))

    events = await make_manager(store).list_events()

    assert [e.id for e in events] == [first.id, second.id, third.id]


@pytest.mark.asyncio
async def test_adjust_slots_compare_and_swap(store):
    event = await make_event(store, available_slots=5, slots_booked=2)
    uow = store.unit_of_work()

    assert await uow.events.adjust_slots(event.id, +1, expected_before=1) is None
    updated = await uow.events.adjust_slots(event.id, +1, expected_before=2)

    assert updated.slots_booked == 3


@pytest.mark.asyncio
async def test_atomic_rolls_back_on_error(store):
    event = await make_event(store, available_slots=5)
    uow = store.unit_of_work()

    with pytest.raises(RuntimeError):
        async with uow.atomic():
            await uow.events.adjust_slots(event.id, +1)
            await uow.bookings.insert_booking(USER_A, event.id)
            raise RuntimeError("boom")

    assert event.slots_booked == 0
    assert store.bookings == {}


@pytest.mark.asyncio
async def test_zero_cancellation_window_is_honoured(store):
    event = await make_event(store, starts_at=NOW + timedelta(hours=1))
    manager = BookingManager(
        InMemoryUnitOfWork(store),
        clock=lambda: NOW,
        cancellation_window=timedelta(0),
        event_timezone=timezone.utc,
    )
    booking = await manager.enroll(USER_A, event.id)

    assert manager.cancellation_window == timedelta(0)
    cancelled = await manager.cancel(USER_A, booking.id)
    assert cancelled.status == BookingStatus.CANCELLED.value
