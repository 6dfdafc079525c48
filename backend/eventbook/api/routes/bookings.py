"""
Booking endpoints: enroll, list and cancel.
"""

from fastapi import APIRouter, Depends, status

from eventbook.api.deps import get_booking_manager
from eventbook.schemas.booking import (
    BookingCreate,
    BookingResponse,
    BookingDetailResponse,
    BookingCancelResponse,
)
from eventbook.services.booking_manager import BookingManager
from eventbook.services.cache_service import invalidate_event_cache
from eventbook.core.security import get_current_user_id

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def enroll(
    booking_data: BookingCreate,
    user_id: int = Depends(get_current_user_id),
    manager: BookingManager = Depends(get_booking_manager),
):
    """
    Enroll in an event.

    The slot check and increment are one guarded UPDATE, so concurrent
    enrollments can never push slots_booked past available_slots.
    409 when the event is full or the user is already enrolled.
    """
    booking = await manager.enroll(user_id, booking_data.event_id)
    await invalidate_event_cache()
    return booking


@router.get("/", response_model=list[BookingDetailResponse])
async def list_my_bookings(
    user_id: int = Depends(get_current_user_id),
    manager: BookingManager = Depends(get_booking_manager),
):
    """Confirmed bookings of the authenticated user, soonest event first."""
    bookings = await manager.list_bookings(user_id)
    return [
        BookingDetailResponse.model_validate(b).model_copy(
            update={"cancellable": manager.is_cancellable(b.event)}
        )
        for b in bookings
    ]


@router.delete("/{booking_id}", response_model=BookingCancelResponse)
async def cancel_booking(
    booking_id: int,
    user_id: int = Depends(get_current_user_id),
    manager: BookingManager = Depends(get_booking_manager),
):
    """Cancel a booking and release its slot while the cancellation window is open."""
    booking = await manager.cancel(user_id, booking_id)
    await invalidate_event_cache()
    return BookingCancelResponse(
        message="Booking cancelled successfully",
        booking_id=booking.id,
        status=booking.status,
    )
