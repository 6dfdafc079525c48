"""
Event service: validation and creation of events.
Reads go through the booking manager's event store.
"""

from datetime import datetime
from fastapi import HTTPException, status

from eventbook.models.event import Event
from eventbook.schemas.event import EventCreate
from eventbook.services.booking_manager import BookingManager
from eventbook.core.logging import get_logger

logger = get_logger(__name__)


async def create_event(manager: BookingManager, event_data: EventCreate, organizer_id: int) -> Event:
    """Create a new event with no slots booked."""
    starts_at = datetime.combine(event_data.date, event_data.start_time, tzinfo=manager.event_timezone)
    if starts_at <= manager.clock():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Event must start in the future",
        )

    async with manager.uow.atomic():
        event = await manager.uow.events.create_event(
            title=event_data.title,
            description=event_data.description,
            date=event_data.date,
            start_time=event_data.start_time,
            end_time=event_data.end_time,
            venue=event_data.venue,
            contact_email=event_data.contact_email,
            available_slots=event_data.available_slots,
            organizer_id=organizer_id,
        )

    logger.info("event_created", event_id=event.id, title=event.title, slots=event.available_slots)
    return event
