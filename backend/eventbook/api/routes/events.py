"""
Event endpoints with Redis caching on the listing.
"""

from fastapi import APIRouter, Depends, Query, status

from eventbook.api.deps import get_booking_manager
from eventbook.schemas.event import EventCreate, EventResponse, EventListResponse
from eventbook.services.booking_manager import BookingManager
from eventbook.services.event_service import create_event
from eventbook.services.cache_service import get_cached_events, set_cached_events, invalidate_event_cache
from eventbook.core.security import get_current_user_id
from eventbook.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    user_id: int = Depends(get_current_user_id),
    manager: BookingManager = Depends(get_booking_manager),
):
    """Create a new event. Requires authentication."""
    event = await create_event(manager, event_data, user_id)
    await invalidate_event_cache()
    return event


@router.get("/", response_model=EventListResponse)
async def list_events_endpoint(
    upcoming_only: bool = Query(False),
    manager: BookingManager = Depends(get_booking_manager),
):
    """
    List events ordered by date and start time.
    Results are cached in Redis; enroll, cancel and event creation invalidate.
    """
    cached = await get_cached_events(upcoming_only)
    if cached:
        logger.info("events_list_cache_hit", upcoming_only=upcoming_only)
        cached["cached"] = True
        return EventListResponse(**cached)

    events = await manager.list_events()
    if upcoming_only:
        now = manager.clock()
        events = [e for e in events if manager.event_start(e) >= now]

    response_data = {
        "events": [EventResponse.model_validate(e).model_dump(mode="json") for e in events],
        "total": len(events),
        "cached": False,
    }
    await set_cached_events(response_data, upcoming_only)

    return EventListResponse(**response_data)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event_endpoint(
    event_id: int,
    manager: BookingManager = Depends(get_booking_manager),
):
    """Get a single event by ID. Not cached (needs real-time slot counts)."""
    return await manager.get_event(event_id)
