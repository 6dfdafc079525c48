from eventbook.schemas.user import UserCreate, UserResponse, UserLogin, Token
from eventbook.schemas.event import EventCreate, EventResponse, EventListResponse
from eventbook.schemas.booking import (
    BookingCreate,
    BookingResponse,
    BookingDetailResponse,
    BookingCancelResponse,
)

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "Token",
    "EventCreate", "EventResponse", "EventListResponse",
    "BookingCreate", "BookingResponse", "BookingDetailResponse", "BookingCancelResponse",
]
