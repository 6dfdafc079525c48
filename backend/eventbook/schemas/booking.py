"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import date, datetime, time
from typing import Optional
from pydantic import BaseModel


class BookingCreate(BaseModel):
    event_id: int


class BookingResponse(BaseModel):
    id: int
    user_id: int
    event_id: int
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class BookedEvent(BaseModel):
    id: int
    title: str
    date: date
    start_time: time
    end_time: time
    venue: str
    contact_email: Optional[str]
    description: Optional[str]

    model_config = {"from_attributes": True}


class BookingDetailResponse(BookingResponse):
    event: BookedEvent
    cancellable: bool = False


class BookingCancelResponse(BaseModel):
    message: str
    booking_id: int
    status: str
