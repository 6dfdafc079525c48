"""
Pydantic schemas for event-related request/response validation.
"""

from datetime import date, datetime, time
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, model_validator


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    date: date
    start_time: time
    end_time: time
    venue: str = Field(..., min_length=1, max_length=255)
    contact_email: Optional[EmailStr] = None
    available_slots: int = Field(..., gt=0, le=100000)

    @model_validator(mode="after")
    def check_time_window(self) -> "EventCreate":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class EventResponse(BaseModel):
    id: int
    title: str
    description: Optional[str]
    date: date
    start_time: time
    end_time: time
    venue: str
    contact_email: Optional[str]
    available_slots: int
    slots_booked: int
    remaining_slots: int
    organizer_id: Optional[int]
    created_at: datetime

    model_config = {"from_attributes": True}


class EventListResponse(BaseModel):
    events: list[EventResponse]
    total: int
    cached: bool = False
