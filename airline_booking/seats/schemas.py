from pydantic import BaseModel, Field, validator
from typing import List, Optional
from datetime import datetime
from enum import Enum

from airline_booking.models import SeatClass

class SeatAvailability(str, Enum):
    """Seat state as rendered on the seat map"""
    AVAILABLE = "available"
    HELD_BY_YOU = "held_by_you"
    HELD = "held"
    BOOKED = "booked"

class HoldResult(BaseModel):
    """Outcome of a successful hold"""
    seat_ids: List[int]
    hold_until: datetime
    message: str

class SeatView(BaseModel):
    """One seat of a flight seat map"""
    seat_id: int
    seat_number: str
    seat_class: SeatClass
    availability: SeatAvailability
    hold_until: Optional[datetime] = None

class SeatMap(BaseModel):
    flight_id: int
    seats: List[SeatView]
    available_count: int

class HoldRequest(BaseModel):
    """Request to hold a single seat"""
    ttl_minutes: Optional[int] = Field(None, ge=1, le=60)

class HoldSeatsRequest(BaseModel):
    """Request to hold several seats of one flight during checkout"""
    flight_id: int
    seat_ids: List[int]
    ttl_minutes: Optional[int] = Field(None, ge=1, le=60)

    @validator('seat_ids')
    def validate_seat_ids(cls, v):
        if not v:
            raise ValueError('At least one seat is required')
        if len(set(v)) != len(v):
            raise ValueError('Duplicate seats in request')
        return v

class SeatIdsRequest(BaseModel):
    seat_ids: List[int]

    @validator('seat_ids')
    def validate_seat_ids(cls, v):
        if not v:
            raise ValueError('At least one seat is required')
        return v
