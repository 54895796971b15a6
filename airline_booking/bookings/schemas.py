from pydantic import BaseModel, EmailStr, Field, validator
from typing import List, Optional

from airline_booking.models import BookingChannel, PaymentMethod

# Passenger Information
class PassengerInfo(BaseModel):
    """Passenger travelling on one seat"""
    seat_id: int
    name: str = Field(..., min_length=1, max_length=255)
    passport: Optional[str] = Field(None, max_length=50)
    title: Optional[str] = Field(None, max_length=10)
    nationality: Optional[str] = Field(None, max_length=100)

    @property
    def display_name(self) -> str:
        return f"{self.title}. {self.name}" if self.title else self.name

class RoundTripPassengerInfo(BaseModel):
    """Passenger travelling on both legs of a round trip"""
    departure_seat_id: int
    return_seat_id: int
    name: str = Field(..., min_length=1, max_length=255)
    passport: Optional[str] = Field(None, max_length=50)
    title: Optional[str] = Field(None, max_length=10)
    nationality: Optional[str] = Field(None, max_length=100)

    @property
    def display_name(self) -> str:
        return f"{self.title}. {self.name}" if self.title else self.name

class CounterCustomerInfo(BaseModel):
    """Walk-in customer of an admin-assisted counter booking"""
    name: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None

# Booking Request Models
class BookingRequest(BaseModel):
    """Request to book one or more seats on a single flight"""
    flight_id: int
    seat_ids: List[int]
    passengers: List[PassengerInfo]
    payment_method: PaymentMethod = PaymentMethod.ONLINE_GATEWAY
    channel: BookingChannel = BookingChannel.ONLINE
    flash_sale_id: Optional[int] = None
    counter_customer: Optional[CounterCustomerInfo] = None
    expected_total: Optional[int] = Field(None, ge=0)

    @validator('seat_ids')
    def validate_seat_ids(cls, v):
        if not v or len(v) == 0:
            raise ValueError('At least one seat is required')
        if len(v) > 10:
            raise ValueError('Maximum 10 seats per booking')
        return v

class RoundTripBookingRequest(BaseModel):
    """Request to book departure and return legs together"""
    departure_flight_id: int
    return_flight_id: int
    passengers: List[RoundTripPassengerInfo]
    payment_method: PaymentMethod = PaymentMethod.ONLINE_GATEWAY
    expected_total: Optional[int] = Field(None, ge=0)

    @validator('passengers')
    def validate_passengers(cls, v):
        if not v or len(v) == 0:
            raise ValueError('At least one passenger is required')
        if len(v) > 10:
            raise ValueError('Maximum 10 passengers per booking')
        return v

# Booking Response Models
class BookingResult(BaseModel):
    """Committed booking"""
    ticket_ids: List[int]
    ticket_codes: List[str]
    total_price: int
    bundle_code: Optional[str] = None
