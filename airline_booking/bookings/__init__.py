"""
Booking Module

Turns a seat selection into committed tickets, all or nothing:

- booking_service.py: single-flight, flash-sale, counter and round-trip bookings
- ticket_codes.py: channel-prefixed ticket codes with collision retry
- router.py: FastAPI endpoints for checkout
- schemas.py: Pydantic models for booking requests and results

Features:
- Authoritative seat recheck inside the booking transaction
- Flash-sale quota checked and consumed in one conditional update
- Round trips booked in a single transaction with a bundle record
- Confirmation emails sent only after commit
"""

from .router import router
from .booking_service import BookingService
from .schemas import BookingRequest, BookingResult, RoundTripBookingRequest

__all__ = [
    "router",
    "BookingService",
    "BookingRequest",
    "BookingResult",
    "RoundTripBookingRequest",
]
