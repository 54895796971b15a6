"""
Seat Hold Module

Advisory, time-limited seat holds used while a customer picks seats:

- hold_service.py: acquire/release/validate holds and render seat maps
- router.py: FastAPI endpoints for the seat selection screen
- schemas.py: Pydantic models for holds and seat maps

Holds expire lazily and never guarantee a booking; the booking transaction
rechecks every seat itself.
"""

from .router import router
from .hold_service import SeatHoldService
from .schemas import HoldResult, SeatAvailability, SeatMap, SeatView

__all__ = [
    "router",
    "SeatHoldService",
    "HoldResult",
    "SeatAvailability",
    "SeatMap",
    "SeatView",
]
