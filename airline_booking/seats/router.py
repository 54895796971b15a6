from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from airline_booking.api import unwrap
from airline_booking.auth import CurrentUser, get_current_user, get_optional_user
from airline_booking.database import get_db
from airline_booking.seats.hold_service import SeatHoldService
from airline_booking.seats.schemas import (
    HoldRequest, HoldResult, HoldSeatsRequest, SeatIdsRequest, SeatMap
)

router = APIRouter()

def _ttl(minutes: Optional[int]) -> Optional[timedelta]:
    return timedelta(minutes=minutes) if minutes else None

@router.get("/flights/{flight_id}", response_model=SeatMap)
def get_seat_map(
    flight_id: int,
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """Seat map with availability as seen by the caller"""
    service = SeatHoldService(db)
    user_id = current_user.id if current_user else None
    return unwrap(service.get_seat_map(flight_id, user_id))

@router.post("/hold", response_model=HoldResult)
def hold_seats(
    request: HoldSeatsRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Hold several seats of one flight for checkout"""
    service = SeatHoldService(db)
    return unwrap(service.hold_seats(
        request.flight_id, request.seat_ids, current_user.id, ttl=_ttl(request.ttl_minutes)
    ))

@router.post("/release")
def release_seats(
    request: SeatIdsRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Release the caller's holds on the given seats"""
    service = SeatHoldService(db)
    unwrap(service.release_seats(request.seat_ids, current_user.id))
    return {"message": "Seats released"}

@router.post("/validate-hold", response_model=HoldResult)
def validate_hold(
    request: SeatIdsRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Check the caller still holds every seat before payment"""
    service = SeatHoldService(db)
    return unwrap(service.validate_hold(request.seat_ids, current_user.id))

@router.post("/{seat_id}/hold", response_model=HoldResult)
def acquire_hold(
    seat_id: int,
    request: Optional[HoldRequest] = None,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Hold a single seat"""
    service = SeatHoldService(db)
    ttl = _ttl(request.ttl_minutes) if request else None
    return unwrap(service.acquire_hold(seat_id, current_user.id, ttl=ttl))

@router.delete("/{seat_id}/hold")
def release_hold(
    seat_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Release the caller's hold on a seat"""
    service = SeatHoldService(db)
    unwrap(service.release_hold(seat_id, current_user.id))
    return {"message": "Seat released"}
