from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from airline_booking.api import unwrap
from airline_booking.auth import CurrentUser, get_current_user
from airline_booking.bookings.booking_service import BookingService
from airline_booking.bookings.schemas import BookingRequest, BookingResult, RoundTripBookingRequest
from airline_booking.database import get_db
from airline_booking.notifications import BackgroundTaskNotifier

router = APIRouter()

@router.post("", response_model=BookingResult, status_code=status.HTTP_201_CREATED)
def create_booking(
    request: BookingRequest,
    background_tasks: BackgroundTasks,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Book seats on one flight (online, counter or flash sale)"""
    service = BookingService(db, notifier=BackgroundTaskNotifier(background_tasks))
    return unwrap(service.create_booking(request, current_user))

@router.post("/round-trip", response_model=BookingResult, status_code=status.HTTP_201_CREATED)
def create_round_trip_booking(
    request: RoundTripBookingRequest,
    background_tasks: BackgroundTasks,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Book departure and return flights together"""
    service = BookingService(db, notifier=BackgroundTaskNotifier(background_tasks))
    return unwrap(service.create_round_trip_booking(request, current_user))

@router.post("/counter/{ticket_id}/cancel")
def cancel_counter_booking(
    ticket_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Cancel a counter booking and free its seat (admin only)"""
    service = BookingService(db)
    unwrap(service.cancel_counter_booking(ticket_id, current_user))
    return {"message": "Booking cancelled"}
