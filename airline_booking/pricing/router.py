from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from airline_booking.database import get_db
from airline_booking.models import Flight, SeatClass
from airline_booking.pricing.pricing_service import PricingCalculator
from airline_booking.pricing.schemas import RoundTripQuote, SeatPriceQuote
from airline_booking.pricing.settings_service import AppSettingsService

router = APIRouter()

def _get_flight(db: Session, flight_id: int) -> Flight:
    flight = db.query(Flight).filter(Flight.id == flight_id).first()
    if not flight:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Flight {flight_id} not found"
        )
    return flight

@router.get("/flights/{flight_id}/seat-price", response_model=SeatPriceQuote)
def get_seat_price(
    flight_id: int,
    seat_class: SeatClass = Query(SeatClass.ECONOMY, description="Seat class"),
    db: Session = Depends(get_db)
):
    """Price of one seat of the given class"""
    flight = _get_flight(db, flight_id)
    price = PricingCalculator().resolve_seat_price(flight, seat_class)
    return SeatPriceQuote(flight_id=flight.id, seat_class=seat_class, price=price)

@router.get("/round-trip", response_model=RoundTripQuote)
def get_round_trip_quote(
    departure_flight_id: int = Query(..., description="Departure flight ID"),
    return_flight_id: int = Query(..., description="Return flight ID"),
    departure_seat_class: SeatClass = Query(SeatClass.ECONOMY),
    return_seat_class: SeatClass = Query(SeatClass.ECONOMY),
    db: Session = Depends(get_db)
):
    """Per-passenger round-trip price with the current round-trip discount applied"""
    calculator = PricingCalculator()
    departure_flight = _get_flight(db, departure_flight_id)
    return_flight = _get_flight(db, return_flight_id)

    return calculator.round_trip_price(
        calculator.resolve_seat_price(departure_flight, departure_seat_class),
        calculator.resolve_seat_price(return_flight, return_seat_class),
        AppSettingsService(db).get_round_trip_discount()
    )
