from pydantic import BaseModel

from airline_booking.models import SeatClass

class SeatPriceQuote(BaseModel):
    """Resolved price of one seat class on a flight"""
    flight_id: int
    seat_class: SeatClass
    price: int

class RoundTripQuote(BaseModel):
    """Round-trip price breakdown for one passenger"""
    departure_price: int
    return_price: int
    subtotal: int
    discount_percent: int
    discount_amount: int
    total_price: int
