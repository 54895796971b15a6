from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP
from typing import Tuple

from airline_booking.errors import ValidationError
from airline_booking.models import Flight, SeatClass
from airline_booking.pricing.schemas import RoundTripQuote

class PricingCalculator:
    """Side-effect-free fare computations in whole currency units"""

    # Fallback multipliers applied to the flight base price
    CLASS_MULTIPLIERS = {
        SeatClass.ECONOMY: Decimal('1.0'),
        SeatClass.BUSINESS: Decimal('1.5'),
        SeatClass.FIRST: Decimal('2.5'),
    }

    @staticmethod
    def _floor(value: Decimal) -> int:
        return int(value.to_integral_value(rounding=ROUND_FLOOR))

    @staticmethod
    def _discount_factor(discount_percent: int) -> Decimal:
        if discount_percent < 0 or discount_percent > 100:
            raise ValidationError(f"Discount percent must be between 0 and 100, got {discount_percent}")
        return Decimal('1') - Decimal(discount_percent) / Decimal('100')

    def resolve_seat_price(self, flight: Flight, seat_class: SeatClass) -> int:
        """Explicit per-class price when set, otherwise base price times the class multiplier"""

        explicit_price = {
            SeatClass.ECONOMY: flight.price_economy,
            SeatClass.BUSINESS: flight.price_business,
            SeatClass.FIRST: flight.price_first,
        }[seat_class]

        if explicit_price:
            return int(explicit_price)

        derived = Decimal(flight.price) * self.CLASS_MULTIPLIERS[seat_class]
        return int(derived.quantize(Decimal('1'), rounding=ROUND_HALF_UP))

    def round_trip_price(self, departure_price: int, return_price: int, discount_percent: int) -> RoundTripQuote:
        """Apply the round-trip discount to the sum of both legs"""

        subtotal = departure_price + return_price
        total_price = self._floor(Decimal(subtotal) * self._discount_factor(discount_percent))

        return RoundTripQuote(
            departure_price=departure_price,
            return_price=return_price,
            subtotal=subtotal,
            discount_percent=discount_percent,
            discount_amount=subtotal - total_price,
            total_price=total_price
        )

    def flash_sale_price(self, original_price: int, discount_percent: int) -> int:
        """Discounted flash-sale price; quota and window checks happen at booking time"""
        return self._floor(Decimal(original_price) * self._discount_factor(discount_percent))

    def split_round_trip_total(self, quote: RoundTripQuote) -> Tuple[int, int]:
        """
        Split a discounted pair total into departure and return ticket prices.

        The departure share is proportional to the undiscounted departure price
        (floored); the return ticket takes the remainder so that both tickets
        always add up to the quoted total.
        """
        if quote.subtotal == 0:
            return 0, 0

        departure_share = self._floor(
            Decimal(quote.total_price) * Decimal(quote.departure_price) / Decimal(quote.subtotal)
        )
        return departure_share, quote.total_price - departure_share
