"""
Pricing Module

Pure price computations used by the booking engine:

- pricing_service.py: per-class seat prices, round-trip and flash-sale discounts
- settings_service.py: externally stored pricing settings (round-trip discount)
- router.py: quote endpoints for the checkout UI
"""

from .router import router
from .pricing_service import PricingCalculator
from .settings_service import AppSettingsService
from .schemas import RoundTripQuote, SeatPriceQuote

__all__ = [
    "router",
    "PricingCalculator",
    "AppSettingsService",
    "RoundTripQuote",
    "SeatPriceQuote",
]
