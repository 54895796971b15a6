from datetime import datetime
from typing import Optional

from airline_booking.refunds.schemas import RefundCalculation

# (hours before departure, percent refunded), checked in order
REFUND_TIERS = [
    (24, 100),
    (12, 75),
    (6, 50),
    (0, 25),
]

def hours_until_departure(departure_date: datetime, now: Optional[datetime] = None) -> float:
    now = now or datetime.now()
    return (departure_date - now).total_seconds() / 3600

def refund_percent_for(hours: float) -> int:
    for threshold, percent in REFUND_TIERS:
        if hours >= threshold:
            return percent
    return 0

def _describe(hours: float, percent: int) -> str:
    if hours < 0:
        return "Flight has already departed - no refund"
    if percent == 100:
        return "More than 24 hours before departure - 100% refund"
    if percent == 75:
        return "12-24 hours before departure - 75% refund"
    if percent == 50:
        return "6-12 hours before departure - 50% refund"
    return "Less than 6 hours before departure - 25% refund"

def calculate_refund(
    original_amount: int,
    departure_date: datetime,
    now: Optional[datetime] = None
) -> RefundCalculation:
    """
    Refund owed for a ticket cancelled at ``now``.

    Policy:
    - 24+ hours before departure: 100%
    - 12-24 hours: 75%
    - 6-12 hours: 50%
    - 0-6 hours: 25%
    - after departure: nothing

    The amount is floored to whole currency units.
    """

    hours = hours_until_departure(departure_date, now)
    percent = refund_percent_for(hours)

    return RefundCalculation(
        original_amount=original_amount,
        refund_percent=percent,
        refund_amount=original_amount * percent // 100,
        policy_description=_describe(hours, percent)
    )
