"""
Refund Module

Time-decayed refunds and reschedules of committed tickets:

- refund_policy.py: refund tiers by hours before departure
- refund_service.py: customer requests and admin approve/reject workflows
- router.py: FastAPI endpoints
- schemas.py: Pydantic models for previews and requests
"""

from .router import router
from .refund_policy import calculate_refund
from .refund_service import RefundService
from .schemas import RefundCalculation, RefundPreview, RefundRequestView

__all__ = [
    "router",
    "calculate_refund",
    "RefundService",
    "RefundCalculation",
    "RefundPreview",
    "RefundRequestView",
]
