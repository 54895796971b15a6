from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from airline_booking.models import RefundStatus, RefundType

class RefundCalculation(BaseModel):
    """Refund tier applied to a ticket price"""
    original_amount: int
    refund_percent: int
    refund_amount: int
    policy_description: str

class RefundPreview(RefundCalculation):
    ticket_id: int
    ticket_code: str
    departure_date: datetime

# Request Models
class RefundRequestCreate(BaseModel):
    ticket_id: int
    type: RefundType
    reason: str = Field(..., max_length=2000)

class ApproveRefundRequest(BaseModel):
    # Informational; the refund is always recomputed from the policy at approval time
    refund_amount: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None

class ApproveRescheduleRequest(BaseModel):
    new_flight_id: int
    new_seat_id: int
    notes: Optional[str] = None

class RejectRequest(BaseModel):
    reason: str = Field(..., max_length=2000)

# Response Models
class RefundRequestView(BaseModel):
    id: int
    ticket_id: int
    type: RefundType
    status: RefundStatus
    reason: Optional[str] = None
    original_amount: Optional[int] = None
    refund_percent: Optional[int] = None
    refund_amount: Optional[int] = None
    new_flight_id: Optional[int] = None
    new_seat_id: Optional[int] = None
    admin_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None

    class Config:
        from_attributes = True
