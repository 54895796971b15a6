from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from airline_booking.api import unwrap
from airline_booking.auth import CurrentUser, get_current_user
from airline_booking.database import get_db
from airline_booking.notifications import BackgroundTaskNotifier
from airline_booking.refunds.refund_service import RefundService
from airline_booking.refunds.schemas import (
    ApproveRefundRequest, ApproveRescheduleRequest, RefundPreview, RefundRequestCreate,
    RefundRequestView, RejectRequest
)

router = APIRouter()

@router.get("/preview/{ticket_id}", response_model=RefundPreview)
def preview_refund(
    ticket_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Refund the ticket would receive if cancelled now"""
    service = RefundService(db)
    return unwrap(service.preview_refund(ticket_id, current_user))

@router.post("/requests", response_model=RefundRequestView, status_code=status.HTTP_201_CREATED)
def submit_request(
    request: RefundRequestCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Submit a refund or reschedule request for one of your tickets"""
    service = RefundService(db)
    return unwrap(service.submit_request(request.ticket_id, request.type, request.reason, current_user))

@router.post("/requests/{request_id}/approve-refund", response_model=RefundRequestView)
def approve_refund_request(
    request_id: int,
    request: ApproveRefundRequest,
    background_tasks: BackgroundTasks,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Approve a refund request (admin only)"""
    service = RefundService(db, notifier=BackgroundTaskNotifier(background_tasks))
    return unwrap(service.approve_refund_request(
        request_id, refund_amount=request.refund_amount, notes=request.notes, current_user=current_user
    ))

@router.post("/requests/{request_id}/approve-reschedule", response_model=RefundRequestView)
def approve_reschedule_request(
    request_id: int,
    request: ApproveRescheduleRequest,
    background_tasks: BackgroundTasks,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Approve a reschedule request onto a new flight and seat (admin only)"""
    service = RefundService(db, notifier=BackgroundTaskNotifier(background_tasks))
    return unwrap(service.approve_reschedule_request(
        request_id, request.new_flight_id, request.new_seat_id, notes=request.notes, current_user=current_user
    ))

@router.post("/requests/{request_id}/reject", response_model=RefundRequestView)
def reject_request(
    request_id: int,
    request: RejectRequest,
    background_tasks: BackgroundTasks,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Reject a pending request (admin only)"""
    service = RefundService(db, notifier=BackgroundTaskNotifier(background_tasks))
    return unwrap(service.reject_request(request_id, request.reason, current_user=current_user))
