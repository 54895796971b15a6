import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from airline_booking.auth.schemas import CurrentUser
from airline_booking.errors import (
    NotFound, OperationResult, SeatUnavailable, StateConflict, Unauthorized, ValidationError
)
from airline_booking.models import (
    Flight, FlightSeat, FlightStatus, RefundRequest, RefundStatus, RefundType, Ticket, TicketStatus
)
from airline_booking.notifications import Notifier, templates
from airline_booking.refunds.refund_policy import calculate_refund
from airline_booking.refunds.schemas import RefundPreview, RefundRequestView
from airline_booking.services import TransactionalService

logger = logging.getLogger(__name__)

class RefundService(TransactionalService):
    """
    Refund and reschedule requests.

    Customers submit requests against their own tickets; admins approve or
    reject them. Every status change is a conditional UPDATE from PENDING,
    so a request is processed at most once even under concurrent approvals.
    """

    def __init__(self, db: Session, notifier: Optional[Notifier] = None):
        super().__init__(db, notifier)

    def preview_refund(
        self,
        ticket_id: int,
        current_user: Optional[CurrentUser] = None,
        now: Optional[datetime] = None
    ) -> OperationResult:
        """Refund the ticket would receive if approved at ``now``; changes nothing"""

        now = now or datetime.now()

        def work(uow):
            ticket = self._get_ticket(ticket_id)
            if current_user is not None and not current_user.is_admin and ticket.customer_id != current_user.id:
                raise NotFound("Ticket not found")

            calculation = calculate_refund(ticket.price, ticket.flight.departure_date, now)
            return RefundPreview(
                ticket_id=ticket.id,
                ticket_code=ticket.code,
                departure_date=ticket.flight.departure_date,
                **calculation.model_dump()
            )

        return self._execute("Refund preview", work)

    def submit_request(
        self,
        ticket_id: int,
        request_type: RefundType,
        reason: str,
        current_user: Optional[CurrentUser],
        now: Optional[datetime] = None
    ) -> OperationResult:
        """Customer request to refund or reschedule one of their tickets"""

        now = now or datetime.now()

        def work(uow):
            if current_user is None:
                raise Unauthorized("Please login first")
            if not reason or not reason.strip():
                raise ValidationError("A reason is required")

            ticket = self.db.query(Ticket).filter(Ticket.id == ticket_id).first()
            if not ticket or ticket.customer_id != current_user.id:
                raise NotFound("Ticket not found")
            if ticket.status == TicketStatus.FAILED:
                raise ValidationError("This ticket has been cancelled")

            pending = (
                self.db.query(RefundRequest.id)
                .filter(RefundRequest.ticket_id == ticket_id, RefundRequest.status == RefundStatus.PENDING)
                .first()
            )
            if pending:
                raise StateConflict("You already have a pending request for this ticket")

            refund_request = RefundRequest(
                ticket_id=ticket.id,
                type=request_type,
                status=RefundStatus.PENDING,
                reason=reason.strip(),
                created_at=now
            )
            if request_type == RefundType.REFUND:
                # Estimate only; recomputed when the request is approved
                calculation = calculate_refund(ticket.price, ticket.flight.departure_date, now)
                refund_request.original_amount = calculation.original_amount
                refund_request.refund_percent = calculation.refund_percent
                refund_request.refund_amount = calculation.refund_amount

            self.db.add(refund_request)
            self.db.flush()

            logger.info(f"{request_type.value} request {refund_request.id} submitted for ticket {ticket.code}")
            return RefundRequestView.model_validate(refund_request)

        return self._execute("Refund request submission", work)

    def approve_refund_request(
        self,
        request_id: int,
        refund_amount: Optional[int] = None,
        notes: Optional[str] = None,
        current_user: Optional[CurrentUser] = None,
        now: Optional[datetime] = None
    ) -> OperationResult:
        """Approve a refund: ticket cancelled and seat released in one transaction"""

        now = now or datetime.now()

        def work(uow):
            self._require_admin(current_user)
            refund_request = self._get_pending_request(request_id, RefundType.REFUND)
            ticket = refund_request.ticket

            calculation = calculate_refund(ticket.price, ticket.flight.departure_date, now)
            if refund_amount is not None and refund_amount != calculation.refund_amount:
                logger.warning(
                    f"Refund request {request_id}: requested amount {refund_amount} differs from "
                    f"policy amount {calculation.refund_amount}, using policy amount"
                )

            self._transition(
                request_id,
                RefundStatus.APPROVED,
                original_amount=calculation.original_amount,
                refund_percent=calculation.refund_percent,
                refund_amount=calculation.refund_amount,
                admin_notes=notes,
                processed_at=now
            )

            stmt = (
                update(Ticket)
                .where(Ticket.id == ticket.id, Ticket.status != TicketStatus.FAILED)
                .values(status=TicketStatus.FAILED)
                .execution_options(synchronize_session=False)
            )
            if self.db.execute(stmt).rowcount != 1:
                raise StateConflict(f"Ticket {ticket.code} is already cancelled")

            self._release_seat(ticket.seat_id)
            self.db.refresh(refund_request)

            logger.info(
                f"Refund request {request_id} approved: ticket {ticket.code} cancelled, "
                f"{calculation.refund_percent}% refund of {calculation.original_amount}"
            )
            self._notify_after_commit(uow, templates.refund_approved(ticket, refund_request))
            return RefundRequestView.model_validate(refund_request)

        return self._execute("Refund approval", work)

    def approve_reschedule_request(
        self,
        request_id: int,
        new_flight_id: int,
        new_seat_id: int,
        notes: Optional[str] = None,
        current_user: Optional[CurrentUser] = None,
        now: Optional[datetime] = None
    ) -> OperationResult:
        """Move a ticket to a seat on another flight; old seat freed, new seat claimed atomically"""

        now = now or datetime.now()

        def work(uow):
            self._require_admin(current_user)
            refund_request = self._get_pending_request(request_id, RefundType.RESCHEDULE)
            ticket = refund_request.ticket
            if ticket.status == TicketStatus.FAILED:
                raise StateConflict(f"Ticket {ticket.code} has been cancelled")

            new_flight = self.db.query(Flight).filter(Flight.id == new_flight_id).first()
            if not new_flight:
                raise NotFound(f"Flight {new_flight_id} not found")
            if new_flight.status == FlightStatus.CANCELLED:
                raise ValidationError(f"Flight {new_flight.code} has been cancelled")
            if new_flight.departure_date < now:
                raise ValidationError(f"Flight {new_flight.code} has already departed")

            new_seat = (
                self.db.query(FlightSeat)
                .filter(FlightSeat.id == new_seat_id, FlightSeat.flight_id == new_flight_id)
                .first()
            )
            if not new_seat:
                raise NotFound(f"Seat {new_seat_id} not found on flight {new_flight.code}")
            if new_seat.id == ticket.seat_id:
                raise ValidationError(f"Ticket {ticket.code} is already assigned to seat {new_seat.seat_number}")

            self._transition(
                request_id,
                RefundStatus.APPROVED,
                new_flight_id=new_flight.id,
                new_seat_id=new_seat.id,
                admin_notes=notes,
                processed_at=now
            )

            claim = (
                update(FlightSeat)
                .where(FlightSeat.id == new_seat.id, FlightSeat.is_booked.is_(False))
                .values(is_booked=True, hold_until=None, held_by_user_id=None)
                .execution_options(synchronize_session=False)
            )
            if self.db.execute(claim).rowcount != 1:
                raise SeatUnavailable(f"Seat {new_seat.seat_number} is already booked", [new_seat.seat_number])

            old_flight_code = ticket.flight.code
            old_seat_number = ticket.seat.seat_number
            self._release_seat(ticket.seat_id)

            ticket.flight = new_flight
            ticket.seat = new_seat
            self.db.flush()
            self.db.refresh(refund_request)

            logger.info(
                f"Reschedule request {request_id} approved: ticket {ticket.code} moved from "
                f"{old_flight_code}/{old_seat_number} to {new_flight.code}/{new_seat.seat_number}"
            )
            self._notify_after_commit(uow, templates.reschedule_approved(ticket, refund_request))
            return RefundRequestView.model_validate(refund_request)

        return self._execute("Reschedule approval", work)

    def reject_request(
        self,
        request_id: int,
        reason: str,
        current_user: Optional[CurrentUser] = None,
        now: Optional[datetime] = None
    ) -> OperationResult:
        """Reject a pending request; the ticket and its seat are left untouched"""

        now = now or datetime.now()

        def work(uow):
            self._require_admin(current_user)
            if not reason or not reason.strip():
                raise ValidationError("A rejection reason is required")

            refund_request = self._get_pending_request(request_id)
            self._transition(
                request_id,
                RefundStatus.REJECTED,
                admin_notes=reason.strip(),
                processed_at=now
            )
            self.db.refresh(refund_request)

            logger.info(f"{refund_request.type.value} request {request_id} rejected")
            self._notify_after_commit(uow, templates.request_rejected(refund_request.ticket, refund_request))
            return RefundRequestView.model_validate(refund_request)

        return self._execute("Request rejection", work)

    @staticmethod
    def _require_admin(current_user: Optional[CurrentUser]):
        if current_user is None or not current_user.is_admin:
            raise Unauthorized("Admin access required")

    def _get_ticket(self, ticket_id: int) -> Ticket:
        ticket = self.db.query(Ticket).filter(Ticket.id == ticket_id).first()
        if not ticket:
            raise NotFound("Ticket not found")
        return ticket

    def _get_pending_request(self, request_id: int, request_type: Optional[RefundType] = None) -> RefundRequest:
        refund_request = (
            self.db.query(RefundRequest)
            .filter(RefundRequest.id == request_id)
            .populate_existing()
            .first()
        )
        if not refund_request:
            raise NotFound(f"Request {request_id} not found")
        if refund_request.status != RefundStatus.PENDING:
            raise StateConflict(f"Request {request_id} has already been {refund_request.status.value.lower()}")
        if request_type is not None and refund_request.type != request_type:
            raise ValidationError(f"Request {request_id} is not a {request_type.value.lower()} request")
        return refund_request

    def _transition(self, request_id: int, status: RefundStatus, **values):
        """PENDING -> ``status``; the row count tells whether this caller won"""
        stmt = (
            update(RefundRequest)
            .where(RefundRequest.id == request_id, RefundRequest.status == RefundStatus.PENDING)
            .values(status=status, **values)
            .execution_options(synchronize_session=False)
        )
        if self.db.execute(stmt).rowcount != 1:
            raise StateConflict(f"Request {request_id} has already been processed")

    def _release_seat(self, seat_id: int):
        stmt = (
            update(FlightSeat)
            .where(FlightSeat.id == seat_id)
            .values(is_booked=False, hold_until=None, held_by_user_id=None)
            .execution_options(synchronize_session=False)
        )
        self.db.execute(stmt)
