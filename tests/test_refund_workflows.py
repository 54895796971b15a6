from datetime import timedelta

import pytest

from conftest import NOW, RecordingNotifier, assert_inventory_consistent, seat_by_number

from airline_booking.bookings import BookingService
from airline_booking.bookings.schemas import BookingRequest, PassengerInfo
from airline_booking.errors import ErrorKind
from airline_booking.models import RefundRequest, RefundStatus, RefundType, SeatClass, Ticket, TicketStatus
from airline_booking.refunds import RefundService


def book(db, flight, seat_number, user):
    seat = seat_by_number(db, flight.id, seat_number)
    result = BookingService(db).create_booking(
        BookingRequest(
            flight_id=flight.id,
            seat_ids=[seat.id],
            passengers=[PassengerInfo(seat_id=seat.id, name="Traveller")]
        ),
        user, now=NOW
    )
    assert result.success
    return db.get(Ticket, result.data.ticket_ids[0])


@pytest.fixture
def departure_flight(make_flight):
    return make_flight(code="F1", seats=["10C", "10D"], departure_date=NOW + timedelta(hours=72))


@pytest.fixture
def ticket(db, departure_flight, customer):
    return book(db, departure_flight, "10C", customer)


def submit(db, ticket, user, request_type=RefundType.REFUND, reason="Change of plans"):
    result = RefundService(db).submit_request(ticket.id, request_type, reason, user, now=NOW)
    assert result.success, result.error
    return result.data


class TestSubmitRequest:

    def test_submit_refund_request_with_estimate(self, db, ticket, customer):
        request = submit(db, ticket, customer)

        assert request.status == RefundStatus.PENDING
        assert request.type == RefundType.REFUND
        assert request.refund_percent == 100
        assert request.refund_amount == 1_000_000

    def test_one_pending_request_per_ticket(self, db, ticket, customer):
        submit(db, ticket, customer)

        duplicate = RefundService(db).submit_request(
            ticket.id, RefundType.RESCHEDULE, "Other plans", customer, now=NOW
        )

        assert duplicate.error_kind == ErrorKind.STATE_CONFLICT

    def test_cannot_request_for_someone_elses_ticket(self, db, ticket, other_customer):
        result = RefundService(db).submit_request(ticket.id, RefundType.REFUND, "Mine now", other_customer, now=NOW)
        assert result.error_kind == ErrorKind.NOT_FOUND

    def test_reason_required(self, db, ticket, customer):
        result = RefundService(db).submit_request(ticket.id, RefundType.REFUND, "   ", customer, now=NOW)
        assert result.error_kind == ErrorKind.VALIDATION_ERROR

    def test_preview_is_owner_or_admin_only(self, db, ticket, customer, other_customer, admin):
        service = RefundService(db)
        now = ticket.flight.departure_date - timedelta(hours=10)

        preview = service.preview_refund(ticket.id, customer, now=now)
        assert preview.data.refund_percent == 50
        assert preview.data.refund_amount == 500_000
        assert preview.data.ticket_code == ticket.code

        assert service.preview_refund(ticket.id, admin, now=now).success
        assert service.preview_refund(ticket.id, other_customer, now=now).error_kind == ErrorKind.NOT_FOUND
        assert db.query(RefundRequest).count() == 0


class TestApproveRefund:

    def test_refund_cancels_ticket_and_frees_seat(self, db, ticket, customer, admin, departure_flight, notifier):
        request = submit(db, ticket, customer)
        approved_at = departure_flight.departure_date - timedelta(hours=10)

        result = RefundService(db, notifier).approve_refund_request(
            request.id, notes="Approved at desk", current_user=admin, now=approved_at
        )

        assert result.success
        assert result.data.status == RefundStatus.APPROVED
        assert result.data.refund_percent == 50
        assert result.data.refund_amount == 500_000
        assert result.data.processed_at == approved_at
        assert result.data.admin_notes == "Approved at desk"

        db.refresh(ticket)
        assert ticket.status == TicketStatus.FAILED
        assert not seat_by_number(db, departure_flight.id, "10C").is_booked
        assert_inventory_consistent(db)

        assert [m.to for m in notifier.messages] == [customer.email]
        assert "Refund Approved" in notifier.messages[0].subject

    def test_policy_amount_wins_over_requested_amount(self, db, ticket, customer, admin, departure_flight):
        request = submit(db, ticket, customer)

        result = RefundService(db).approve_refund_request(
            request.id, refund_amount=1_000_000, current_user=admin,
            now=departure_flight.departure_date - timedelta(hours=2)
        )

        assert result.data.refund_amount == 250_000

    def test_requires_admin(self, db, ticket, customer):
        request = submit(db, ticket, customer)

        result = RefundService(db).approve_refund_request(request.id, current_user=customer, now=NOW)

        assert result.error_kind == ErrorKind.UNAUTHORIZED
        assert db.get(RefundRequest, request.id, populate_existing=True).status == RefundStatus.PENDING

    def test_request_is_processed_once(self, db, session_factory, ticket, customer, admin):
        request = submit(db, ticket, customer)

        other_session = session_factory()
        try:
            assert other_session.get(RefundRequest, request.id).status == RefundStatus.PENDING

            first = RefundService(db).approve_refund_request(request.id, current_user=admin, now=NOW)
            second = RefundService(other_session).approve_refund_request(request.id, current_user=admin, now=NOW)
        finally:
            other_session.close()

        assert first.success
        assert second.error_kind == ErrorKind.STATE_CONFLICT

    def test_wrong_request_type(self, db, ticket, customer, admin):
        request = submit(db, ticket, customer, request_type=RefundType.RESCHEDULE)

        result = RefundService(db).approve_refund_request(request.id, current_user=admin, now=NOW)

        assert result.error_kind == ErrorKind.VALIDATION_ERROR

    def test_unknown_request(self, db, admin):
        result = RefundService(db).approve_refund_request(404, current_user=admin, now=NOW)
        assert result.error_kind == ErrorKind.NOT_FOUND

    def test_notification_failure_keeps_approval(self, db, ticket, customer, admin):
        request = submit(db, ticket, customer)

        result = RefundService(db, RecordingNotifier(fail=True)).approve_refund_request(
            request.id, current_user=admin, now=NOW
        )

        assert result.success
        assert db.get(RefundRequest, request.id, populate_existing=True).status == RefundStatus.APPROVED


class TestApproveReschedule:

    @pytest.fixture
    def new_flight(self, make_flight):
        return make_flight(code="F2", seats=[("4B", SeatClass.BUSINESS), ("4C", SeatClass.BUSINESS)],
                           departure_date=NOW + timedelta(days=5))

    def test_moves_ticket_to_new_seat(self, db, ticket, customer, admin, departure_flight, new_flight, notifier):
        request = submit(db, ticket, customer, request_type=RefundType.RESCHEDULE)
        new_seat = seat_by_number(db, new_flight.id, "4B")

        result = RefundService(db, notifier).approve_reschedule_request(
            request.id, new_flight.id, new_seat.id, current_user=admin, now=NOW
        )

        assert result.success
        assert result.data.new_flight_id == new_flight.id
        assert result.data.new_seat_id == new_seat.id

        db.refresh(ticket)
        assert ticket.flight_id == new_flight.id
        assert ticket.seat_id == new_seat.id
        assert ticket.status == TicketStatus.SUCCESS
        assert not seat_by_number(db, departure_flight.id, "10C").is_booked
        assert seat_by_number(db, new_flight.id, "4B").is_booked
        assert_inventory_consistent(db)

        assert "Reschedule Approved" in notifier.messages[0].subject
        assert "4B" in notifier.messages[0].html

    def test_new_seat_already_booked(self, db, ticket, customer, other_customer, admin, departure_flight, new_flight):
        taken = book(db, new_flight, "4B", other_customer)
        request = submit(db, ticket, customer, request_type=RefundType.RESCHEDULE)

        result = RefundService(db).approve_reschedule_request(
            request.id, new_flight.id, taken.seat_id, current_user=admin, now=NOW
        )

        assert result.error_kind == ErrorKind.SEAT_UNAVAILABLE
        assert result.error.seat_numbers == ["4B"]
        assert db.get(RefundRequest, request.id, populate_existing=True).status == RefundStatus.PENDING
        assert seat_by_number(db, departure_flight.id, "10C").is_booked
        assert db.get(Ticket, ticket.id, populate_existing=True).seat_id == seat_by_number(db, departure_flight.id, "10C").id
        assert_inventory_consistent(db)

    def test_seat_must_belong_to_new_flight(self, db, ticket, customer, admin, departure_flight, new_flight):
        request = submit(db, ticket, customer, request_type=RefundType.RESCHEDULE)
        wrong_seat = seat_by_number(db, departure_flight.id, "10D")

        result = RefundService(db).approve_reschedule_request(
            request.id, new_flight.id, wrong_seat.id, current_user=admin, now=NOW
        )

        assert result.error_kind == ErrorKind.NOT_FOUND

    def test_requires_reschedule_request(self, db, ticket, customer, admin, new_flight):
        request = submit(db, ticket, customer)
        new_seat = seat_by_number(db, new_flight.id, "4B")

        result = RefundService(db).approve_reschedule_request(
            request.id, new_flight.id, new_seat.id, current_user=admin, now=NOW
        )

        assert result.error_kind == ErrorKind.VALIDATION_ERROR


class TestRejectRequest:

    def test_reject_leaves_ticket_untouched(self, db, ticket, customer, admin, departure_flight, notifier):
        request = submit(db, ticket, customer)
        service = RefundService(db, notifier)

        assert service.reject_request(request.id, "", current_user=admin, now=NOW).error_kind == ErrorKind.VALIDATION_ERROR

        result = service.reject_request(request.id, "Non-refundable fare", current_user=admin, now=NOW)

        assert result.success
        assert result.data.status == RefundStatus.REJECTED
        assert result.data.admin_notes == "Non-refundable fare"

        db.refresh(ticket)
        assert ticket.status == TicketStatus.SUCCESS
        assert seat_by_number(db, departure_flight.id, "10C").is_booked
        assert "Rejected" in notifier.messages[0].subject

        again = service.approve_refund_request(request.id, current_user=admin, now=NOW)
        assert again.error_kind == ErrorKind.STATE_CONFLICT

    def test_reject_requires_admin(self, db, ticket, customer):
        request = submit(db, ticket, customer)
        result = RefundService(db).reject_request(request.id, "No", current_user=customer, now=NOW)
        assert result.error_kind == ErrorKind.UNAUTHORIZED
