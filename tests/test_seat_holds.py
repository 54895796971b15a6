from datetime import timedelta

from conftest import NOW, seat_by_number

from airline_booking.errors import ErrorKind
from airline_booking.seats import SeatAvailability, SeatHoldService


def test_hold_is_exclusive_until_expiry(db, flight, customer, other_customer):
    service = SeatHoldService(db, hold_minutes=10)
    seat = seat_by_number(db, flight.id, "1A")

    first = service.acquire_hold(seat.id, customer.id, now=NOW)
    assert first.success
    assert first.data.hold_until == NOW + timedelta(minutes=10)

    blocked = service.acquire_hold(seat.id, other_customer.id, now=NOW + timedelta(minutes=5))
    assert blocked.error_kind == ErrorKind.SEAT_UNAVAILABLE
    assert blocked.error.seat_numbers == ["1A"]

    later = service.acquire_hold(seat.id, other_customer.id, now=NOW + timedelta(minutes=11))
    assert later.success
    assert seat_by_number(db, flight.id, "1A").held_by_user_id == other_customer.id


def test_holder_can_extend_own_hold(db, flight, customer):
    service = SeatHoldService(db, hold_minutes=10)
    seat = seat_by_number(db, flight.id, "1A")

    service.acquire_hold(seat.id, customer.id, now=NOW)
    extended = service.acquire_hold(seat.id, customer.id, now=NOW + timedelta(minutes=8))

    assert extended.success
    assert extended.data.hold_until == NOW + timedelta(minutes=18)


def test_booked_seat_cannot_be_held(db, flight, customer):
    seat = seat_by_number(db, flight.id, "1B")
    seat.is_booked = True
    db.commit()

    result = SeatHoldService(db).acquire_hold(seat.id, customer.id, now=NOW)

    assert result.error_kind == ErrorKind.SEAT_UNAVAILABLE
    assert "already booked" in result.error.message


def test_multi_seat_hold_is_all_or_nothing(db, flight, customer, other_customer):
    service = SeatHoldService(db)
    a = seat_by_number(db, flight.id, "1A")
    b = seat_by_number(db, flight.id, "1B")

    assert service.acquire_hold(b.id, other_customer.id, now=NOW).success

    result = service.hold_seats(flight.id, [a.id, b.id], customer.id, now=NOW)

    assert result.error_kind == ErrorKind.SEAT_UNAVAILABLE
    assert result.error.seat_numbers == ["1B"]
    assert seat_by_number(db, flight.id, "1A").held_by_user_id is None


def test_zero_ttl_hold_expires_immediately(db, flight, customer, other_customer):
    service = SeatHoldService(db, hold_minutes=10)
    seat = seat_by_number(db, flight.id, "1C")

    held = service.acquire_hold(seat.id, customer.id, ttl=timedelta(0), now=NOW)
    assert held.data.hold_until == NOW

    assert service.acquire_hold(seat.id, other_customer.id, now=NOW).success


def test_duplicate_seats_in_hold_rejected(db, flight, customer):
    seat = seat_by_number(db, flight.id, "1A")

    result = SeatHoldService(db).hold_seats(flight.id, [seat.id, seat.id], customer.id, now=NOW)

    assert result.error_kind == ErrorKind.VALIDATION_ERROR
    assert seat_by_number(db, flight.id, "1A").held_by_user_id is None


def test_hold_unknown_seat(db, flight, customer):
    result = SeatHoldService(db).acquire_hold(9999, customer.id, now=NOW)
    assert result.error_kind == ErrorKind.NOT_FOUND


def test_hold_seats_from_another_flight(db, make_flight, customer):
    first = make_flight(code="GA-1")
    second = make_flight(code="GA-2")
    foreign = seat_by_number(db, second.id, "1A")

    result = SeatHoldService(db).hold_seats(first.id, [foreign.id], customer.id, now=NOW)

    assert result.error_kind == ErrorKind.NOT_FOUND


def test_release_only_affects_own_holds(db, flight, customer, other_customer):
    service = SeatHoldService(db)
    seat = seat_by_number(db, flight.id, "1A")
    service.acquire_hold(seat.id, customer.id, now=NOW)

    assert service.release_hold(seat.id, other_customer.id).success
    assert seat_by_number(db, flight.id, "1A").held_by_user_id == customer.id

    assert service.release_hold(seat.id, customer.id).success
    released = seat_by_number(db, flight.id, "1A")
    assert released.held_by_user_id is None
    assert released.hold_until is None


def test_validate_hold(db, flight, customer, other_customer):
    service = SeatHoldService(db, hold_minutes=10)
    seat = seat_by_number(db, flight.id, "1A")
    service.acquire_hold(seat.id, customer.id, now=NOW)

    assert service.validate_hold([seat.id], customer.id, now=NOW + timedelta(minutes=2)).success

    expired = service.validate_hold([seat.id], customer.id, now=NOW + timedelta(minutes=15))
    assert expired.error_kind == ErrorKind.SEAT_UNAVAILABLE
    assert "expired" in expired.error.message

    not_mine = service.validate_hold([seat.id], other_customer.id, now=NOW)
    assert not_mine.error_kind == ErrorKind.SEAT_UNAVAILABLE


def test_seat_map_reflects_viewer(db, flight, customer, other_customer):
    service = SeatHoldService(db)
    a = seat_by_number(db, flight.id, "1A")
    b = seat_by_number(db, flight.id, "1B")
    b.is_booked = True
    db.commit()
    service.acquire_hold(a.id, customer.id, now=NOW)

    mine = {s.seat_number: s.availability for s in service.get_seat_map(flight.id, customer.id, now=NOW).data.seats}
    theirs = service.get_seat_map(flight.id, other_customer.id, now=NOW).data

    assert mine["1A"] == SeatAvailability.HELD_BY_YOU
    assert mine["1B"] == SeatAvailability.BOOKED
    assert {s.seat_number: s.availability for s in theirs.seats}["1A"] == SeatAvailability.HELD
    assert theirs.available_count == 2

    after_expiry = service.get_seat_map(flight.id, other_customer.id, now=NOW + timedelta(hours=1)).data
    assert after_expiry.available_count == 3
