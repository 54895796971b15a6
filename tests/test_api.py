import pytest
from fastapi.testclient import TestClient

from conftest import seat_by_number

from airline_booking.auth import get_current_user, get_optional_user
from airline_booking.auth.utils import create_access_token
from airline_booking.database import get_db
from airline_booking.main import app
from airline_booking.models import SeatClass

API = "/api/v1"


@pytest.fixture
def auth():
    """Caller impersonated by the overridden auth dependencies"""
    return {"user": None}


@pytest.fixture
def client(session_factory, auth):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: auth["user"]
    app.dependency_overrides[get_optional_user] = lambda: auth["user"]
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def booking_payload(flight, seats, **extra):
    payload = {
        "flight_id": flight.id,
        "seat_ids": [seat.id for seat in seats],
        "passengers": [{"seat_id": seat.id, "name": "Traveller"} for seat in seats],
    }
    payload.update(extra)
    return payload


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_hold_conflict_maps_to_409(client, auth, db, flight, customer, other_customer):
    seat = seat_by_number(db, flight.id, "1A")

    auth["user"] = customer
    assert client.post(f"{API}/seats/{seat.id}/hold").status_code == 200

    auth["user"] = other_customer
    response = client.post(f"{API}/seats/{seat.id}/hold")

    assert response.status_code == 409
    assert response.json()["detail"]["kind"] == "seat_unavailable"
    assert response.json()["detail"]["seat_numbers"] == ["1A"]

    seat_map = client.get(f"{API}/seats/flights/{flight.id}").json()
    assert {s["seat_number"]: s["availability"] for s in seat_map["seats"]}["1A"] == "held"


def test_booking_then_double_booking(client, auth, db, flight, customer, other_customer):
    seat = seat_by_number(db, flight.id, "1B")

    auth["user"] = customer
    created = client.post(f"{API}/bookings", json=booking_payload(flight, [seat]))
    assert created.status_code == 201
    assert created.json()["ticket_codes"][0].startswith("TRX-")

    auth["user"] = other_customer
    conflict = client.post(f"{API}/bookings", json=booking_payload(flight, [seat]))
    assert conflict.status_code == 409
    assert conflict.json()["detail"]["seat_numbers"] == ["1B"]


def test_counter_booking_needs_admin(client, auth, db, flight, customer):
    seat = seat_by_number(db, flight.id, "1C")
    auth["user"] = customer

    response = client.post(f"{API}/bookings", json=booking_payload(
        flight, [seat], channel="COUNTER", counter_customer={"name": "Walk In"}
    ))

    assert response.status_code == 403


def test_too_many_seats_rejected_at_boundary(client, auth, flight, customer):
    auth["user"] = customer
    payload = {"flight_id": flight.id, "seat_ids": list(range(1, 12)), "passengers": []}

    assert client.post(f"{API}/bookings", json=payload).status_code == 422


def test_pricing_quotes(client, make_flight):
    outbound = make_flight(code="GA-1", seats=[("4B", SeatClass.BUSINESS)])
    inbound = make_flight(code="GA-2")

    seat_price = client.get(f"{API}/pricing/flights/{outbound.id}/seat-price", params={"seat_class": "BUSINESS"})
    assert seat_price.json()["price"] == 1_500_000

    quote = client.get(f"{API}/pricing/round-trip", params={
        "departure_flight_id": outbound.id,
        "return_flight_id": inbound.id,
    })
    assert quote.json()["total_price"] == 1_800_000
    assert quote.json()["discount_amount"] == 200_000

    assert client.get(f"{API}/pricing/flights/999/seat-price").status_code == 404


def test_refund_request_flow(client, auth, db, flight, customer, admin):
    seat = seat_by_number(db, flight.id, "1D")
    auth["user"] = customer
    ticket_id = client.post(f"{API}/bookings", json=booking_payload(flight, [seat])).json()["ticket_ids"][0]

    preview = client.get(f"{API}/refunds/preview/{ticket_id}")
    assert preview.status_code == 200
    assert preview.json()["refund_percent"] == 100

    submitted = client.post(f"{API}/refunds/requests", json={
        "ticket_id": ticket_id, "type": "REFUND", "reason": "Trip cancelled"
    })
    assert submitted.status_code == 201
    request_id = submitted.json()["id"]

    assert client.post(f"{API}/refunds/requests/{request_id}/approve-refund", json={}).status_code == 403

    auth["user"] = admin
    approved = client.post(f"{API}/refunds/requests/{request_id}/approve-refund", json={"notes": "ok"})
    assert approved.status_code == 200
    assert approved.json()["status"] == "APPROVED"

    again = client.post(f"{API}/refunds/requests/{request_id}/reject", json={"reason": "late"})
    assert again.status_code == 409


def test_bearer_token_authentication(session_factory, db, flight, customer):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    seat = seat_by_number(db, flight.id, "1A")
    app.dependency_overrides[get_db] = override_get_db
    try:
        with TestClient(app) as test_client:
            anonymous = test_client.post(f"{API}/seats/{seat.id}/hold")
            assert anonymous.status_code == 401

            token = create_access_token({"user_id": customer.id, "email": customer.email})
            held = test_client.post(
                f"{API}/seats/{seat.id}/hold",
                headers={"Authorization": f"Bearer {token}"}
            )
            assert held.status_code == 200
            assert held.json()["seat_ids"] == [seat.id]
    finally:
        app.dependency_overrides.clear()
