import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from airline_booking.auth.schemas import CurrentUser
from airline_booking.database import Base
from airline_booking.models import (
    FlashSale, Flight, FlightSeat, FlightStatus, SeatClass, Ticket, TicketStatus, User, UserRole
)
from airline_booking.notifications import Notifier

NOW = datetime.now().replace(microsecond=0)


class RecordingNotifier(Notifier):
    """Collects notifications instead of sending them"""

    def __init__(self, fail: bool = False):
        self.messages = []
        self.fail = fail

    def notify(self, message):
        if self.fail:
            raise RuntimeError("mail server down")
        self.messages.append(message)


@pytest.fixture
def engine(tmp_path):
    # File-backed so that separate sessions use separate connections
    engine = create_engine(
        f"sqlite:///{tmp_path / 'booking.db'}",
        connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(role=UserRole.CUSTOMER, name=None):
        counter["n"] += 1
        user = User(
            name=name or f"User {counter['n']}",
            email=f"user{counter['n']}@example.com",
            role=role
        )
        db.add(user)
        db.commit()
        return CurrentUser.model_validate(user)

    return _make_user


@pytest.fixture
def customer(make_user):
    return make_user(name="Alice")


@pytest.fixture
def other_customer(make_user):
    return make_user(name="Bob")


@pytest.fixture
def admin(make_user):
    return make_user(role=UserRole.ADMIN, name="Admin")


@pytest.fixture
def make_flight(db):
    def _make_flight(
        code="GA-101",
        seats=("1A", "1B", "1C", "1D"),
        price=1_000_000,
        departure_date=None,
        status=FlightStatus.SCHEDULED,
        **prices
    ):
        departure_date = departure_date or NOW + timedelta(days=3)
        flight = Flight(
            code=code,
            departure_city="Jakarta",
            destination_city="Denpasar",
            departure_date=departure_date,
            arrival_date=departure_date + timedelta(hours=2),
            price=price,
            status=status,
            **prices
        )
        for seat in seats:
            seat_number, seat_class = seat if isinstance(seat, tuple) else (seat, SeatClass.ECONOMY)
            flight.seats.append(FlightSeat(seat_number=seat_number, seat_class=seat_class, is_booked=False))

        db.add(flight)
        db.commit()
        return flight

    return _make_flight


@pytest.fixture
def flight(make_flight):
    return make_flight()


@pytest.fixture
def make_flash_sale(db):
    def _make_flash_sale(flight, max_quota=10, sold_count=0, discount_percent=30, **kwargs):
        flash_sale = FlashSale(
            flight_id=flight.id,
            title=kwargs.pop("title", "Weekend Flash Sale"),
            discount_percent=discount_percent,
            start_date=kwargs.pop("start_date", NOW - timedelta(days=1)),
            end_date=kwargs.pop("end_date", NOW + timedelta(days=1)),
            max_quota=max_quota,
            sold_count=sold_count,
            is_active=kwargs.pop("is_active", True)
        )
        db.add(flash_sale)
        db.commit()
        return flash_sale

    return _make_flash_sale


def assert_inventory_consistent(db):
    """A seat is booked exactly when it has one live ticket"""
    for seat in db.query(FlightSeat).populate_existing().all():
        live = (
            db.query(Ticket)
            .filter(Ticket.seat_id == seat.id, Ticket.status != TicketStatus.FAILED)
            .count()
        )
        assert live == (1 if seat.is_booked else 0), seat.seat_number


def seat_by_number(db, flight_id, seat_number) -> FlightSeat:
    return (
        db.query(FlightSeat)
        .filter(FlightSeat.flight_id == flight_id, FlightSeat.seat_number == seat_number)
        .populate_existing()
        .one()
    )
