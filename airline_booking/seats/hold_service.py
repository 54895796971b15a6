import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from airline_booking.config import settings
from airline_booking.errors import NotFound, OperationResult, SeatUnavailable, ValidationError
from airline_booking.models import Flight, FlightSeat
from airline_booking.seats.schemas import HoldResult, SeatAvailability, SeatMap, SeatView
from airline_booking.services import TransactionalService

logger = logging.getLogger(__name__)

class SeatHoldService(TransactionalService):
    """
    Short-lived, advisory seat holds during interactive seat selection.

    A hold only improves the selection experience; it never proves
    availability. The booking transaction performs its own authoritative
    recheck. Holds expire lazily: a hold whose ``hold_until`` is not in the
    future is ignored by every check.
    """

    def __init__(self, db: Session, hold_minutes: Optional[int] = None):
        super().__init__(db)
        if hold_minutes is None:
            hold_minutes = settings.SEAT_HOLD_MINUTES
        self.default_ttl = timedelta(minutes=hold_minutes)

    @staticmethod
    def is_held_by_other(seat: FlightSeat, user_id: Optional[int], now: datetime) -> bool:
        """Advisory check used by seat-map rendering only"""
        return (
            not seat.is_booked
            and seat.hold_until is not None
            and seat.hold_until > now
            and seat.held_by_user_id != user_id
        )

    def acquire_hold(
        self,
        seat_id: int,
        user_id: int,
        ttl: Optional[timedelta] = None,
        now: Optional[datetime] = None
    ) -> OperationResult:
        """Hold one seat for a user, extending the hold if the user already owns it"""

        now = now or datetime.now()
        hold_until = now + (ttl if ttl is not None else self.default_ttl)

        def work(uow):
            seats = self._load_seats([seat_id])
            if not seats:
                raise NotFound(f"Seat {seat_id} not found")

            if self._claim([seat_id], user_id, now, hold_until) != 1:
                raise self._unavailable(seats, user_id, now)

            logger.info(f"Seat {seats[0].seat_number} held by user {user_id} until {hold_until}")
            return HoldResult(
                seat_ids=[seat_id],
                hold_until=hold_until,
                message=f"Seat {seats[0].seat_number} reserved until {hold_until:%H:%M}"
            )

        return self._execute("Seat hold", work)

    def hold_seats(
        self,
        flight_id: int,
        seat_ids: List[int],
        user_id: int,
        ttl: Optional[timedelta] = None,
        now: Optional[datetime] = None
    ) -> OperationResult:
        """Hold several seats of one flight; either every seat is held or none is"""

        now = now or datetime.now()
        ttl = ttl if ttl is not None else self.default_ttl
        hold_until = now + ttl

        def work(uow):
            if not seat_ids:
                raise ValidationError("At least one seat is required")
            if len(set(seat_ids)) != len(seat_ids):
                raise ValidationError("The same seat was selected more than once")

            seats = self._load_flight_seats(flight_id, seat_ids)

            if self._claim(seat_ids, user_id, now, hold_until) != len(seat_ids):
                raise self._unavailable(self._load_seats(seat_ids), user_id, now)

            minutes = int(ttl.total_seconds() // 60)
            logger.info(f"{len(seats)} seat(s) on flight {flight_id} held by user {user_id} until {hold_until}")
            return HoldResult(
                seat_ids=seat_ids,
                hold_until=hold_until,
                message=f"{len(seat_ids)} seat(s) reserved for {minutes} minutes"
            )

        return self._execute("Seat hold", work)

    def release_hold(self, seat_id: int, user_id: int) -> OperationResult:
        """Release a user's own hold; a no-op for seats held by others or booked"""
        return self.release_seats([seat_id], user_id)

    def release_seats(self, seat_ids: List[int], user_id: int) -> OperationResult:

        def work(uow):
            stmt = (
                update(FlightSeat)
                .where(
                    FlightSeat.id.in_(seat_ids),
                    FlightSeat.held_by_user_id == user_id,
                    FlightSeat.is_booked.is_(False),
                )
                .values(hold_until=None, held_by_user_id=None)
                .execution_options(synchronize_session=False)
            )
            released = self.db.execute(stmt).rowcount
            if released:
                logger.info(f"User {user_id} released {released} seat hold(s)")
            return None

        return self._execute("Seat release", work)

    def validate_hold(self, seat_ids: List[int], user_id: int, now: Optional[datetime] = None) -> OperationResult:
        """Confirm the user still holds every seat; advisory, booking never relies on it"""

        now = now or datetime.now()

        def work(uow):
            seats = self._load_seats(seat_ids)
            self._ensure_all_found(seat_ids, seats)

            for seat in seats:
                if seat.is_booked or seat.held_by_user_id != user_id:
                    raise SeatUnavailable(
                        f"Seat {seat.seat_number} is no longer reserved for you",
                        [seat.seat_number]
                    )
                if seat.hold_until is None or seat.hold_until <= now:
                    raise SeatUnavailable(
                        f"Your reservation for seat {seat.seat_number} has expired",
                        [seat.seat_number]
                    )

            return HoldResult(
                seat_ids=seat_ids,
                hold_until=min(seat.hold_until for seat in seats),
                message="Reservation is still valid"
            )

        return self._execute("Hold validation", work)

    def get_seat_map(self, flight_id: int, user_id: Optional[int] = None, now: Optional[datetime] = None) -> OperationResult:
        """Seat map of a flight as seen by one user"""

        now = now or datetime.now()

        def work(uow):
            flight = self.db.query(Flight).filter(Flight.id == flight_id).first()
            if not flight:
                raise NotFound(f"Flight {flight_id} not found")

            seats = (
                self.db.query(FlightSeat)
                .filter(FlightSeat.flight_id == flight_id)
                .order_by(FlightSeat.id)
                .populate_existing()
                .all()
            )

            views = [self._seat_view(seat, user_id, now) for seat in seats]
            return SeatMap(
                flight_id=flight_id,
                seats=views,
                available_count=len([v for v in views if v.availability == SeatAvailability.AVAILABLE])
            )

        return self._execute("Seat map", work)

    def _seat_view(self, seat: FlightSeat, user_id: Optional[int], now: datetime) -> SeatView:
        if seat.is_booked:
            availability = SeatAvailability.BOOKED
        elif self.is_held_by_other(seat, user_id, now):
            availability = SeatAvailability.HELD
        elif user_id is not None and seat.held_by_user_id == user_id and seat.hold_until and seat.hold_until > now:
            availability = SeatAvailability.HELD_BY_YOU
        else:
            availability = SeatAvailability.AVAILABLE

        return SeatView(
            seat_id=seat.id,
            seat_number=seat.seat_number,
            seat_class=seat.seat_class,
            availability=availability,
            hold_until=seat.hold_until if availability in (SeatAvailability.HELD, SeatAvailability.HELD_BY_YOU) else None
        )

    def _claim(self, seat_ids: List[int], user_id: int, now: datetime, hold_until: datetime) -> int:
        """Conditional write: only unbooked seats that are free, expired or already ours"""
        stmt = (
            update(FlightSeat)
            .where(
                FlightSeat.id.in_(seat_ids),
                FlightSeat.is_booked.is_(False),
                or_(
                    FlightSeat.hold_until.is_(None),
                    FlightSeat.hold_until <= now,
                    FlightSeat.held_by_user_id == user_id,
                ),
            )
            .values(hold_until=hold_until, held_by_user_id=user_id)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    def _load_seats(self, seat_ids: List[int]) -> List[FlightSeat]:
        return (
            self.db.query(FlightSeat)
            .filter(FlightSeat.id.in_(seat_ids))
            .order_by(FlightSeat.id)
            .populate_existing()
            .all()
        )

    def _load_flight_seats(self, flight_id: int, seat_ids: List[int]) -> List[FlightSeat]:
        seats = [seat for seat in self._load_seats(seat_ids) if seat.flight_id == flight_id]
        self._ensure_all_found(seat_ids, seats, flight_id)
        return seats

    @staticmethod
    def _ensure_all_found(seat_ids: List[int], seats: List[FlightSeat], flight_id: Optional[int] = None):
        missing = sorted(set(seat_ids) - {seat.id for seat in seats})
        if missing:
            where = f" on flight {flight_id}" if flight_id is not None else ""
            raise NotFound(f"Seat(s) {', '.join(str(m) for m in missing)} not found{where}")

    def _unavailable(self, seats: List[FlightSeat], user_id: int, now: datetime) -> SeatUnavailable:
        booked = [seat.seat_number for seat in seats if seat.is_booked]
        if booked:
            return SeatUnavailable(f"Seat {', '.join(booked)} is already booked", booked)

        held = [seat.seat_number for seat in seats if self.is_held_by_other(seat, user_id, now)]
        return SeatUnavailable(
            f"Seat {', '.join(held)} is currently being reserved by another customer",
            held
        )
