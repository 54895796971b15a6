import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from sqlalchemy import update
from sqlalchemy.orm import Session

from airline_booking.auth.schemas import CurrentUser
from airline_booking.bookings.schemas import (
    BookingRequest, BookingResult, RoundTripBookingRequest
)
from airline_booking.bookings.ticket_codes import ROUND_TRIP_PREFIX, UniqueCodeGenerator
from airline_booking.config import settings
from airline_booking.errors import (
    NotFound, OperationResult, QuotaExceeded, SeatUnavailable, StateConflict,
    Unauthorized, ValidationError
)
from airline_booking.models import (
    BookingChannel, FlashSale, Flight, FlightSeat, FlightStatus, Passenger,
    RoundTripBooking, Ticket, TicketStatus
)
from airline_booking.notifications import Notifier, templates
from airline_booking.pricing.pricing_service import PricingCalculator
from airline_booking.pricing.settings_service import AppSettingsService
from airline_booking.services import TransactionalService

logger = logging.getLogger(__name__)

class BookingService(TransactionalService):
    """
    All-or-nothing conversion of a seat selection into committed tickets.

    Holds are never trusted here: targeted seats are re-read inside the
    booking transaction, every seat is claimed with a conditional UPDATE
    guarded by ``is_booked = false``, and the flash-sale counter is checked
    and incremented by one conditional UPDATE. Any failure rolls back the
    whole transaction, so no seat, ticket or quota is consumed partially.
    """

    def __init__(
        self,
        db: Session,
        notifier: Optional[Notifier] = None,
        pricing: Optional[PricingCalculator] = None
    ):
        super().__init__(db, notifier)
        self.pricing = pricing or PricingCalculator()
        self.settings_service = AppSettingsService(db)

    def create_booking(
        self,
        request: BookingRequest,
        current_user: Optional[CurrentUser],
        now: Optional[datetime] = None
    ) -> OperationResult:
        """Book one or more seats on a single flight"""

        now = now or datetime.now()

        def work(uow):
            self._authorize(request.channel, current_user)
            self._validate_selection(request.seat_ids, [p.seat_id for p in request.passengers])

            if request.channel == BookingChannel.COUNTER and not request.counter_customer:
                raise ValidationError("Counter bookings require customer details")
            if request.channel != BookingChannel.FLASH_SALE and request.flash_sale_id is not None:
                raise ValidationError("A flash sale can only be booked through the flash sale channel")

            flight = self._get_bookable_flight(request.flight_id, now)

            flash_sale = None
            if request.channel == BookingChannel.FLASH_SALE:
                flash_sale = self._get_active_flash_sale(request.flash_sale_id, flight.id, now)

            seats = self._recheck_seats(flight, request.seat_ids)

            prices = {seat.id: self._seat_price(flight, seat, flash_sale) for seat in seats}
            total_price = sum(prices.values())
            self._check_expected_total(request.expected_total, total_price)

            if flash_sale is not None:
                self._consume_quota(flash_sale, len(seats))

            passengers = {p.seat_id: p for p in request.passengers}
            codes = self._code_generator()
            tickets = [
                self._issue_ticket(
                    flight, seat, passengers[seat.id], prices[seat.id],
                    request, current_user, codes, now, flash_sale=flash_sale
                )
                for seat in seats
            ]

            self._mark_booked(seats)
            self.db.flush()

            logger.info(
                f"Booked {len(tickets)} seat(s) on flight {flight.code} via {request.channel.value}: "
                f"{', '.join(t.code for t in tickets)}"
            )
            self._notify_after_commit(uow, templates.booking_confirmation(tickets))

            return BookingResult(
                ticket_ids=[t.id for t in tickets],
                ticket_codes=[t.code for t in tickets],
                total_price=total_price
            )

        return self._execute("Booking", work)

    def create_round_trip_booking(
        self,
        request: RoundTripBookingRequest,
        current_user: Optional[CurrentUser],
        now: Optional[datetime] = None
    ) -> OperationResult:
        """
        Book departure and return legs in one transaction.

        Both legs are written inside the same unit of work; a failure on the
        return leg after the departure leg has been written rolls back both.
        """

        now = now or datetime.now()

        def work(uow):
            self._authorize(BookingChannel.ONLINE, current_user)

            if request.departure_flight_id == request.return_flight_id:
                raise ValidationError("Departure and return flights must differ")

            departure_seat_ids = [p.departure_seat_id for p in request.passengers]
            return_seat_ids = [p.return_seat_id for p in request.passengers]
            self._validate_selection(departure_seat_ids, departure_seat_ids)
            self._validate_selection(return_seat_ids, return_seat_ids)

            departure_flight = self._get_bookable_flight(request.departure_flight_id, now)
            return_flight = self._get_bookable_flight(request.return_flight_id, now)
            if return_flight.departure_date < departure_flight.departure_date:
                raise ValidationError("Return flight departs before the departure flight")

            departure_seats = self._load_flight_seats(departure_flight, departure_seat_ids)
            return_seats = self._load_flight_seats(return_flight, return_seat_ids)

            discount_percent = self.settings_service.get_round_trip_discount()
            departure_prices: Dict[int, int] = {}
            return_prices: Dict[int, int] = {}
            departure_total = return_total = subtotal = total_price = 0

            for passenger in request.passengers:
                quote = self.pricing.round_trip_price(
                    self.pricing.resolve_seat_price(departure_flight, departure_seats[passenger.departure_seat_id].seat_class),
                    self.pricing.resolve_seat_price(return_flight, return_seats[passenger.return_seat_id].seat_class),
                    discount_percent
                )
                departure_share, return_share = self.pricing.split_round_trip_total(quote)
                departure_prices[passenger.departure_seat_id] = departure_share
                return_prices[passenger.return_seat_id] = return_share

                departure_total += quote.departure_price
                return_total += quote.return_price
                subtotal += quote.subtotal
                total_price += quote.total_price

            self._check_expected_total(request.expected_total, total_price)

            bundle = RoundTripBooking(
                code=self._bundle_code(),
                customer_id=current_user.id,
                departure_flight_id=departure_flight.id,
                return_flight_id=return_flight.id,
                departure_price=departure_total,
                return_price=return_total,
                subtotal=subtotal,
                discount_percent=discount_percent,
                discount_amount=subtotal - total_price,
                total_price=total_price
            )
            self.db.add(bundle)

            codes = self._code_generator()
            tickets = self._book_leg(
                departure_flight,
                [(p.departure_seat_id, p) for p in request.passengers],
                departure_prices, request, current_user, codes, now, bundle
            )
            tickets += self._book_leg(
                return_flight,
                [(p.return_seat_id, p) for p in request.passengers],
                return_prices, request, current_user, codes, now, bundle
            )
            self.db.flush()

            logger.info(
                f"Round trip {bundle.code} booked for user {current_user.id}: "
                f"{departure_flight.code} / {return_flight.code}, {len(tickets)} ticket(s)"
            )
            self._notify_after_commit(uow, templates.booking_confirmation(tickets))

            return BookingResult(
                ticket_ids=[t.id for t in tickets],
                ticket_codes=[t.code for t in tickets],
                total_price=total_price,
                bundle_code=bundle.code
            )

        return self._execute("Round trip booking", work)

    def cancel_counter_booking(self, ticket_id: int, current_user: Optional[CurrentUser]) -> OperationResult:
        """Admin cancellation of a counter ticket: ticket FAILED and seat released together"""

        def work(uow):
            if current_user is None or not current_user.is_admin:
                raise Unauthorized("Admin access required")

            ticket = self.db.query(Ticket).filter(Ticket.id == ticket_id).populate_existing().first()
            if not ticket:
                raise NotFound(f"Ticket {ticket_id} not found")
            if ticket.booking_channel != BookingChannel.COUNTER:
                raise ValidationError("This is not a counter booking")

            stmt = (
                update(Ticket)
                .where(Ticket.id == ticket_id, Ticket.status != TicketStatus.FAILED)
                .values(status=TicketStatus.FAILED)
                .execution_options(synchronize_session=False)
            )
            if self.db.execute(stmt).rowcount != 1:
                raise StateConflict("Booking is already cancelled")

            self._release_seat(ticket.seat_id)
            logger.info(f"Counter ticket {ticket.code} cancelled by admin {current_user.id}")
            return None

        return self._execute("Counter booking cancellation", work)

    def _book_leg(
        self,
        flight: Flight,
        selection: Sequence[tuple],
        prices: Dict[int, int],
        request: RoundTripBookingRequest,
        current_user: CurrentUser,
        codes: UniqueCodeGenerator,
        now: datetime,
        bundle: RoundTripBooking
    ) -> List[Ticket]:
        """Recheck, ticket and claim the seats of one round-trip leg"""

        seats = self._recheck_seats(flight, [seat_id for seat_id, _ in selection])
        passengers = dict(selection)

        tickets = [
            self._issue_ticket(
                flight, seat, passengers[seat.id], prices[seat.id],
                request, current_user, codes, now, round_trip_booking=bundle
            )
            for seat in seats
        ]
        self._mark_booked(seats)
        return tickets

    @staticmethod
    def _authorize(channel: BookingChannel, current_user: Optional[CurrentUser]):
        if channel == BookingChannel.COUNTER:
            if current_user is None or not current_user.is_admin:
                raise Unauthorized("Admin access required for counter bookings")
        elif current_user is None:
            raise Unauthorized("Please login first")

    @staticmethod
    def _validate_selection(seat_ids: List[int], passenger_seat_ids: List[int]):
        if not seat_ids:
            raise ValidationError("At least one seat is required")
        if len(set(seat_ids)) != len(seat_ids):
            raise ValidationError("The same seat was selected more than once")
        if len(passenger_seat_ids) != len(seat_ids) or set(passenger_seat_ids) != set(seat_ids):
            raise ValidationError("Exactly one passenger is required for each selected seat")

    def _get_bookable_flight(self, flight_id: int, now: datetime) -> Flight:
        flight = self.db.query(Flight).filter(Flight.id == flight_id).first()
        if not flight:
            raise NotFound(f"Flight {flight_id} not found")
        if flight.status == FlightStatus.CANCELLED:
            raise ValidationError(f"Flight {flight.code} has been cancelled")
        if flight.departure_date < now:
            raise ValidationError(f"Flight {flight.code} has already departed")
        return flight

    def _get_active_flash_sale(self, flash_sale_id: Optional[int], flight_id: int, now: datetime) -> FlashSale:
        if flash_sale_id is None:
            raise ValidationError("Flash sale bookings require a flash sale reference")

        flash_sale = self.db.query(FlashSale).filter(FlashSale.id == flash_sale_id).first()
        if not flash_sale:
            raise NotFound(f"Flash sale {flash_sale_id} not found")
        if flash_sale.flight_id != flight_id:
            raise ValidationError("Flash sale does not apply to this flight")
        if not flash_sale.is_active:
            raise ValidationError("Flash sale is not active")
        if flash_sale.start_date > now:
            raise ValidationError("Flash sale has not started yet")
        if flash_sale.end_date < now:
            raise ValidationError("Flash sale has ended")
        return flash_sale

    def _load_flight_seats(self, flight: Flight, seat_ids: List[int]) -> Dict[int, FlightSeat]:
        seats = (
            self.db.query(FlightSeat)
            .filter(FlightSeat.id.in_(seat_ids))
            .populate_existing()
            .all()
        )
        by_id = {seat.id: seat for seat in seats if seat.flight_id == flight.id}

        missing = [str(seat_id) for seat_id in seat_ids if seat_id not in by_id]
        if missing:
            raise NotFound(f"Seat(s) {', '.join(missing)} not found on flight {flight.code}")
        return by_id

    def _recheck_seats(self, flight: Flight, seat_ids: List[int]) -> List[FlightSeat]:
        """Authoritative availability check against freshly read rows"""
        by_id = self._load_flight_seats(flight, seat_ids)
        seats = [by_id[seat_id] for seat_id in seat_ids]

        booked = [seat.seat_number for seat in seats if seat.is_booked]
        if booked:
            raise SeatUnavailable(f"Seat(s) {', '.join(booked)} already booked", booked)
        return seats

    def _seat_price(self, flight: Flight, seat: FlightSeat, flash_sale: Optional[FlashSale]) -> int:
        # Flash-sale fares are discounted from the flight base price for every seat class
        if flash_sale is not None:
            return self.pricing.flash_sale_price(int(flight.price), flash_sale.discount_percent)
        return self.pricing.resolve_seat_price(flight, seat.seat_class)

    @staticmethod
    def _check_expected_total(expected_total: Optional[int], total_price: int):
        if expected_total is not None and expected_total != total_price:
            raise ValidationError(
                f"Price has changed: expected {expected_total}, current total is {total_price}"
            )

    def _consume_quota(self, flash_sale: FlashSale, count: int):
        """Check and increment the sold counter in one conditional write"""
        stmt = (
            update(FlashSale)
            .where(
                FlashSale.id == flash_sale.id,
                FlashSale.sold_count + count <= FlashSale.max_quota,
            )
            .values(sold_count=FlashSale.sold_count + count)
            .execution_options(synchronize_session=False)
        )
        if self.db.execute(stmt).rowcount != 1:
            raise QuotaExceeded(f"Flash sale '{flash_sale.title}' quota is sold out")

    def _mark_booked(self, seats: List[FlightSeat]):
        conflicts = []
        for seat in seats:
            stmt = (
                update(FlightSeat)
                .where(FlightSeat.id == seat.id, FlightSeat.is_booked.is_(False))
                .values(is_booked=True, hold_until=None, held_by_user_id=None)
                .execution_options(synchronize_session=False)
            )
            if self.db.execute(stmt).rowcount != 1:
                conflicts.append(seat.seat_number)

        if conflicts:
            raise SeatUnavailable(
                f"Seat(s) {', '.join(conflicts)} were just booked by another customer", conflicts
            )

    def _release_seat(self, seat_id: int):
        stmt = (
            update(FlightSeat)
            .where(FlightSeat.id == seat_id)
            .values(is_booked=False, hold_until=None, held_by_user_id=None)
            .execution_options(synchronize_session=False)
        )
        self.db.execute(stmt)

    def _issue_ticket(
        self,
        flight: Flight,
        seat: FlightSeat,
        passenger_info,
        price: int,
        request,
        current_user: CurrentUser,
        codes: UniqueCodeGenerator,
        now: datetime,
        flash_sale: Optional[FlashSale] = None,
        round_trip_booking: Optional[RoundTripBooking] = None
    ) -> Ticket:
        channel = getattr(request, "channel", BookingChannel.ONLINE)

        passenger = Passenger(
            name=passenger_info.display_name,
            passport=passenger_info.passport,
            nationality=passenger_info.nationality
        )

        ticket = Ticket(
            code=codes.next_ticket_code(channel),
            flight=flight,
            seat=seat,
            passenger=passenger,
            price=price,
            status=TicketStatus.SUCCESS,
            booking_channel=channel,
            payment_method=request.payment_method,
            flash_sale_id=flash_sale.id if flash_sale else None,
            round_trip_booking=round_trip_booking,
            booking_date=now
        )

        if channel == BookingChannel.COUNTER:
            customer = request.counter_customer
            ticket.booked_by_id = current_user.id
            ticket.counter_customer_name = customer.name
            ticket.counter_customer_phone = customer.phone
            ticket.counter_customer_email = customer.email
        else:
            ticket.customer_id = current_user.id

        self.db.add(passenger)
        self.db.add(ticket)
        return ticket

    def _code_generator(self) -> UniqueCodeGenerator:
        return UniqueCodeGenerator(
            lambda code: self.db.query(Ticket.id).filter(Ticket.code == code).first() is not None,
            settings.TICKET_CODE_MAX_ATTEMPTS
        )

    def _bundle_code(self) -> str:
        generator = UniqueCodeGenerator(
            lambda code: self.db.query(RoundTripBooking.id).filter(RoundTripBooking.code == code).first() is not None,
            settings.TICKET_CODE_MAX_ATTEMPTS
        )
        return generator.next_code(ROUND_TRIP_PREFIX)
