#!/usr/bin/env python3

from datetime import datetime, timedelta

from airline_booking.database import Base, SessionLocal, engine
from airline_booking.models import (
    AppSetting, FlashSale, Flight, FlightSeat, Passenger, RefundRequest, RoundTripBooking,
    SeatClass, Ticket, User, UserRole
)
from airline_booking.pricing.settings_service import ROUND_TRIP_DISCOUNT_KEY

SEAT_LETTERS = ["A", "B", "C", "D"]

def seat_class_for_row(row: int) -> SeatClass:
    if row <= 3:
        return SeatClass.ECONOMY
    if row <= 5:
        return SeatClass.BUSINESS
    return SeatClass.FIRST

def build_seats(flight: Flight, rows: int = 6):
    """Rows 1-3 economy, 4-5 business, 6 first; four seats per row"""
    return [
        FlightSeat(
            flight=flight,
            seat_number=f"{row}{letter}",
            seat_class=seat_class_for_row(row),
            is_booked=False
        )
        for row in range(1, rows + 1)
        for letter in SEAT_LETTERS
    ]

def create_seed_data():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        print("Creating seed data for Airline Seat Inventory & Booking...")

        # Clear existing data (in reverse dependency order)
        print("Clearing existing data...")
        db.query(RefundRequest).delete()
        db.query(Ticket).delete()
        db.query(RoundTripBooking).delete()
        db.query(Passenger).delete()
        db.query(FlashSale).delete()
        db.query(FlightSeat).delete()
        db.query(Flight).delete()
        db.query(AppSetting).delete()
        db.query(User).delete()

        # 1. Users
        print("Creating users...")
        users = [
            User(name="Administrator", email="admin@airline-booking.com", role=UserRole.ADMIN),
            User(name="Budi Santoso", email="budi@airline-booking.com", role=UserRole.CUSTOMER),
            User(name="Siti Rahma", email="siti@airline-booking.com", role=UserRole.CUSTOMER),
        ]
        db.add_all(users)
        db.flush()

        # 2. Flights
        print("Creating flights...")
        tomorrow = datetime.now().replace(hour=8, minute=0, second=0, microsecond=0) + timedelta(days=1)
        routes = [
            ("GA-401", "Jakarta", "Denpasar", 0, 1_250_000),
            ("GA-402", "Denpasar", "Jakarta", 4, 1_250_000),
            ("GA-150", "Jakarta", "Surabaya", 1, 850_000),
            ("GA-151", "Surabaya", "Jakarta", 3, 850_000),
            ("GA-880", "Jakarta", "Tokyo", 7, 6_500_000),
        ]
        flights = []
        for code, origin, destination, day_offset, price in routes:
            departure = tomorrow + timedelta(days=day_offset)
            flights.append(Flight(
                code=code,
                departure_city=origin,
                destination_city=destination,
                departure_date=departure,
                arrival_date=departure + timedelta(hours=2),
                price=price
            ))

        # International flight with explicit class prices
        flights[-1].arrival_date = flights[-1].departure_date + timedelta(hours=7)
        flights[-1].price_business = 14_000_000
        flights[-1].price_first = 25_000_000

        db.add_all(flights)
        db.flush()

        # 3. Seats
        print("Creating seats...")
        seats = []
        for flight in flights:
            seats.extend(build_seats(flight))
        db.add_all(seats)

        # 4. Flash sale
        print("Creating flash sale...")
        flash_sale = FlashSale(
            flight_id=flights[2].id,
            title="Surabaya Weekend Flash Sale",
            discount_percent=30,
            start_date=datetime.now() - timedelta(hours=1),
            end_date=datetime.now() + timedelta(days=2),
            max_quota=10,
            sold_count=0,
            is_active=True
        )
        db.add(flash_sale)

        # 5. Settings
        print("Creating settings...")
        db.add(AppSetting(
            key=ROUND_TRIP_DISCOUNT_KEY,
            value="10",
            description="Discount percent applied to round-trip bookings"
        ))

        db.commit()
        print("Successfully created seed data!")
        print("Created:")
        print(f"  - {len(users)} users")
        print(f"  - {len(flights)} flights")
        print(f"  - {len(seats)} seats")
        print("  - 1 flash sale")
        print("  - 1 app setting")

    except Exception as e:
        print(f"Error creating seed data: {e}")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == "__main__":
    create_seed_data()
