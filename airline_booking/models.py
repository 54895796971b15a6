from enum import Enum

from sqlalchemy import (
    BigInteger, Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index,
    Integer, String, Text, UniqueConstraint, text
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from airline_booking.database import Base

# SQLite only autoincrements INTEGER PRIMARY KEY
Identifier = BigInteger().with_variant(Integer, "sqlite")


def enum_column(enum_cls):
    return SQLEnum(enum_cls, native_enum=False, length=20)


# ================================
# Enumerations
# ================================
class UserRole(str, Enum):
    CUSTOMER = "CUSTOMER"
    ADMIN = "ADMIN"

class FlightStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    DELAYED = "DELAYED"
    CANCELLED = "CANCELLED"

class SeatClass(str, Enum):
    ECONOMY = "ECONOMY"
    BUSINESS = "BUSINESS"
    FIRST = "FIRST"

class TicketStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"

class BookingChannel(str, Enum):
    ONLINE = "ONLINE"
    COUNTER = "COUNTER"
    FLASH_SALE = "FLASH_SALE"

class PaymentMethod(str, Enum):
    ONLINE_GATEWAY = "ONLINE_GATEWAY"
    CASH = "CASH"
    BANK_TRANSFER = "BANK_TRANSFER"
    DEBIT_CARD = "DEBIT_CARD"
    CREDIT_CARD = "CREDIT_CARD"

class RefundType(str, Enum):
    REFUND = "REFUND"
    RESCHEDULE = "RESCHEDULE"

class RefundStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


# ================================
# Users
# ================================
class User(Base):
    __tablename__ = "users"

    id = Column(Identifier, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    role = Column(enum_column(UserRole), nullable=False, default=UserRole.CUSTOMER)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    tickets = relationship("Ticket", back_populates="customer", foreign_keys="Ticket.customer_id")

# ================================
# Flights & Seats
# ================================
class Flight(Base):
    __tablename__ = "flights"

    id = Column(Identifier, primary_key=True, index=True)
    code = Column(String(20), nullable=False, index=True)
    departure_city = Column(String(100), nullable=False)
    destination_city = Column(String(100), nullable=False)
    departure_date = Column(DateTime, nullable=False, index=True)
    arrival_date = Column(DateTime, nullable=False)
    price = Column(BigInteger, nullable=False)
    price_economy = Column(BigInteger)
    price_business = Column(BigInteger)
    price_first = Column(BigInteger)
    status = Column(enum_column(FlightStatus), nullable=False, default=FlightStatus.SCHEDULED)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    seats = relationship("FlightSeat", back_populates="flight", order_by="FlightSeat.id")
    tickets = relationship("Ticket", back_populates="flight")
    flash_sales = relationship("FlashSale", back_populates="flight")

class FlightSeat(Base):
    __tablename__ = "flight_seats"
    __table_args__ = (
        UniqueConstraint("flight_id", "seat_number", name="uq_flight_seats_flight_seat_number"),
    )

    id = Column(Identifier, primary_key=True, index=True)
    flight_id = Column(Identifier, ForeignKey("flights.id", ondelete="CASCADE"), nullable=False, index=True)
    seat_number = Column(String(10), nullable=False)
    seat_class = Column(enum_column(SeatClass), nullable=False, default=SeatClass.ECONOMY)
    is_booked = Column(Boolean, nullable=False, default=False)
    hold_until = Column(DateTime)
    held_by_user_id = Column(Identifier, ForeignKey("users.id"))

    # Relationships
    flight = relationship("Flight", back_populates="seats")
    tickets = relationship("Ticket", back_populates="seat")

# ================================
# Passengers & Tickets
# ================================
class Passenger(Base):
    __tablename__ = "passengers"

    id = Column(Identifier, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    passport = Column(String(50))
    nationality = Column(String(100))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

class RoundTripBooking(Base):
    __tablename__ = "round_trip_bookings"

    id = Column(Identifier, primary_key=True, index=True)
    code = Column(String(30), unique=True, nullable=False)
    customer_id = Column(Identifier, ForeignKey("users.id"), nullable=False)
    departure_flight_id = Column(Identifier, ForeignKey("flights.id"), nullable=False)
    return_flight_id = Column(Identifier, ForeignKey("flights.id"), nullable=False)
    departure_price = Column(BigInteger, nullable=False)
    return_price = Column(BigInteger, nullable=False)
    subtotal = Column(BigInteger, nullable=False)
    discount_percent = Column(Integer, nullable=False, default=0)
    discount_amount = Column(BigInteger, nullable=False, default=0)
    total_price = Column(BigInteger, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    tickets = relationship("Ticket", back_populates="round_trip_booking")

class Ticket(Base):
    __tablename__ = "tickets"
    __table_args__ = (
        # At most one live ticket per seat
        Index(
            "uq_tickets_active_seat", "seat_id",
            unique=True,
            postgresql_where=text("status <> 'FAILED'"),
            sqlite_where=text("status <> 'FAILED'"),
        ),
    )

    id = Column(Identifier, primary_key=True, index=True)
    code = Column(String(20), unique=True, nullable=False, index=True)
    flight_id = Column(Identifier, ForeignKey("flights.id"), nullable=False, index=True)
    seat_id = Column(Identifier, ForeignKey("flight_seats.id"), nullable=False)
    customer_id = Column(Identifier, ForeignKey("users.id"))
    passenger_id = Column(Identifier, ForeignKey("passengers.id"))
    price = Column(BigInteger, nullable=False)
    status = Column(enum_column(TicketStatus), nullable=False, default=TicketStatus.PENDING)
    booking_channel = Column(enum_column(BookingChannel), nullable=False, default=BookingChannel.ONLINE)
    payment_method = Column(enum_column(PaymentMethod), nullable=False, default=PaymentMethod.ONLINE_GATEWAY)
    booked_by_id = Column(Identifier, ForeignKey("users.id"))
    counter_customer_name = Column(String(255))
    counter_customer_phone = Column(String(50))
    counter_customer_email = Column(String(255))
    flash_sale_id = Column(Identifier, ForeignKey("flash_sales.id"))
    round_trip_booking_id = Column(Identifier, ForeignKey("round_trip_bookings.id"))
    booking_date = Column(DateTime, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    flight = relationship("Flight", back_populates="tickets")
    seat = relationship("FlightSeat", back_populates="tickets")
    customer = relationship("User", back_populates="tickets", foreign_keys=[customer_id])
    booked_by = relationship("User", foreign_keys=[booked_by_id])
    passenger = relationship("Passenger")
    round_trip_booking = relationship("RoundTripBooking", back_populates="tickets")
    refund_requests = relationship("RefundRequest", back_populates="ticket")

# ================================
# Refunds & Reschedules
# ================================
class RefundRequest(Base):
    __tablename__ = "refund_requests"

    id = Column(Identifier, primary_key=True, index=True)
    ticket_id = Column(Identifier, ForeignKey("tickets.id"), nullable=False, index=True)
    type = Column(enum_column(RefundType), nullable=False)
    status = Column(enum_column(RefundStatus), nullable=False, default=RefundStatus.PENDING, index=True)
    reason = Column(Text)
    original_amount = Column(BigInteger)
    refund_percent = Column(Integer)
    refund_amount = Column(BigInteger)
    new_flight_id = Column(Identifier, ForeignKey("flights.id"))
    new_seat_id = Column(Identifier, ForeignKey("flight_seats.id"))
    admin_notes = Column(Text)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    processed_at = Column(DateTime)

    # Relationships
    ticket = relationship("Ticket", back_populates="refund_requests")

# ================================
# Promotions & Settings
# ================================
class FlashSale(Base):
    __tablename__ = "flash_sales"
    __table_args__ = (
        CheckConstraint("sold_count >= 0", name="ck_flash_sales_sold_count_positive"),
        CheckConstraint("sold_count <= max_quota", name="ck_flash_sales_quota"),
        CheckConstraint("discount_percent BETWEEN 0 AND 100", name="ck_flash_sales_discount_range"),
    )

    id = Column(Identifier, primary_key=True, index=True)
    flight_id = Column(Identifier, ForeignKey("flights.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    discount_percent = Column(Integer, nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    max_quota = Column(Integer, nullable=False)
    sold_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    flight = relationship("Flight", back_populates="flash_sales")

class AppSetting(Base):
    __tablename__ = "app_settings"

    id = Column(Identifier, primary_key=True, index=True)
    key = Column(String(100), unique=True, nullable=False)
    value = Column(String(255), nullable=False)
    description = Column(Text)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
