"""HTML email bodies for booking and refund notifications."""

import html
from datetime import datetime
from typing import Iterable, List

from airline_booking.models import Flight, RefundRequest, Ticket
from airline_booking.notifications.schemas import EmailMessage

BRAND = "Airline Booking"


def format_currency(amount: int) -> str:
    return f"IDR {amount:,.0f}".replace(",", ".")


def _format_date(value: datetime) -> str:
    return value.strftime("%d %b %Y %H:%M")


def _layout(title: str, greeting: str, intro: str, rows: List[tuple]) -> str:
    details = "".join(
        f'<tr><td style="color:#666666">{html.escape(label)}</td>'
        f'<td style="font-weight:bold">{html.escape(str(value))}</td></tr>'
        for label, value in rows
    )
    return (
        "<!DOCTYPE html><html><body style=\"font-family:Helvetica,Arial,sans-serif\">"
        f"<h1>{html.escape(title)}</h1>"
        f"<p>Hi {html.escape(greeting)},</p>"
        f"<p>{html.escape(intro)}</p>"
        f"<table>{details}</table>"
        f"<p style=\"color:#888888;font-size:12px\">{BRAND}</p>"
        "</body></html>"
    )


def _recipient(ticket: Ticket) -> str:
    if ticket.customer is not None:
        return ticket.customer.email
    return ticket.counter_customer_email


def _greeting(ticket: Ticket) -> str:
    if ticket.customer is not None:
        return ticket.customer.name
    return ticket.counter_customer_name or "Customer"


def _flight_rows(flight: Flight) -> List[tuple]:
    return [
        ("Flight", flight.code),
        ("Route", f"{flight.departure_city} -> {flight.destination_city}"),
        ("Date", _format_date(flight.departure_date)),
    ]


def booking_confirmation(tickets: Iterable[Ticket]) -> List[EmailMessage]:
    """One confirmation email per recipient listing all of their new tickets"""
    by_recipient = {}
    for ticket in tickets:
        recipient = _recipient(ticket)
        if recipient:
            by_recipient.setdefault(recipient, []).append(ticket)

    messages = []
    for recipient, recipient_tickets in by_recipient.items():
        rows = []
        for ticket in recipient_tickets:
            rows.extend(_flight_rows(ticket.flight))
            rows.append(("Seat", ticket.seat.seat_number))
            rows.append(("Ticket Code", ticket.code))
            rows.append(("Price", format_currency(ticket.price)))

        codes = ", ".join(t.code for t in recipient_tickets)
        messages.append(EmailMessage(
            to=recipient,
            subject=f"Booking Confirmed - {codes}",
            html=_layout(
                "Booking Confirmed!",
                _greeting(recipient_tickets[0]),
                "Great news! Your flight booking has been successfully confirmed.",
                rows
            )
        ))

    return messages


def refund_approved(ticket: Ticket, request: RefundRequest) -> List[EmailMessage]:
    recipient = _recipient(ticket)
    if not recipient:
        return []

    rows = _flight_rows(ticket.flight) + [
        ("Ticket Code", ticket.code),
        ("Original Amount", format_currency(request.original_amount)),
        ("Refund", f"{request.refund_percent}%"),
        ("Refund Amount", format_currency(request.refund_amount)),
    ]
    if request.admin_notes:
        rows.append(("Notes", request.admin_notes))

    return [EmailMessage(
        to=recipient,
        subject=f"Refund Approved - {ticket.code}",
        html=_layout(
            "Refund Approved",
            _greeting(ticket),
            "Your refund request has been approved and your seat has been released.",
            rows
        )
    )]


def reschedule_approved(ticket: Ticket, request: RefundRequest) -> List[EmailMessage]:
    recipient = _recipient(ticket)
    if not recipient:
        return []

    rows = _flight_rows(ticket.flight) + [
        ("Seat", ticket.seat.seat_number),
        ("Ticket Code", ticket.code),
    ]
    if request.admin_notes:
        rows.append(("Notes", request.admin_notes))

    return [EmailMessage(
        to=recipient,
        subject=f"Reschedule Approved - {ticket.code}",
        html=_layout(
            "Reschedule Approved",
            _greeting(ticket),
            "Your ticket has been moved to a new flight.",
            rows
        )
    )]


def request_rejected(ticket: Ticket, request: RefundRequest) -> List[EmailMessage]:
    recipient = _recipient(ticket)
    if not recipient:
        return []

    request_type = request.type.value.lower()
    return [EmailMessage(
        to=recipient,
        subject=f"{request_type.capitalize()} Request Rejected - {ticket.code}",
        html=_layout(
            f"{request_type.capitalize()} Request Rejected",
            _greeting(ticket),
            f"Unfortunately your {request_type} request could not be approved.",
            [("Ticket Code", ticket.code), ("Reason", request.admin_notes)]
        )
    )]
