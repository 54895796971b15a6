import re

import pytest

from airline_booking.bookings.ticket_codes import (
    UniqueCodeGenerator, generate_ticket_code
)
from airline_booking.errors import TransientFailure
from airline_booking.models import BookingChannel


@pytest.mark.parametrize("channel, prefix", [
    (BookingChannel.ONLINE, "TRX"),
    (BookingChannel.COUNTER, "CTR"),
    (BookingChannel.FLASH_SALE, "FS"),
])
def test_ticket_code_format(channel, prefix):
    code = generate_ticket_code(channel)
    assert re.fullmatch(rf"{prefix}-[A-Z0-9]{{8}}", code)


def test_generator_retries_on_collision():
    taken = []

    def code_exists(code):
        # First candidate collides, second is free
        taken.append(code)
        return len(taken) == 1

    code = UniqueCodeGenerator(code_exists, max_attempts=3).next_ticket_code(BookingChannel.ONLINE)

    assert len(taken) == 2
    assert code == taken[1]


def test_generator_gives_up_after_max_attempts():
    generator = UniqueCodeGenerator(lambda code: True, max_attempts=5)

    with pytest.raises(TransientFailure):
        generator.next_ticket_code(BookingChannel.COUNTER)


def test_generator_never_repeats_within_a_batch():
    generator = UniqueCodeGenerator(lambda code: False)
    codes = {generator.next_code("RT") for _ in range(50)}
    assert len(codes) == 50
