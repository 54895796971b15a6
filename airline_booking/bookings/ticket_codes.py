import secrets
import string
from typing import Callable, Set

from airline_booking.errors import TransientFailure
from airline_booking.models import BookingChannel

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 8

CHANNEL_PREFIXES = {
    BookingChannel.ONLINE: "TRX",
    BookingChannel.COUNTER: "CTR",
    BookingChannel.FLASH_SALE: "FS",
}

ROUND_TRIP_PREFIX = "RT"

def random_suffix(length: int = CODE_LENGTH) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))

def generate_code(prefix: str) -> str:
    """Prefix + "-" + 8 uppercase alphanumerics, e.g. FS-7K2M9QXZ"""
    return f"{prefix}-{random_suffix()}"

def generate_ticket_code(channel: BookingChannel) -> str:
    return generate_code(CHANNEL_PREFIXES[channel])

class UniqueCodeGenerator:
    """Generates codes that are not yet stored, retrying a bounded number of times on collision"""

    def __init__(self, code_exists: Callable[[str], bool], max_attempts: int = 5):
        self.code_exists = code_exists
        self.max_attempts = max_attempts
        self._issued: Set[str] = set()

    def next_code(self, prefix: str) -> str:
        for _ in range(self.max_attempts):
            code = generate_code(prefix)
            if code not in self._issued and not self.code_exists(code):
                self._issued.add(code)
                return code

        raise TransientFailure("Could not allocate a unique booking code, please try again")

    def next_ticket_code(self, channel: BookingChannel) -> str:
        return self.next_code(CHANNEL_PREFIXES[channel])
