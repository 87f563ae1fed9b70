"""Generation and parsing of the public identifiers of tickets and orders.

Ticket code:  ``TICKET-<base36 ms timestamp>-<6 random base36 chars>``
Order number: ``ORD-<yyyymmdd>-<sequence, zero-padded to 3 digits>``

Neither format is unique by construction; the ledgers enforce uniqueness
and the application layer regenerates on collision.
"""

from __future__ import annotations

import random
import secrets
from datetime import date, datetime, timezone

from storefront.domain.exceptions import ValidationError

BASE36_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
TICKET_PREFIX = "TICKET"
TICKET_RANDOM_LENGTH = 6
ORDER_PREFIX = "ORD"

_system_random = secrets.SystemRandom()


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("base36 encoding needs a non-negative integer")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_ticket_code(
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> str:
    moment = now or datetime.now(timezone.utc)
    millis = int(moment.timestamp() * 1000)
    chooser = rng or _system_random
    suffix = "".join(chooser.choice(BASE36_ALPHABET) for _ in range(TICKET_RANDOM_LENGTH))
    return f"{TICKET_PREFIX}-{to_base36(millis)}-{suffix}".upper()


def order_number_prefix(day: date) -> str:
    return f"{ORDER_PREFIX}-{day.strftime('%Y%m%d')}-"


def format_order_number(day: date, sequence: int) -> str:
    if sequence < 1:
        raise ValidationError("Order sequence starts at 1")
    return f"{order_number_prefix(day)}{sequence:03d}"


def parse_order_sequence(order_number: str) -> int:
    """Return the trailing sequence of an order number."""
    parts = order_number.split("-")
    if len(parts) != 3 or parts[0] != ORDER_PREFIX or not parts[2].isdigit():
        raise ValidationError(f"Malformed order number '{order_number}'")
    return int(parts[2])


def next_order_number(day: date, latest: str | None) -> str:
    """Increment the latest number sharing *day*'s prefix, or start at 001."""
    sequence = parse_order_sequence(latest) + 1 if latest else 1
    return format_order_number(day, sequence)
