"""Unit tests for ticket code and order number generation."""

import random
import re
from datetime import date, datetime, timezone

import pytest

from storefront.domain.exceptions import ValidationError
from storefront.domain.service.identifiers import (
    format_order_number,
    generate_ticket_code,
    next_order_number,
    order_number_prefix,
    parse_order_sequence,
    to_base36,
)

TICKET_CODE = re.compile(r"^TICKET-[0-9A-Z]+-[0-9A-Z]{6}$")


class TestTicketCode:

    def test_format(self):
        assert TICKET_CODE.match(generate_ticket_code())

    def test_timestamp_part_is_base36_millis(self):
        moment = datetime(2024, 1, 1, tzinfo=timezone.utc)
        code = generate_ticket_code(now=moment, rng=random.Random(1))
        assert code.split("-")[1] == to_base36(int(moment.timestamp() * 1000))

    def test_seeded_rng_is_deterministic(self):
        moment = datetime(2024, 1, 1, tzinfo=timezone.utc)
        a = generate_ticket_code(now=moment, rng=random.Random(7))
        b = generate_ticket_code(now=moment, rng=random.Random(7))
        assert a == b

    def test_base36(self):
        assert to_base36(0) == "0"
        assert to_base36(35) == "Z"
        assert to_base36(36) == "10"


class TestOrderNumber:

    def test_prefix(self):
        assert order_number_prefix(date(2024, 3, 9)) == "ORD-20240309-"

    def test_first_of_the_day(self):
        assert next_order_number(date(2024, 3, 9), None) == "ORD-20240309-001"

    def test_increments_latest(self):
        assert next_order_number(date(2024, 3, 9), "ORD-20240309-041") == "ORD-20240309-042"

    def test_grows_past_three_digits(self):
        assert format_order_number(date(2024, 3, 9), 1000) == "ORD-20240309-1000"

    def test_parse(self):
        assert parse_order_sequence("ORD-20240309-007") == 7

    @pytest.mark.parametrize("bad", ["ORD-20240309", "XYZ-20240309-001", "ORD-20240309-abc"])
    def test_parse_rejects_malformed(self, bad):
        with pytest.raises(ValidationError, match="Malformed"):
            parse_order_sequence(bad)
