from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from marketplace.domain.money import line_total, to_money
from marketplace.services.order_factory import generate_order_number


class TestMoney:
    def test_to_money_rounds_half_up_to_cents(self):
        assert to_money("2.005") == Decimal("2.01")
        assert to_money(5.5) == Decimal("5.50")
        assert to_money(Decimal("10")) == Decimal("10.00")

    def test_line_total_is_quantity_times_unit_price(self):
        assert line_total(3, Decimal("0.45")) == Decimal("1.35")
        assert line_total(2, "10.00") == Decimal("20.00")


class TestOrderNumbers:
    def test_format(self):
        number = generate_order_number(datetime(2026, 10, 17, tzinfo=timezone.utc))
        assert number.startswith("ORD20261017-")
        suffix = number.split("-", 1)[1]
        assert len(suffix) == 16
        assert suffix == suffix.upper()

    @pytest.mark.slow
    def test_1000_concurrent_generations_are_distinct(self):
        with ThreadPoolExecutor(max_workers=32) as pool:
            numbers = list(pool.map(lambda _: generate_order_number(), range(1000)))
        assert len(set(numbers)) == 1000

    def test_same_timestamp_does_not_collide(self):
        fixed = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        numbers = {generate_order_number(fixed) for _ in range(1000)}
        assert len(numbers) == 1000
