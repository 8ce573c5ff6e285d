"""Inventory ledger: all-or-nothing reservation, restock and contention."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from marketplace.domain.errors import InsufficientStock, ProductInactive, ProductNotFound, ValidationError
from marketplace.services.inventory_ledger import InventoryLedger, StockLine


def _reserve(tx, lines):
    return tx.run_in_transaction(lambda db: InventoryLedger(db).reserve_stock(lines))


def _release(tx, lines):
    return tx.run_in_transaction(lambda db: InventoryLedger(db).release_stock(lines))


class TestReserveStock:
    def test_decrements_every_line(self, tx, make_product, stock):
        a = make_product(quantity=10)
        b = make_product(quantity=4)

        reservation = _reserve(tx, [(a, 3), StockLine(b, 4)])

        assert stock(a) == 7
        assert stock(b) == 0
        assert reservation.total_units == 7

    def test_duplicate_lines_are_merged(self, tx, make_product, stock):
        a = make_product(quantity=5)

        reservation = _reserve(tx, [(a, 2), (a, 3)])

        assert stock(a) == 0
        assert reservation.lines == (StockLine(a, 5),)

    def test_one_failing_line_reserves_nothing(self, tx, make_product, stock):
        a = make_product(quantity=10)
        b = make_product(quantity=1)

        with pytest.raises(InsufficientStock) as exc:
            _reserve(tx, [(a, 3), (b, 2)])

        assert exc.value.product_id == b
        assert exc.value.requested == 2
        assert exc.value.available == 1
        assert stock(a) == 10
        assert stock(b) == 1

    def test_savepoint_keeps_ledger_atomic_inside_larger_transaction(self, session_factory, make_product, stock):
        a = make_product(quantity=10)
        b = make_product(quantity=0)

        with session_factory() as db, db.begin():
            ledger = InventoryLedger(db)
            with pytest.raises(InsufficientStock):
                ledger.reserve_stock([(a, 3), (b, 1)])
            # transakcja zewnetrzna dalej zyje - commit nie moze przepuscic czesciowego dekrementu

        assert stock(a) == 10

    def test_inactive_product(self, tx, make_product, stock):
        a = make_product(quantity=10, is_active=False)

        with pytest.raises(ProductInactive):
            _reserve(tx, [(a, 1)])
        assert stock(a) == 10

    def test_missing_product(self, tx):
        with pytest.raises(ProductNotFound) as exc:
            _reserve(tx, [(999, 1)])
        assert exc.value.product_id == 999

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, True])
    def test_rejects_non_positive_or_non_integer_quantities(self, tx, make_product, quantity):
        a = make_product(quantity=10)
        with pytest.raises(ValidationError):
            _reserve(tx, [(a, quantity)])


class TestReleaseStock:
    def test_release_is_inverse_of_reserve(self, tx, make_product, stock):
        a = make_product(quantity=8)
        b = make_product(quantity=3)

        _reserve(tx, [(a, 5), (b, 3)])
        _release(tx, [(a, 5), (b, 3)])

        assert stock(a) == 8
        assert stock(b) == 3

    def test_release_restocks_inactive_products_too(self, tx, make_product, set_product, stock):
        a = make_product(quantity=4)
        _reserve(tx, [(a, 4)])
        set_product(a, is_active=False)

        _release(tx, [(a, 4)])

        assert stock(a) == 4

    def test_release_of_unknown_product_changes_nothing(self, tx, make_product, stock):
        a = make_product(quantity=1)

        with pytest.raises(ProductNotFound):
            _release(tx, [(a, 2), (999, 1)])
        assert stock(a) == 1


@pytest.mark.slow
class TestContention:
    def test_concurrent_3_and_4_against_stock_5(self, tx, make_product, stock):
        """Dokladnie jedna rezerwacja przechodzi, druga dostaje InsufficientStock."""
        a = make_product(quantity=5)
        barrier = threading.Barrier(2)

        def attempt(quantity):
            barrier.wait()
            try:
                _reserve(tx, [(a, quantity)])
                return quantity
            except InsufficientStock:
                return None

        with ThreadPoolExecutor(max_workers=2) as pool:
            results = list(pool.map(attempt, [3, 4]))

        succeeded = [r for r in results if r is not None]
        assert len(succeeded) == 1
        assert stock(a) == 5 - succeeded[0]
        assert stock(a) in (1, 2)

    def test_reserved_units_never_exceed_starting_stock(self, tx, make_product, stock):
        start = 17
        a = make_product(quantity=start)
        quantities = [1, 2, 3] * 8

        def attempt(quantity):
            try:
                _reserve(tx, [(a, quantity)])
                return quantity
            except InsufficientStock:
                return 0

        with ThreadPoolExecutor(max_workers=8) as pool:
            reserved = sum(pool.map(attempt, quantities))

        assert reserved <= start
        assert stock(a) == start - reserved
        assert stock(a) >= 0
