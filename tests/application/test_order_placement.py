"""Checkout: cart -> order snapshot, reservation and cart clearing in one transaction."""

import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from marketplace.data.models import OrderModel
from marketplace.domain.errors import DuplicateOrderNumber, EmptyCartError, InsufficientStock, ValidationError
from marketplace.services.cart_service import CartAggregator
from marketplace.services.order_factory import OrderFactory


def _order_count(session_factory):
    with session_factory() as db:
        return db.execute(select(func.count(OrderModel.id))).scalar_one()


class TestPlaceOrder:
    def test_two_line_cart_totals_and_clears_cart(self, cart_service, order_service, make_product, stock):
        a = make_product(price="10.00", quantity=10)
        b = make_product(price="5.50", quantity=10, name="Cucumbers")
        cart_service.add_to_cart("alice", a, 2)
        cart_service.add_to_cart("alice", b, 1)

        result = order_service.place_order("alice", "1 Farm Road", "Cash on Delivery")

        assert result["ok"] is True
        assert result["total_amount"] == Decimal("25.50")
        assert result["order_number"].startswith("ORD")
        assert cart_service.get_cart("alice")["items"] == []
        assert stock(a) == 8
        assert stock(b) == 9

    def test_order_is_a_snapshot_with_consistent_totals(self, order_service, place, make_product, set_product):
        a = make_product(price="0.45", quantity=100)
        b = make_product(price="3.20", quantity=10)
        placed = place("alice", [(a, 7), (b, 3)])

        set_product(a, price=Decimal("9.99"))
        order = order_service.get_order(placed["order_id"], "alice")

        assert order["status"] == "Pending"
        assert order["payment_status"] == "Pending"
        for item in order["items"]:
            assert item["total_price"] == item["unit_price"] * item["quantity"]
        assert order["total_amount"] == sum(i["total_price"] for i in order["items"])
        assert order["items"][0]["unit_price"] == Decimal("0.45")

    def test_notification_sent_after_commit(self, order_service, place, make_product, notifier):
        a = make_product(quantity=5)
        placed = place("alice", [(a, 1)])

        assert notifier.calls == [("placed", "alice", placed["order_id"], placed["order_number"])]

    def test_empty_cart(self, order_service, notifier):
        with pytest.raises(EmptyCartError):
            order_service.place_order("alice", "1 Farm Road")
        assert notifier.calls == []

    @pytest.mark.parametrize("address", ["", "   ", None, "x" * 501])
    def test_invalid_delivery_address(self, cart_service, order_service, make_product, stock, address):
        a = make_product(quantity=5)
        cart_service.add_to_cart("alice", a, 1)

        with pytest.raises(ValidationError):
            order_service.place_order("alice", address)
        assert stock(a) == 5

    def test_insufficient_stock_changes_nothing(
        self, cart_service, order_service, make_product, set_product, stock, session_factory, notifier
    ):
        a = make_product(quantity=10)
        b = make_product(quantity=10)
        cart_service.add_to_cart("alice", a, 2)
        cart_service.add_to_cart("alice", b, 5)
        # ktos inny wykupil w miedzyczasie
        set_product(b, quantity_available=4)

        with pytest.raises(InsufficientStock) as exc:
            order_service.place_order("alice", "1 Farm Road")

        assert exc.value.product_id == b
        assert stock(a) == 10
        assert stock(b) == 4
        assert cart_service.get_cart("alice")["cart_item_count"] == 7
        assert _order_count(session_factory) == 0
        assert notifier.calls == []

    def test_failure_after_reservation_rolls_reservation_back(self, tx, cart_service, make_product, stock, session_factory):
        a = make_product(quantity=5)
        cart_service.add_to_cart("alice", a, 2)

        def boom(db):
            snapshot = CartAggregator(db).snapshot("alice")
            OrderFactory(db).place_order("alice", snapshot, "1 Farm Road", "Cash on Delivery")
            raise RuntimeError("crash before commit")

        with pytest.raises(RuntimeError):
            tx.run_in_transaction(boom)

        assert stock(a) == 5
        assert cart_service.get_cart("alice")["cart_item_count"] == 2
        assert _order_count(session_factory) == 0


class TestOrderNumberCollisions:
    def test_collision_is_retried_with_new_number(self, tx, place, cart_service, make_product, session_factory):
        a = make_product(quantity=10)
        first = place("alice", [(a, 1)])
        numbers = iter([first["order_number"], "ORD-FRESH-0001"])
        cart_service.add_to_cart("bob", a, 1)

        def work(db):
            snapshot = CartAggregator(db).snapshot("bob")
            order = OrderFactory(db, number_generator=lambda: next(numbers)).place_order(
                "bob", snapshot, "2 Farm Road", "Cash on Delivery"
            )
            return order.order_number

        assert tx.run_in_transaction(work) == "ORD-FRESH-0001"
        assert _order_count(session_factory) == 2

    def test_persistent_collision_is_a_conflict_and_rolls_back(self, tx, place, cart_service, make_product, stock):
        a = make_product(quantity=10)
        first = place("alice", [(a, 1)])
        cart_service.add_to_cart("bob", a, 2)

        def work(db):
            snapshot = CartAggregator(db).snapshot("bob")
            OrderFactory(db, number_generator=lambda: first["order_number"]).place_order(
                "bob", snapshot, "2 Farm Road", "Cash on Delivery"
            )

        with pytest.raises(DuplicateOrderNumber):
            tx.run_in_transaction(work)
        assert stock(a) == 9
        assert cart_service.get_cart("bob")["cart_item_count"] == 2


@pytest.mark.slow
class TestConcurrentCheckout:
    def test_stock_5_orders_for_3_and_4(self, cart_service, order_service, make_product, stock, session_factory):
        a = make_product(quantity=5)
        cart_service.add_to_cart("alice", a, 3)
        cart_service.add_to_cart("bob", a, 4)
        barrier = threading.Barrier(2)

        def checkout(user_id):
            barrier.wait()
            try:
                return order_service.place_order(user_id, "1 Farm Road")
            except InsufficientStock as e:
                return e

        with ThreadPoolExecutor(max_workers=2) as pool:
            results = list(pool.map(checkout, ["alice", "bob"]))

        ok = [r for r in results if isinstance(r, dict)]
        failed = [r for r in results if isinstance(r, InsufficientStock)]
        assert len(ok) == 1
        assert len(failed) == 1
        assert stock(a) in (1, 2)
        assert _order_count(session_factory) == 1

    def test_many_concurrent_checkouts_never_oversell(self, cart_service, order_service, make_product, stock, session_factory):
        start = 10
        a = make_product(quantity=start)
        users = [f"user-{i}" for i in range(15)]
        for i, user in enumerate(users):
            cart_service.add_to_cart(user, a, 1 + i % 2)

        def checkout(user_id):
            try:
                return order_service.place_order(user_id, "1 Farm Road")
            except InsufficientStock:
                return None

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = [r for r in pool.map(checkout, users) if r is not None]

        sold = start - stock(a)
        assert sum(r["total_amount"] for r in results) == Decimal("10.00") * sold
        # ktos odpadl, wiec zostalo mniej niz najwieksza linia
        assert 0 <= stock(a) <= 1
        assert len({r["order_number"] for r in results}) == len(results)
        assert _order_count(session_factory) == len(results)
