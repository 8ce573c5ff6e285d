"""Tests for order status rules - forward-only path and cancellation window."""

import pytest

from marketplace.domain.status import (
    CANCELLABLE,
    FARMER_SETTABLE,
    OrderStatus,
    can_advance,
    can_cancel,
    parse_status,
)


class TestForwardTransitions:
    @pytest.mark.parametrize(
        "current,target",
        [
            (OrderStatus.PENDING, OrderStatus.PROCESSING),
            (OrderStatus.PROCESSING, OrderStatus.SHIPPED),
            (OrderStatus.SHIPPED, OrderStatus.DELIVERED),
            (OrderStatus.PROCESSING, OrderStatus.DELIVERED),
            (OrderStatus.PENDING, OrderStatus.SHIPPED),
        ],
    )
    def test_forward_moves_are_allowed(self, current, target):
        assert can_advance(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            (OrderStatus.PROCESSING, OrderStatus.PENDING),
            (OrderStatus.DELIVERED, OrderStatus.SHIPPED),
            (OrderStatus.SHIPPED, OrderStatus.SHIPPED),
            (OrderStatus.CANCELLED, OrderStatus.PROCESSING),
            (OrderStatus.PENDING, OrderStatus.CANCELLED),
        ],
    )
    def test_backward_same_and_off_path_moves_are_rejected(self, current, target):
        assert not can_advance(current, target)


class TestCancellationWindow:
    def test_only_pending_and_processing_are_cancellable(self):
        assert CANCELLABLE == {OrderStatus.PENDING, OrderStatus.PROCESSING}

    @pytest.mark.parametrize("status", [OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED])
    def test_late_states_cannot_be_cancelled(self, status):
        assert not can_cancel(status)


def test_farmer_can_set_only_fulfilment_statuses():
    assert FARMER_SETTABLE == {OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED}


def test_parse_status_accepts_values_and_rejects_unknown():
    assert parse_status("Shipped") is OrderStatus.SHIPPED
    assert parse_status(OrderStatus.PENDING) is OrderStatus.PENDING
    assert parse_status("shipped") is None
    assert parse_status("Lost") is None
