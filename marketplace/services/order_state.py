# marketplace/services/order_state.py
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from marketplace.data.models import OrderModel
from marketplace.domain.errors import AuthorizationError, InvalidTransition, OrderNotFound
from marketplace.domain.status import (
    FARMER_SETTABLE,
    OrderStatus,
    PaymentStatus,
    can_advance,
    can_cancel,
    parse_status,
)
from marketplace.repos.order_repo import OrderRepo
from marketplace.services.inventory_ledger import InventoryLedger
from marketplace.utils.settings import CASH_ON_DELIVERY
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

MAX_REASON_LENGTH = 1000


def farmer_owns_line(order: OrderModel, farmer_id: str) -> bool:
    return any(item.product.farmer_id == farmer_id for item in order.items)


class OrderStateMachine:
    """
    Pending -> Processing -> Shipped -> Delivered (tylko do przodu),
    Pending/Processing -> Cancelled (z restockiem).

    Zmiany robi farmer, ktory ma w zamowieniu co najmniej jedna linie.
    payment_status zmienia tylko wejscie w Delivered przy platnosci przy odbiorze.
    """

    def __init__(self, db: Session, ledger: InventoryLedger | None = None):
        self.db = db
        self.repo = OrderRepo(db)
        self.ledger = ledger or InventoryLedger(db)

    def update_status(self, order_id: int, requester_id: str, new_status) -> OrderModel:
        order = self._load_for_farmer(order_id, requester_id)
        current = OrderStatus(order.status)
        target = parse_status(new_status)

        if target not in FARMER_SETTABLE:
            raise InvalidTransition(current.value, str(getattr(new_status, "value", new_status)), "Invalid status.")

        if not can_advance(current, target):
            raise InvalidTransition(current.value, target.value)

        now = datetime.now(timezone.utc)
        order.status = target.value
        order.updated_at = now

        if target == OrderStatus.DELIVERED:
            order.delivery_date = now
            if order.payment_method == CASH_ON_DELIVERY:
                order.payment_status = PaymentStatus.PAID.value

        self.db.flush()

        logger.info(
            "Order status updated",
            order_id=order.id,
            old_status=current.value,
            new_status=target.value,
            payment_status=order.payment_status,
            requester_id=requester_id,
        )
        return order

    def cancel_order(self, order_id: int, requester_id: str, reason: str | None = None) -> OrderModel:
        order = self._load_for_farmer(order_id, requester_id)
        current = OrderStatus(order.status)

        if not can_cancel(current):
            raise InvalidTransition(
                current.value,
                OrderStatus.CANCELLED.value,
                f"Cannot cancel order. Order is already {current.value}.",
            )

        # restock w tej samej transakcji co zmiana statusu
        self.ledger.release_stock((item.product_id, item.quantity) for item in order.items)

        now = datetime.now(timezone.utc)
        order.status = OrderStatus.CANCELLED.value
        order.cancellation_reason = (reason or "").strip()[:MAX_REASON_LENGTH] or None
        order.cancelled_at = now
        order.updated_at = now
        self.db.flush()

        logger.info(
            "Order cancelled, stock restored",
            order_id=order.id,
            previous_status=current.value,
            requester_id=requester_id,
        )
        return order

    def _load_for_farmer(self, order_id: int, requester_id: str) -> OrderModel:
        order = self.repo.get_order_with_items(order_id, for_update=True)
        if order is None:
            raise OrderNotFound(order_id)

        if not farmer_owns_line(order, requester_id):
            logger.warning("Order access denied", order_id=order_id, requester_id=requester_id)
            raise AuthorizationError("You don't have permission to change this order.", {"order_id": order_id})

        return order
