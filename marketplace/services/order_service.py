# marketplace/services/order_service.py
from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from marketplace.data.models import OrderModel
from marketplace.domain.errors import AuthorizationError, OrderNotFound
from marketplace.domain.money import ZERO, to_money
from marketplace.domain.status import SALES_STATUSES
from marketplace.repos.order_repo import OrderRepo
from marketplace.services.cart_service import CartAggregator
from marketplace.services.inventory_ledger import InventoryLedger
from marketplace.services.notification_service import NotificationService
from marketplace.services.order_factory import OrderFactory
from marketplace.services.order_state import OrderStateMachine, farmer_owns_line
from marketplace.services.transaction import TransactionCoordinator
from marketplace.utils.settings import CASH_ON_DELIVERY
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


def order_to_dict(order: OrderModel, farmer_id: str | None = None) -> Dict[str, Any]:
    """Zamowienie z liniami; dla farmera dodatkowo jego linie i jego suma."""
    data = {
        "id": order.id,
        "order_number": order.order_number,
        "customer_id": order.customer_id,
        "status": order.status,
        "payment_method": order.payment_method,
        "payment_status": order.payment_status,
        "delivery_address": order.delivery_address,
        "total_amount": to_money(order.total_amount),
        "cancellation_reason": order.cancellation_reason,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
        "delivery_date": order.delivery_date,
        "items": [
            {
                "product_id": i.product_id,
                "product_name": i.product.name,
                "farmer_id": i.product.farmer_id,
                "quantity": i.quantity,
                "unit_price": to_money(i.unit_price),
                "total_price": to_money(i.total_price),
            }
            for i in order.items
        ],
    }
    if farmer_id is not None:
        farmer_items = [i for i in data["items"] if i["farmer_id"] == farmer_id]
        data["farmer_total"] = to_money(sum((i["total_price"] for i in farmer_items), ZERO))
    return data


class OrderService:
    """
    Serwis odpowiedzialny za domene zamowien.
    Kazda komenda = jedna transakcja (TransactionCoordinator),
    powiadomienie idzie dopiero po commicie.
    """

    def __init__(self, tx: TransactionCoordinator, notification_service: NotificationService | None = None):
        self.tx = tx
        self.notification_service = notification_service or NotificationService()

    # =====================================================
    # COMMANDS
    # =====================================================
    def place_order(self, user_id: str, delivery_address: str, payment_method: str = CASH_ON_DELIVERY) -> Dict[str, Any]:
        def work(db: Session):
            ledger = InventoryLedger(db)
            snapshot = CartAggregator(db, ledger).snapshot(user_id)
            order = OrderFactory(db, ledger).place_order(user_id, snapshot, delivery_address, payment_method)
            return {
                "ok": True,
                "order_id": order.id,
                "order_number": order.order_number,
                "total_amount": to_money(order.total_amount),
            }

        result = self.tx.run_in_transaction(work)
        self.notification_service.order_placed(user_id, result["order_id"], result["order_number"])
        return result

    def update_order_status(self, order_id: int, requester_id: str, new_status: str) -> Dict[str, Any]:
        def work(db: Session):
            order = OrderStateMachine(db).update_status(order_id, requester_id, new_status)
            return order.customer_id, order.status, order.payment_status

        customer_id, status, payment_status = self.tx.run_in_transaction(work)
        self.notification_service.order_status_changed(customer_id, order_id, status)
        return {
            "ok": True,
            "message": f"Order status updated to {status} successfully!",
            "new_status": status,
            "payment_status": payment_status,
        }

    def cancel_order(self, order_id: int, requester_id: str, reason: str | None = None) -> Dict[str, Any]:
        def work(db: Session):
            order = OrderStateMachine(db).cancel_order(order_id, requester_id, reason)
            return order.customer_id, order.cancellation_reason

        customer_id, stored_reason = self.tx.run_in_transaction(work)
        self.notification_service.order_cancelled(customer_id, order_id, stored_reason)
        return {
            "ok": True,
            "message": "Order cancelled successfully. Product quantities have been restored.",
            "new_status": "Cancelled",
        }

    # =====================================================
    # QUERIES
    # =====================================================
    def get_order(self, order_id: int, requester_id: str) -> Dict[str, Any]:
        def work(db: Session):
            order = OrderRepo(db).get_order_with_items(order_id)
            if order is None:
                raise OrderNotFound(order_id)
            if order.customer_id == requester_id:
                return order_to_dict(order)
            if farmer_owns_line(order, requester_id):
                return order_to_dict(order, farmer_id=requester_id)
            raise AuthorizationError("You don't have access to this order.", {"order_id": order_id})

        return self.tx.run_in_transaction(work)

    def get_order_by_number(self, order_number: str, user_id: str) -> Dict[str, Any]:
        def work(db: Session):
            order = OrderRepo(db).get_by_order_number(order_number)
            # cudze zamowienie wyglada jak nieistniejace
            if order is None or order.customer_id != user_id:
                raise OrderNotFound(order_number)
            return order_to_dict(order)

        return self.tx.run_in_transaction(work)

    def list_customer_orders(self, user_id: str) -> List[Dict[str, Any]]:
        return self.tx.run_in_transaction(
            lambda db: [order_to_dict(o) for o in OrderRepo(db).list_for_customer(user_id)]
        )

    def list_farmer_orders(self, farmer_id: str) -> List[Dict[str, Any]]:
        return self.tx.run_in_transaction(
            lambda db: [order_to_dict(o, farmer_id=farmer_id) for o in OrderRepo(db).list_for_farmer(farmer_id)]
        )

    def farmer_sales_total(self, farmer_id: str, since: datetime | None = None, until: datetime | None = None) -> Dict[str, Any]:
        statuses = sorted(s.value for s in SALES_STATUSES)
        total = self.tx.run_in_transaction(
            lambda db: OrderRepo(db).farmer_sales_total(farmer_id, statuses, since, until)
        )
        return {"farmer_id": farmer_id, "total_sales": total, "statuses": statuses}
