# marketplace/services/order_factory.py
import uuid
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.data.models import OrderItemModel, OrderModel
from marketplace.domain.errors import DuplicateOrderNumber, EmptyCartError, ValidationError
from marketplace.domain.money import ZERO, line_total, to_money
from marketplace.domain.status import OrderStatus, PaymentStatus
from marketplace.repos.order_repo import OrderRepo
from marketplace.services.cart_service import CartAggregator, CartSnapshot
from marketplace.services.inventory_ledger import InventoryLedger
from marketplace.utils.settings import ORDER_NUMBER_PREFIX
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

MAX_ADDRESS_LENGTH = 500
MAX_PAYMENT_METHOD_LENGTH = 50
ORDER_NUMBER_ATTEMPTS = 3


def generate_order_number(now: datetime | None = None) -> str:
    """
    ORD + data + 64 bity z uuid4. Unikalnosc nie zalezy od zegara,
    dodatkowo pilnuje jej unique index na orders.order_number.
    """
    now = now or datetime.now(timezone.utc)
    return f"{ORDER_NUMBER_PREFIX}{now:%Y%m%d}-{uuid.uuid4().hex[:16].upper()}"


def _clean_address(delivery_address) -> str:
    address = delivery_address.strip() if isinstance(delivery_address, str) else ""
    if not address:
        raise ValidationError("Delivery address is required.")
    if len(address) > MAX_ADDRESS_LENGTH:
        raise ValidationError(f"Delivery address cannot exceed {MAX_ADDRESS_LENGTH} characters.")
    return address


def _clean_payment_method(payment_method) -> str:
    method = payment_method.strip() if isinstance(payment_method, str) else ""
    if not method:
        raise ValidationError("Payment method is required.")
    if len(method) > MAX_PAYMENT_METHOD_LENGTH:
        raise ValidationError("Payment method is too long.")
    return method


class OrderFactory:
    """
    Koszyk -> zamowienie (snapshot cen i ilosci).

    1. pusty koszyk -> EmptyCartError
    2. rezerwacja stanow (wszystko albo nic)
    3. linie + total, status Pending / platnosc Pending
    4. unikalny numer zamowienia
    5. usuniecie zuzytych linii koszyka
    Commit robi TransactionCoordinator - blad po rezerwacji cofa tez rezerwacje.
    """

    def __init__(self, db: Session, ledger: InventoryLedger | None = None, number_generator=generate_order_number):
        self.db = db
        self.repo = OrderRepo(db)
        self.ledger = ledger or InventoryLedger(db)
        self.cart = CartAggregator(db, self.ledger)
        self.number_generator = number_generator

    def place_order(
        self,
        user_id: str,
        cart_snapshot: CartSnapshot,
        delivery_address: str,
        payment_method: str,
    ) -> OrderModel:
        address = _clean_address(delivery_address)
        method = _clean_payment_method(payment_method)

        if cart_snapshot.is_empty:
            raise EmptyCartError()

        self.ledger.reserve_stock((line.product_id, line.quantity) for line in cart_snapshot.lines)

        order = self._persist_with_unique_number(user_id, cart_snapshot, address, method)

        cleared = self.cart.clear_lines(cart_snapshot.cart_id, [line.product_id for line in cart_snapshot.lines])

        logger.info(
            "Order created from cart",
            order_number=order.order_number,
            customer_id=user_id,
            total_amount=str(order.total_amount),
            cart_lines_cleared=cleared,
        )
        return order

    def _build_order(self, order_number: str, user_id: str, snapshot: CartSnapshot, address: str, method: str) -> OrderModel:
        items = [
            OrderItemModel(
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price=to_money(line.unit_price),
                total_price=line_total(line.quantity, line.unit_price),
            )
            for line in snapshot.lines
        ]
        return OrderModel(
            order_number=order_number,
            customer_id=user_id,
            total_amount=to_money(sum((i.total_price for i in items), ZERO)),
            status=OrderStatus.PENDING.value,
            payment_method=method,
            payment_status=PaymentStatus.PENDING.value,
            delivery_address=address,
            created_at=datetime.now(timezone.utc),
            items=items,
        )

    def _persist_with_unique_number(self, user_id, snapshot, address, method) -> OrderModel:
        order_number = None
        for attempt in range(1, ORDER_NUMBER_ATTEMPTS + 1):
            order_number = self.number_generator()
            # nowe obiekty przy kazdej probie - po rollbacku savepointu stare sa odpiete od sesji
            order = self._build_order(order_number, user_id, snapshot, address, method)
            try:
                with self.db.begin_nested():
                    self.repo.add_order(order)
                return order
            except IntegrityError:
                if not self.repo.order_number_exists(order_number):
                    raise
                logger.warning("Order number collision", order_number=order_number, attempt=attempt)
        raise DuplicateOrderNumber(order_number)
