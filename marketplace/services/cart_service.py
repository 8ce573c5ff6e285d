# marketplace/services/cart_service.py
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.data.models import CartItemModel, CartModel
from marketplace.domain.errors import CartNotFound, NotFoundError, ValidationError
from marketplace.domain.money import ZERO, line_total, to_money
from marketplace.repos.cart_repo import CartRepo
from marketplace.services.inventory_ledger import InventoryLedger
from marketplace.services.transaction import TransactionCoordinator
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CartLine:
    product_id: int
    product_name: str
    unit: str
    quantity: int
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return line_total(self.quantity, self.unit_price)


@dataclass(frozen=True)
class CartSnapshot:
    """Widok koszyka tylko do odczytu - z niego powstaje zamowienie."""

    user_id: str
    cart_id: int | None
    lines: Tuple[CartLine, ...]

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def total(self) -> Decimal:
        return to_money(sum((line.line_total for line in self.lines), ZERO))

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cart_id": self.cart_id,
            "user_id": self.user_id,
            "items": [
                {
                    "product_id": line.product_id,
                    "product_name": line.product_name,
                    "unit": line.unit,
                    "quantity": line.quantity,
                    "unit_price": line.unit_price,
                    "line_total": line.line_total,
                }
                for line in self.lines
            ],
            "cart_total": self.total,
            "cart_item_count": self.item_count,
        }


def _validate_quantity(quantity, allow_zero: bool) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("Quantity must be a whole number.")
    if quantity < 0:
        raise ValidationError("Quantity cannot be negative.")
    if quantity == 0 and not allow_zero:
        raise ValidationError("Quantity must be at least 1.")


class CartAggregator:
    """
    Linie koszyka w ramach jednej sesji/transakcji.
    Jedna linia na (koszyk, produkt), ilosc 0 = linia usunieta.
    """

    def __init__(self, db: Session, ledger: InventoryLedger | None = None):
        self.db = db
        self.repo = CartRepo(db)
        self.ledger = ledger or InventoryLedger(db)

    def add_item(self, user_id: str, product_id: int, quantity: int) -> CartItemModel:
        _validate_quantity(quantity, allow_zero=False)

        cart = self.repo.get_or_create_cart(user_id)
        existing_item = self.repo.get_cart_item(cart.id, product_id)

        if existing_item:
            item = self._increase_line(existing_item, quantity)
        else:
            product = self.ledger.check_available(product_id, quantity)
            logger.info("Adding product to cart", cart_id=cart.id, product_id=product_id, quantity=quantity)
            # unique(cart_id, product_id) - rownolegle dodanie tej samej linii konczy sie IntegrityError w savepoincie
            try:
                with self.db.begin_nested():
                    item = self.repo.add_cart_item(
                        CartItemModel(
                            cart_id=cart.id,
                            product_id=product_id,
                            quantity=quantity,
                            unit_price=to_money(product.price),
                        )
                    )
            except IntegrityError:
                existing_item = self.repo.get_cart_item(cart.id, product_id)
                if existing_item is None:
                    raise
                item = self._increase_line(existing_item, quantity)

        self.repo.touch(cart)
        return item

    def _increase_line(self, item: CartItemModel, quantity: int) -> CartItemModel:
        new_quantity = item.quantity + quantity
        # stan sprawdzany dla calej linii, nie tylko dokladanej ilosci
        product = self.ledger.check_available(item.product_id, new_quantity)
        logger.info(
            "Product already in cart, increasing quantity",
            cart_id=item.cart_id,
            product_id=item.product_id,
            old_quantity=item.quantity,
            new_quantity=new_quantity,
        )
        item.quantity = new_quantity
        item.unit_price = to_money(product.price)
        item.updated_at = datetime.now(timezone.utc)
        return self.repo.add_cart_item(item)

    def set_item_quantity(self, cart_id: int, product_id: int, quantity: int) -> None:
        _validate_quantity(quantity, allow_zero=True)

        cart = self._get_cart(cart_id)

        if quantity == 0:
            removed = self.repo.delete_cart_item(cart_id, product_id)
            if removed:
                logger.info("Cart line removed (quantity 0)", cart_id=cart_id, product_id=product_id)
                self.repo.touch(cart)
            return

        item = self.repo.get_cart_item(cart_id, product_id)
        if item is None:
            raise NotFoundError("Item is not in the cart.", {"product_id": product_id})

        product = self.ledger.check_available(product_id, quantity)
        item.quantity = quantity
        item.unit_price = to_money(product.price)
        item.updated_at = datetime.now(timezone.utc)
        self.repo.add_cart_item(item)
        self.repo.touch(cart)

    def remove_item(self, cart_id: int, product_id: int) -> bool:
        cart = self._get_cart(cart_id)
        removed = self.repo.delete_cart_item(cart_id, product_id)
        if removed:
            self.repo.touch(cart)
        return bool(removed)

    def clear_lines(self, cart_id: int, product_ids) -> int:
        cart = self._get_cart(cart_id)
        removed = self.repo.delete_cart_items(cart_id, product_ids)
        self.repo.touch(cart)
        return removed

    def snapshot(self, user_id: str) -> CartSnapshot:
        cart = self.repo.get_cart_by_user(user_id)
        if cart is None:
            return CartSnapshot(user_id=user_id, cart_id=None, lines=())

        items = self.repo.get_cart_items_with_products(cart.id)
        return CartSnapshot(
            user_id=user_id,
            cart_id=cart.id,
            lines=tuple(
                CartLine(
                    product_id=i.product_id,
                    product_name=i.product.name,
                    unit=i.product.unit,
                    quantity=i.quantity,
                    unit_price=to_money(i.unit_price),
                )
                for i in items
            ),
        )

    def _get_cart(self, cart_id: int) -> CartModel:
        cart = self.repo.get_cart(cart_id)
        if cart is None:
            raise NotFoundError("Cart not found.", {"cart_id": cart_id})
        return cart


class CartService:
    """
    Operacje koszyka wystawione na zewnatrz; kazda to osobna transakcja.
    Zwracaja dict przeksztalcany w jsona.
    """

    def __init__(self, tx: TransactionCoordinator):
        self.tx = tx

    #query - odczyt
    def get_cart(self, user_id: str) -> Dict[str, Any]:
        return self.tx.run_in_transaction(lambda db: CartAggregator(db).snapshot(user_id).to_dict())

    #commands
    def add_to_cart(self, user_id: str, product_id: int, quantity: int = 1) -> Dict[str, Any]:
        def work(db: Session):
            aggregator = CartAggregator(db)
            aggregator.add_item(user_id, product_id, quantity)
            return aggregator.snapshot(user_id)

        snapshot = self.tx.run_in_transaction(work)
        logger.info("Added to cart", user_id=user_id, product_id=product_id, cart_item_count=snapshot.item_count)
        return {"ok": True, "message": "Added to cart.", "cart_item_count": snapshot.item_count}

    def update_cart_item(self, user_id: str, product_id: int, quantity: int) -> Dict[str, Any]:
        _validate_quantity(quantity, allow_zero=True)

        def work(db: Session):
            aggregator = CartAggregator(db)
            cart = aggregator.repo.get_cart_by_user(user_id)
            if cart is None:
                raise CartNotFound(user_id)
            aggregator.set_item_quantity(cart.id, product_id, quantity)
            return aggregator.snapshot(user_id)

        snapshot = self.tx.run_in_transaction(work)
        return {"ok": True, "cart_total": snapshot.total, "cart_item_count": snapshot.item_count}

    def remove_from_cart(self, user_id: str, product_id: int) -> Dict[str, Any]:
        def work(db: Session):
            aggregator = CartAggregator(db)
            cart = aggregator.repo.get_cart_by_user(user_id)
            if cart is None:
                raise CartNotFound(user_id)
            aggregator.remove_item(cart.id, product_id)
            return aggregator.snapshot(user_id)

        snapshot = self.tx.run_in_transaction(work)
        logger.info("Removed from cart", user_id=user_id, product_id=product_id)
        return {"ok": True, "cart_total": snapshot.total, "cart_item_count": snapshot.item_count}
