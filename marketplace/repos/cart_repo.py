# marketplace/repos/cart_repo.py
from datetime import datetime, timezone
from typing import Iterable, List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from marketplace.data.models import CartItemModel, CartModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart(self, cart_id: int) -> CartModel | None:
        return self.db.get(CartModel, cart_id)

    def get_cart_by_user(self, user_id: str) -> CartModel | None:
        return self.db.execute(
            select(CartModel).where(CartModel.user_id == user_id)
        ).scalar_one_or_none()

    def get_or_create_cart(self, user_id: str) -> CartModel:
        cart = self.get_cart_by_user(user_id)
        if cart:
            return cart

        # unique(user_id) - rownolegle utworzenie koszyka konczy sie IntegrityError w savepoincie
        try:
            with self.db.begin_nested():
                cart = CartModel(user_id=user_id)
                self.db.add(cart)
        except IntegrityError:
            cart = self.get_cart_by_user(user_id)
        return cart

    def get_cart_item(self, cart_id: int, product_id: int) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.cart_id == cart_id,
                CartItemModel.product_id == product_id,
            )
        ).scalar_one_or_none()

    def get_cart_items_with_products(self, cart_id: int) -> List[CartItemModel]:
        """Linie koszyka razem z produktem (jedno zapytanie, bez lazy load)."""
        return list(
            self.db.execute(
                select(CartItemModel)
                .options(joinedload(CartItemModel.product))
                .where(CartItemModel.cart_id == cart_id)
                .order_by(CartItemModel.id)
                .execution_options(populate_existing=True)
            ).scalars().all()
        )

    def add_cart_item(self, item: CartItemModel) -> CartItemModel:
        self.db.add(item)
        self.db.flush()
        return item

    def delete_cart_item(self, cart_id: int, product_id: int) -> int:
        item = self.get_cart_item(cart_id, product_id)
        if item is None:
            return 0
        self.db.delete(item)
        self.db.flush()
        return 1

    def delete_cart_items(self, cart_id: int, product_ids: Iterable[int]) -> int:
        product_ids = list(product_ids)
        if not product_ids:
            return 0
        items = self.db.execute(
            select(CartItemModel).where(
                CartItemModel.cart_id == cart_id,
                CartItemModel.product_id.in_(product_ids),
            )
        ).scalars().all()
        for item in items:
            self.db.delete(item)
        self.db.flush()
        return len(items)

    def touch(self, cart: CartModel) -> None:
        cart.updated_at = datetime.now(timezone.utc)
        self.db.flush()
