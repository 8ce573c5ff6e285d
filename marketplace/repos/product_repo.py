# marketplace/repos/product_repo.py
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from marketplace.data.models import ProductModel


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def get_product_for_update(self, product_id: int) -> ProductModel | None:
        # SELECT ... FOR UPDATE (postgres), populate_existing zeby nie czytac starego stanu z identity map
        return self.db.execute(
            select(ProductModel)
            .where(ProductModel.id == product_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def decrement_quantity(self, product_id: int, quantity: int) -> int:
        """
        Warunkowy UPDATE (compare-and-swap): odejmuje tylko gdy stan wystarcza
        i produkt jest aktywny. Zwraca rowcount - 0 znaczy ze warunek nie przeszedl.
        """
        result = self.db.execute(
            update(ProductModel)
            .where(
                ProductModel.id == product_id,
                ProductModel.is_active.is_(True),
                ProductModel.quantity_available >= quantity,
            )
            .values(
                quantity_available=ProductModel.quantity_available - quantity,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        self._expire_cached(product_id)
        return result.rowcount

    def increment_quantity(self, product_id: int, quantity: int) -> int:
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(
                quantity_available=ProductModel.quantity_available + quantity,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        self._expire_cached(product_id)
        return result.rowcount

    def _expire_cached(self, product_id: int) -> None:
        cached = self.db.identity_map.get(self.db.identity_key(ProductModel, product_id))
        if cached is not None:
            self.db.expire(cached, ["quantity_available", "updated_at"])
