# marketplace/repos/order_repo.py
from datetime import datetime
from decimal import Decimal
from typing import List

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from marketplace.data.models import OrderItemModel, OrderModel, ProductModel


def _with_items_and_products():
    return selectinload(OrderModel.items).joinedload(OrderItemModel.product)


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def get_order_with_items(self, order_id: int, for_update: bool = False) -> OrderModel | None:
        """Zamowienie + linie + produkty, opcjonalnie z blokada wiersza zamowienia."""
        stmt = (
            select(OrderModel)
            .options(_with_items_and_products())
            .where(OrderModel.id == order_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update(of=OrderModel)
        return self.db.execute(stmt).scalar_one_or_none()

    def order_number_exists(self, order_number: str) -> bool:
        return self.db.execute(
            select(OrderModel.id).where(OrderModel.order_number == order_number)
        ).first() is not None

    def get_by_order_number(self, order_number: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .options(_with_items_and_products())
            .where(OrderModel.order_number == order_number)
        ).scalar_one_or_none()

    def list_for_customer(self, customer_id: str) -> List[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .options(_with_items_and_products())
                .where(OrderModel.customer_id == customer_id)
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            ).scalars().all()
        )

    def list_for_farmer(self, farmer_id: str) -> List[OrderModel]:
        farmer_orders = (
            select(OrderItemModel.order_id)
            .join(ProductModel, ProductModel.id == OrderItemModel.product_id)
            .where(ProductModel.farmer_id == farmer_id)
        )
        return list(
            self.db.execute(
                select(OrderModel)
                .options(_with_items_and_products())
                .where(OrderModel.id.in_(farmer_orders))
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            ).scalars().all()
        )

    def farmer_sales_total(
        self,
        farmer_id: str,
        statuses: List[str],
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> Decimal:
        stmt = (
            select(func.coalesce(func.sum(OrderItemModel.total_price), 0))
            .join(OrderModel, OrderModel.id == OrderItemModel.order_id)
            .join(ProductModel, ProductModel.id == OrderItemModel.product_id)
            .where(ProductModel.farmer_id == farmer_id, OrderModel.status.in_(statuses))
        )
        if since is not None:
            stmt = stmt.where(OrderModel.created_at >= since)
        if until is not None:
            stmt = stmt.where(OrderModel.created_at <= until)
        total = self.db.execute(stmt).scalar_one()
        return Decimal(str(total)).quantize(Decimal("0.01"))

    def customer_has_purchased(self, customer_id: str, product_id: int, statuses: List[str] | None = None) -> bool:
        stmt = (
            select(OrderItemModel.id)
            .join(OrderModel, OrderModel.id == OrderItemModel.order_id)
            .where(OrderModel.customer_id == customer_id, OrderItemModel.product_id == product_id)
        )
        if statuses is not None:
            stmt = stmt.where(OrderModel.status.in_(statuses))
        return self.db.execute(stmt.limit(1)).first() is not None
