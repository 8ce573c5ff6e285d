# marketplace/repos/rating_repo.py
from typing import List, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from marketplace.data.models import ProductRatingModel


class RatingRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_user_rating(self, user_id: str, product_id: int, for_update: bool = False) -> ProductRatingModel | None:
        stmt = select(ProductRatingModel).where(
            ProductRatingModel.user_id == user_id,
            ProductRatingModel.product_id == product_id,
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def add_rating(self, rating: ProductRatingModel) -> ProductRatingModel:
        self.db.add(rating)
        self.db.flush()
        return rating

    def list_for_product(self, product_id: int, limit: int = 10) -> List[ProductRatingModel]:
        return list(
            self.db.execute(
                select(ProductRatingModel)
                .where(ProductRatingModel.product_id == product_id)
                .order_by(ProductRatingModel.created_at.desc())
                .limit(limit)
            ).scalars().all()
        )

    def summary(self, product_id: int) -> Tuple[float, int]:
        avg, count = self.db.execute(
            select(func.avg(ProductRatingModel.rating), func.count(ProductRatingModel.id))
            .where(ProductRatingModel.product_id == product_id)
        ).one()
        return (float(avg) if avg is not None else 0.0), count
