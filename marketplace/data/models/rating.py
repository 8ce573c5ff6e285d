from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint

from marketplace.data.database import Base


class ProductRatingModel(Base):
    __tablename__ = "product_ratings"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)

    rating = Column(Integer, nullable=False)
    comment = Column(String(1000), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="u_rating_user_product"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_rating_range"),
    )
