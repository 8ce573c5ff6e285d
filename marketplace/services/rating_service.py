# marketplace/services/rating_service.py
from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.data.models import ProductRatingModel
from marketplace.domain.errors import AuthorizationError, ProductNotFound, ValidationError
from marketplace.domain.status import OrderStatus
from marketplace.repos.order_repo import OrderRepo
from marketplace.repos.product_repo import ProductRepo
from marketplace.repos.rating_repo import RatingRepo
from marketplace.services.transaction import TransactionCoordinator
from marketplace.utils.settings import RATING_REQUIRES_DELIVERED
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

MIN_RATING = 1
MAX_RATING = 5
MAX_COMMENT_LENGTH = 1000


def _validate_rating(rating) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError("Rating must be between 1 and 5.")
    return rating


def _clean_comment(comment) -> str | None:
    if comment is None:
        return None
    comment = comment.strip()
    if len(comment) > MAX_COMMENT_LENGTH:
        raise ValidationError(f"Comment cannot exceed {MAX_COMMENT_LENGTH} characters.")
    return comment or None


class RatingEligibilityChecker:
    """
    Ocena tylko po zakupie. Domyslnie wystarczy dowolne zamowienie z produktem
    (niezaleznie od statusu); RATING_REQUIRES_DELIVERED zaostrza to do Delivered.
    Jedna ocena na (user, produkt) - kolejna nadpisuje poprzednia.
    """

    def __init__(self, db: Session, requires_delivered: bool = RATING_REQUIRES_DELIVERED):
        self.db = db
        self.orders = OrderRepo(db)
        self.products = ProductRepo(db)
        self.ratings = RatingRepo(db)
        self.requires_delivered = requires_delivered

    def is_eligible(self, user_id: str, product_id: int) -> bool:
        statuses = [OrderStatus.DELIVERED.value] if self.requires_delivered else None
        return self.orders.customer_has_purchased(user_id, product_id, statuses)

    def submit_rating(self, user_id: str, product_id: int, rating: int, comment: str | None = None) -> ProductRatingModel:
        rating = _validate_rating(rating)
        comment = _clean_comment(comment)

        if self.products.get_product(product_id) is None:
            raise ProductNotFound(product_id)

        if not self.is_eligible(user_id, product_id):
            raise AuthorizationError(
                "You can only rate products you have purchased.",
                {"product_id": product_id},
            )

        existing = self.ratings.get_user_rating(user_id, product_id, for_update=True)
        if existing is None:
            try:
                with self.db.begin_nested():
                    created = self.ratings.add_rating(
                        ProductRatingModel(
                            user_id=user_id,
                            product_id=product_id,
                            rating=rating,
                            comment=comment,
                            created_at=datetime.now(timezone.utc),
                        )
                    )
                logger.info("Rating created", user_id=user_id, product_id=product_id, rating=rating)
                return created
            except IntegrityError:
                # rownolegly insert tej samej pary - nadpisujemy
                existing = self.ratings.get_user_rating(user_id, product_id, for_update=True)
                if existing is None:
                    raise

        existing.rating = rating
        existing.comment = comment
        existing.created_at = datetime.now(timezone.utc)
        self.db.flush()
        logger.info("Rating overwritten", user_id=user_id, product_id=product_id, rating=rating)
        return existing


class RatingService:
    def __init__(self, tx: TransactionCoordinator, requires_delivered: bool = RATING_REQUIRES_DELIVERED):
        self.tx = tx
        self.requires_delivered = requires_delivered

    def submit_rating(self, user_id: str, product_id: int, rating: int, comment: str | None = None) -> Dict[str, Any]:
        def work(db: Session):
            checker = RatingEligibilityChecker(db, self.requires_delivered)
            checker.submit_rating(user_id, product_id, rating, comment)

        self.tx.run_in_transaction(work)
        return {"ok": True, "message": "Thanks for your review!"}

    def can_rate(self, user_id: str, product_id: int) -> bool:
        return self.tx.run_in_transaction(
            lambda db: RatingEligibilityChecker(db, self.requires_delivered).is_eligible(user_id, product_id)
        )

    def product_summary(self, product_id: int, user_id: str | None = None) -> Dict[str, Any]:
        def work(db: Session):
            if ProductRepo(db).get_product(product_id) is None:
                raise ProductNotFound(product_id)
            repo = RatingRepo(db)
            average, count = repo.summary(product_id)
            user_rating = repo.get_user_rating(user_id, product_id) if user_id else None
            return {
                "product_id": product_id,
                "average_rating": round(average, 2),
                "rating_count": count,
                "ratings": [
                    {"user_id": r.user_id, "rating": r.rating, "comment": r.comment, "created_at": r.created_at}
                    for r in repo.list_for_product(product_id)
                ],
                "user_rating": user_rating.rating if user_rating else None,
            }

        return self.tx.run_in_transaction(work)
