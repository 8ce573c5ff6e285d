# marketplace/api/routers/ratings.py
from typing import Optional

from fastapi import APIRouter, Depends, Query

from marketplace.api.dependencies import get_rating_service
from marketplace.domain.schemas import OkOut, RatingSummaryOut, SubmitRatingIn
from marketplace.services.rating_service import RatingService

router = APIRouter(prefix="/products", tags=["ratings"])


@router.post("/{product_id}/ratings", response_model=OkOut)
def submit_rating(
    product_id: int,
    payload: SubmitRatingIn,
    svc: RatingService = Depends(get_rating_service),
):
    return svc.submit_rating(payload.user_id, product_id, payload.rating, payload.comment)


@router.get("/{product_id}/ratings", response_model=RatingSummaryOut)
def rating_summary(
    product_id: int,
    user_id: Optional[str] = Query(None),
    svc: RatingService = Depends(get_rating_service),
):
    summary = svc.product_summary(product_id, user_id)
    if user_id:
        summary["can_rate"] = svc.can_rate(user_id, product_id)
    return summary
