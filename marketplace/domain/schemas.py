# marketplace/domain/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from marketplace.utils.settings import CASH_ON_DELIVERY


# ---------------------------------------------------------------------------
# Koszyk
# ---------------------------------------------------------------------------
class AddToCartIn(BaseModel):
    """Schema dla dodawania produktu do koszyka."""

    user_id: str = Field(..., min_length=1, max_length=64)
    product_id: int = Field(..., gt=0, description="ID produktu (musi być > 0)")
    # walidacja ilosci w serwisie - ten sam komunikat niezaleznie od wejscia
    quantity: int = 1


class UpdateCartItemIn(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    quantity: int


class AddToCartOut(BaseModel):
    ok: bool
    message: str
    cart_item_count: int


class CartChangeOut(BaseModel):
    ok: bool
    cart_total: Decimal
    cart_item_count: int


class CartItemOut(BaseModel):
    """Schema dla produktu w koszyku (response)."""

    product_id: int
    product_name: str
    unit: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class CartOut(BaseModel):
    """Schema dla koszyka (response)."""

    cart_id: Optional[int] = None
    user_id: str
    items: List[CartItemOut]
    cart_total: Decimal
    cart_item_count: int


# ---------------------------------------------------------------------------
# Zamowienia
# ---------------------------------------------------------------------------
class PlaceOrderIn(BaseModel):
    """Schema dla tworzenia zamówienia z koszyka."""

    user_id: str = Field(..., min_length=1, max_length=64)
    delivery_address: str
    payment_method: str = CASH_ON_DELIVERY


class PlaceOrderOut(BaseModel):
    ok: bool
    order_id: int
    order_number: str
    total_amount: Decimal


class UpdateOrderStatusIn(BaseModel):
    requester_id: str = Field(..., min_length=1, max_length=64)
    status: str


class UpdateOrderStatusOut(BaseModel):
    ok: bool
    message: str
    new_status: str
    payment_status: str


class CancelOrderIn(BaseModel):
    requester_id: str = Field(..., min_length=1, max_length=64)
    reason: Optional[str] = None


class CancelOrderOut(BaseModel):
    ok: bool
    message: str
    new_status: str


class OrderItemOut(BaseModel):
    product_id: int
    product_name: str
    farmer_id: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal


class OrderOut(BaseModel):
    """Schema dla zamówienia (response)."""

    id: int
    order_number: str
    customer_id: str
    status: str
    payment_method: str
    payment_status: str
    delivery_address: str
    total_amount: Decimal
    cancellation_reason: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    delivery_date: Optional[datetime] = None
    items: List[OrderItemOut]
    farmer_total: Optional[Decimal] = None

    model_config = ConfigDict(from_attributes=True)


class FarmerSalesOut(BaseModel):
    farmer_id: str
    total_sales: Decimal
    statuses: List[str]


# ---------------------------------------------------------------------------
# Oceny
# ---------------------------------------------------------------------------
class SubmitRatingIn(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    rating: int
    comment: Optional[str] = None


class OkOut(BaseModel):
    ok: bool
    message: str


class RatingOut(BaseModel):
    user_id: str
    rating: int
    comment: Optional[str] = None
    created_at: datetime


class RatingSummaryOut(BaseModel):
    product_id: int
    average_rating: float
    rating_count: int
    ratings: List[RatingOut]
    user_rating: Optional[int] = None
    can_rate: Optional[bool] = None
