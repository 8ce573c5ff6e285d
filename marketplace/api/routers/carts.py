# marketplace/api/routers/carts.py
from fastapi import APIRouter, Depends, Query

from marketplace.api.dependencies import get_cart_service
from marketplace.domain.schemas import (
    AddToCartIn,
    AddToCartOut,
    CartChangeOut,
    CartOut,
    UpdateCartItemIn,
)
from marketplace.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("", response_model=CartOut)
def get_cart(user_id: str = Query(...), svc: CartService = Depends(get_cart_service)):
    return svc.get_cart(user_id)


@router.post("/items", response_model=AddToCartOut)
def add_to_cart(payload: AddToCartIn, svc: CartService = Depends(get_cart_service)):
    return svc.add_to_cart(payload.user_id, payload.product_id, payload.quantity)


@router.put("/items/{product_id}", response_model=CartChangeOut)
def update_cart_item(
    product_id: int,
    payload: UpdateCartItemIn,
    svc: CartService = Depends(get_cart_service),
):
    return svc.update_cart_item(payload.user_id, product_id, payload.quantity)


@router.delete("/items/{product_id}", response_model=CartChangeOut)
def remove_from_cart(
    product_id: int,
    user_id: str = Query(...),
    svc: CartService = Depends(get_cart_service),
):
    return svc.remove_from_cart(user_id, product_id)
