# marketplace/api/routers/orders.py
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from marketplace.api.dependencies import get_order_service
from marketplace.domain.schemas import (
    CancelOrderIn,
    CancelOrderOut,
    FarmerSalesOut,
    OrderOut,
    PlaceOrderIn,
    PlaceOrderOut,
    UpdateOrderStatusIn,
    UpdateOrderStatusOut,
)
from marketplace.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])
farmer_router = APIRouter(prefix="/farmers", tags=["farmers"])


@router.post("", response_model=PlaceOrderOut, status_code=201)
def place_order(payload: PlaceOrderIn, svc: OrderService = Depends(get_order_service)):
    """
    Tworzy zamówienie z koszyka użytkownika.
    Wysyła powiadomienie asynchronicznie (po commicie).
    """
    return svc.place_order(payload.user_id, payload.delivery_address, payload.payment_method)


@router.get("", response_model=List[OrderOut])
def list_orders(user_id: str = Query(...), svc: OrderService = Depends(get_order_service)):
    return svc.list_customer_orders(user_id)


@router.get("/by-number/{order_number}", response_model=OrderOut)
def get_order_by_number(
    order_number: str,
    user_id: str = Query(...),
    svc: OrderService = Depends(get_order_service),
):
    return svc.get_order_by_number(order_number, user_id)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    user_id: str = Query(...),
    svc: OrderService = Depends(get_order_service),
):
    """
    Pobiera szczegóły zamówienia (klient albo farmer z linią w zamówieniu).
    """
    return svc.get_order(order_id, user_id)


@router.post("/{order_id}/status", response_model=UpdateOrderStatusOut)
def update_order_status(
    order_id: int,
    payload: UpdateOrderStatusIn,
    svc: OrderService = Depends(get_order_service),
):
    return svc.update_order_status(order_id, payload.requester_id, payload.status)


@router.post("/{order_id}/cancel", response_model=CancelOrderOut)
def cancel_order(
    order_id: int,
    payload: CancelOrderIn,
    svc: OrderService = Depends(get_order_service),
):
    return svc.cancel_order(order_id, payload.requester_id, payload.reason)


@farmer_router.get("/{farmer_id}/orders", response_model=List[OrderOut])
def list_farmer_orders(farmer_id: str, svc: OrderService = Depends(get_order_service)):
    return svc.list_farmer_orders(farmer_id)


@farmer_router.get("/{farmer_id}/sales", response_model=FarmerSalesOut)
def farmer_sales(
    farmer_id: str,
    since: Optional[datetime] = Query(None),
    until: Optional[datetime] = Query(None),
    svc: OrderService = Depends(get_order_service),
):
    return svc.farmer_sales_total(farmer_id, since, until)
