# marketplace/api/dependencies.py
from fastapi import Depends

from marketplace.data.database import SessionLocal
from marketplace.services.cart_service import CartService
from marketplace.services.notification_service import NotificationService
from marketplace.services.order_service import OrderService
from marketplace.services.rating_service import RatingService
from marketplace.services.transaction import TransactionCoordinator

_tx = TransactionCoordinator(SessionLocal)


def get_tx() -> TransactionCoordinator:
    return _tx


def get_notification_service() -> NotificationService:
    return NotificationService()


def get_cart_service(tx: TransactionCoordinator = Depends(get_tx)) -> CartService:
    return CartService(tx)


def get_order_service(
    tx: TransactionCoordinator = Depends(get_tx),
    notifications: NotificationService = Depends(get_notification_service),
) -> OrderService:
    return OrderService(tx, notifications)


def get_rating_service(tx: TransactionCoordinator = Depends(get_tx)) -> RatingService:
    return RatingService(tx)
