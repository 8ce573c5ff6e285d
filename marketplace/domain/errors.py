# marketplace/domain/errors.py
"""
Taksonomia bledow domenowych.

Kazdy blad biznesowy niesie ``kind`` (maszynowo czytelny), ``message`` dla
uzytkownika i opcjonalne ``details``. Warstwa HTTP zamienia je na
ustrukturyzowane odpowiedzi ``{"ok": false, "error": kind, ...}``.
``TransientError`` nie jest wynikiem biznesowym - ponawia go TransactionCoordinator.
"""
from typing import Any, Dict, Optional


class MarketplaceError(Exception):
    kind = "error"
    http_status = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": False, "error": self.kind, "message": self.message, **self.details}


class ValidationError(MarketplaceError):
    kind = "validation"
    http_status = 400


class EmptyCartError(ValidationError):
    kind = "empty_cart"

    def __init__(self):
        super().__init__("Your cart is empty.")


class NotFoundError(MarketplaceError):
    kind = "not_found"
    http_status = 404


class ProductNotFound(NotFoundError):
    kind = "product_not_found"

    def __init__(self, product_id: int):
        super().__init__("Product not found.", {"product_id": product_id})
        self.product_id = product_id


class OrderNotFound(NotFoundError):
    kind = "order_not_found"

    def __init__(self, order_ref):
        super().__init__("Order not found.", {"order": order_ref})


class CartNotFound(NotFoundError):
    kind = "cart_not_found"

    def __init__(self, user_id: str):
        super().__init__("Cart not found.", {"user_id": user_id})


class AuthorizationError(MarketplaceError):
    kind = "forbidden"
    http_status = 403


class ConflictError(MarketplaceError):
    kind = "conflict"
    http_status = 409


class InsufficientStock(ConflictError):
    kind = "insufficient_stock"

    def __init__(self, product_id: int, requested: int, available: int):
        super().__init__(
            f"Product {product_id} is not available in requested quantity "
            f"(requested {requested}, available {available}).",
            {"product_id": product_id, "requested": requested, "available": available},
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class ProductInactive(ConflictError):
    kind = "product_inactive"

    def __init__(self, product_id: int):
        super().__init__(f"Product {product_id} is no longer available.", {"product_id": product_id})
        self.product_id = product_id


class InvalidTransition(ConflictError):
    kind = "invalid_transition"

    def __init__(self, current: str, requested: str, message: Optional[str] = None):
        super().__init__(
            message or f"Cannot change order status from {current} to {requested}.",
            {"current_status": current, "requested_status": requested},
        )
        self.current = current
        self.requested = requested


class DuplicateOrderNumber(ConflictError):
    kind = "duplicate_order_number"

    def __init__(self, order_number: str):
        super().__init__("Order number collision, please retry.", {"order_number": order_number})


class TransientError(Exception):
    """Chwilowa niedostepnosc bazy (lock timeout, deadlock, zerwane polaczenie)."""
