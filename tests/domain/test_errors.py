from marketplace.domain.errors import (
    AuthorizationError,
    ConflictError,
    EmptyCartError,
    InsufficientStock,
    InvalidTransition,
    NotFoundError,
    ProductNotFound,
    ValidationError,
)


def test_insufficient_stock_is_a_conflict_with_details():
    err = InsufficientStock(product_id=7, requested=4, available=1)

    assert isinstance(err, ConflictError)
    assert err.to_dict() == {
        "ok": False,
        "error": "insufficient_stock",
        "message": err.message,
        "product_id": 7,
        "requested": 4,
        "available": 1,
    }
    assert err.http_status == 409


def test_kinds_and_http_statuses():
    assert EmptyCartError().kind == "empty_cart"
    assert isinstance(EmptyCartError(), ValidationError)
    assert isinstance(ProductNotFound(1), NotFoundError)
    assert ProductNotFound(1).http_status == 404
    assert AuthorizationError("no").http_status == 403
    assert InvalidTransition("Shipped", "Cancelled").details == {
        "current_status": "Shipped",
        "requested_status": "Cancelled",
    }
