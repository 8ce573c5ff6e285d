# marketplace/domain/status.py
from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"
    FAILED = "Failed"
    CANCELLED = "Cancelled"


# sciezka "do przodu", mozna przeskoczyc etap (np. Processing -> Delivered), nie mozna sie cofnac
_HAPPY_PATH = [
    OrderStatus.PENDING,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
]

# statusy ktore farmer moze ustawic przez UpdateStatus
FARMER_SETTABLE = {OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED}

CANCELLABLE = {OrderStatus.PENDING, OrderStatus.PROCESSING}

# statusy wliczane do sprzedazy farmera
SALES_STATUSES = {OrderStatus.SHIPPED, OrderStatus.DELIVERED}


def parse_status(value) -> OrderStatus | None:
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        return None


def can_advance(current: OrderStatus, target: OrderStatus) -> bool:
    """True jesli ``target`` lezy dalej na sciezce Pending -> ... -> Delivered."""
    if current not in _HAPPY_PATH or target not in _HAPPY_PATH:
        return False
    return _HAPPY_PATH.index(target) > _HAPPY_PATH.index(current)


def can_cancel(current: OrderStatus) -> bool:
    return current in CANCELLABLE
