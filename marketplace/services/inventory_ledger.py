# marketplace/services/inventory_ledger.py
from collections import OrderedDict
from dataclasses import dataclass
from typing import Iterable, Tuple

from sqlalchemy.orm import Session

from marketplace.domain.errors import InsufficientStock, ProductInactive, ProductNotFound, ValidationError
from marketplace.repos.product_repo import ProductRepo
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class StockLine:
    product_id: int
    quantity: int


@dataclass(frozen=True)
class Reservation:
    lines: Tuple[StockLine, ...]

    @property
    def total_units(self) -> int:
        return sum(line.quantity for line in self.lines)


def _merge(lines: Iterable) -> "OrderedDict[int, int]":
    """
    Sklada linie (product_id, quantity) - ten sam produkt sumowany raz.
    Posortowane po product_id: stala kolejnosc blokad = brak deadlockow miedzy transakcjami.
    """
    merged = {}
    for line in lines:
        product_id, quantity = (line.product_id, line.quantity) if isinstance(line, StockLine) else line
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("Quantity must be at least 1.", {"product_id": product_id})
        merged[product_id] = merged.get(product_id, 0) + quantity
    return OrderedDict(sorted(merged.items()))


class InventoryLedger:
    """
    Jedyne miejsce ktore zmienia Product.quantity_available.

    Wspolbieznosc: kazdy produkt blokowany wierszowo (SELECT ... FOR UPDATE),
    a sam dekrement to warunkowy UPDATE ``WHERE quantity_available >= :q``,
    wiec nawet bez blokady stan nie zejdzie ponizej zera.
    Wszystko albo nic: operacja dziala w SAVEPOINT, blad jednej linii cofa pozostale.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = ProductRepo(db)

    def reserve_stock(self, lines: Iterable) -> Reservation:
        merged = _merge(lines)

        with self.db.begin_nested():
            for product_id, quantity in merged.items():
                product = self.repo.get_product_for_update(product_id)

                if product is None:
                    raise ProductNotFound(product_id)

                if not product.is_active:
                    raise ProductInactive(product_id)

                if product.quantity_available < quantity:
                    logger.info(
                        "Insufficient stock",
                        product_id=product_id,
                        requested=quantity,
                        available=product.quantity_available,
                    )
                    raise InsufficientStock(product_id, quantity, product.quantity_available)

                rowcount = self.repo.decrement_quantity(product_id, quantity)
                if rowcount == 0:
                    # przegrany wyscig (baza bez blokad wierszy) - aktualny stan do komunikatu
                    current = self.repo.get_product_for_update(product_id)
                    if current is not None and not current.is_active:
                        raise ProductInactive(product_id)
                    available = current.quantity_available if current is not None else 0
                    raise InsufficientStock(product_id, quantity, available)

        reservation = Reservation(tuple(StockLine(pid, qty) for pid, qty in merged.items()))
        logger.info(
            "Stock reserved",
            products=[line.product_id for line in reservation.lines],
            units=reservation.total_units,
        )
        return reservation

    def release_stock(self, lines: Iterable) -> Reservation:
        """Restock - odwrotnosc reserve_stock, tez atomowo dla wszystkich linii."""
        merged = _merge(lines)

        with self.db.begin_nested():
            for product_id, quantity in merged.items():
                product = self.repo.get_product_for_update(product_id)
                if product is None:
                    raise ProductNotFound(product_id)
                self.repo.increment_quantity(product_id, quantity)

        released = Reservation(tuple(StockLine(pid, qty) for pid, qty in merged.items()))
        logger.info(
            "Stock released",
            products=[line.product_id for line in released.lines],
            units=released.total_units,
        )
        return released

    def check_available(self, product_id: int, quantity: int):
        """
        Sprawdzenie bez rezerwacji (koszyk). Ostateczna decyzja i tak zapada w reserve_stock.
        """
        product = self.repo.get_product(product_id)
        if product is None:
            raise ProductNotFound(product_id)
        if not product.is_active:
            raise ProductInactive(product_id)
        if product.quantity_available < quantity:
            raise InsufficientStock(product_id, quantity, product.quantity_available)
        return product
