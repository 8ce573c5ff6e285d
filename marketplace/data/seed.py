# marketplace/data/seed.py
from decimal import Decimal

from sqlalchemy import select

from marketplace.data.database import SessionLocal
from marketplace.data.models import ProductModel
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

DEMO_PRODUCTS = [
    {"farmer_id": "farmer-1", "name": "Tomatoes", "price": Decimal("10.00"), "unit": "kg", "quantity_available": 50},
    {"farmer_id": "farmer-1", "name": "Cucumbers", "price": Decimal("5.50"), "unit": "kg", "quantity_available": 40},
    {"farmer_id": "farmer-2", "name": "Fresh milk", "price": Decimal("3.20"), "unit": "liter", "quantity_available": 30},
    {"farmer_id": "farmer-2", "name": "Eggs", "price": Decimal("0.45"), "unit": "piece", "quantity_available": 200},
]


def seed(session_factory=SessionLocal) -> int:
    """Dodaje przykladowe produkty; tylko gdy tabela jest pusta."""
    db = session_factory()
    try:
        # not forcing: only seed if empty
        if db.execute(select(ProductModel.id).limit(1)).first():
            return 0
        for data in DEMO_PRODUCTS:
            db.add(ProductModel(**data))
        db.commit()
        logger.info("Seeded demo products", count=len(DEMO_PRODUCTS))
        return len(DEMO_PRODUCTS)
    finally:
        db.close()
