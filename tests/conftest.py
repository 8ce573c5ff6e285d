import os
from pathlib import Path

# przed importem marketplace: modulowy engine nie moze celowac w postgresa
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("CELERY_TASK_ALWAYS_EAGER", "1")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)


class RecordingNotifier:
    """Zamiast Celery - zapisuje wywolania."""

    def __init__(self):
        self.calls = []

    def order_placed(self, customer_id, order_id, order_number):
        self.calls.append(("placed", customer_id, order_id, order_number))

    def order_status_changed(self, customer_id, order_id, status):
        self.calls.append(("status_changed", customer_id, order_id, status))

    def order_cancelled(self, customer_id, order_id, reason):
        self.calls.append(("cancelled", customer_id, order_id, reason))


@pytest.fixture
def engine(tmp_path):
    from marketplace.data import models  # noqa: F401
    from marketplace.data.database import Base, make_engine

    # plik, nie :memory: - watki w testach wspolbieznosci maja osobne polaczenia
    engine = make_engine(f"sqlite:///{tmp_path / 'marketplace.db'}", echo=False)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    from marketplace.data.database import make_session_factory

    return make_session_factory(engine)


@pytest.fixture
def tx(session_factory):
    from marketplace.services.transaction import TransactionCoordinator

    return TransactionCoordinator(session_factory, max_attempts=3, backoff_min=0.01, backoff_max=0.05)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def cart_service(tx):
    from marketplace.services.cart_service import CartService

    return CartService(tx)


@pytest.fixture
def order_service(tx, notifier):
    from marketplace.services.order_service import OrderService

    return OrderService(tx, notifier)


@pytest.fixture
def rating_service(tx):
    from marketplace.services.rating_service import RatingService

    return RatingService(tx, requires_delivered=False)


@pytest.fixture
def make_product(session_factory):
    from marketplace.data.models import ProductModel

    def _make(price="10.00", quantity=10, farmer_id="farmer-1", name="Tomatoes", unit="kg", is_active=True):
        with session_factory() as db, db.begin():
            product = ProductModel(
                farmer_id=farmer_id,
                name=name,
                price=Decimal(price),
                unit=unit,
                quantity_available=quantity,
                is_active=is_active,
            )
            db.add(product)
            db.flush()
            return product.id

    return _make


@pytest.fixture
def stock(session_factory):
    """Aktualny quantity_available produktu (swieza sesja)."""
    from marketplace.data.models import ProductModel

    def _stock(product_id):
        with session_factory() as db:
            return db.get(ProductModel, product_id).quantity_available

    return _stock


@pytest.fixture
def set_product(session_factory):
    from marketplace.data.models import ProductModel

    def _set(product_id, **values):
        with session_factory() as db, db.begin():
            product = db.get(ProductModel, product_id)
            for key, value in values.items():
                setattr(product, key, value)

    return _set


@pytest.fixture
def place(cart_service, order_service):
    """Koszyk + zamowienie jednym wywolaniem: place("user", [(product_id, qty), ...])."""

    def _place(user_id, lines, payment_method="Cash on Delivery", address="1 Farm Road, Springfield"):
        for product_id, quantity in lines:
            cart_service.add_to_cart(user_id, product_id, quantity)
        return order_service.place_order(user_id, address, payment_method)

    return _place
