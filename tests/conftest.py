# tests/conftest.py
import os
import shutil
import tempfile
from datetime import datetime, timezone, timedelta
from itertools import count

import pytest
from fastapi.testclient import TestClient

# point the store at a temp sqlite file before cart_core reads its settings
_tmp_dir = tempfile.mkdtemp(prefix="cart_core_test_")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmp_dir, 'cart.db')}"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"

from cart_core.data.database import Base, engine, SessionLocal, init_db  # noqa: E402
from cart_core.data.models.cart import CartModel  # noqa: E402
from cart_core.domain.errors import NotFound, PaymentProviderError  # noqa: E402
from cart_core.main import create_app  # noqa: E402
from cart_core.services.cart_service import CartService  # noqa: E402
from cart_core.services.payment_gateway import PaymentTransaction  # noqa: E402
from cart_core.services.pricing_service import PricingResolver  # noqa: E402


class FakeCatalog:
    """Catalog reader with mutable prices, variant price overrides product price."""

    def __init__(self, products=None, variants=None):
        self.products = dict(products or {})
        # variant_id -> (product_id, price_cents or None)
        self.variants = dict(variants or {})
        self.calls = []

    def get_unit_price(self, product_id, variant_id=None):
        self.calls.append((product_id, variant_id))
        if variant_id:
            if variant_id not in self.variants:
                raise NotFound(f"Variant {variant_id} not found")
            owner, price = self.variants[variant_id]
            if owner != product_id:
                raise NotFound(f"Variant {variant_id} does not belong to product {product_id}")
            if price is not None:
                return price
        if product_id not in self.products:
            raise NotFound(f"Product {product_id} not found")
        return self.products[product_id]


class FakeGateway:
    """Payment provider double: remembers customers by email and opened transactions."""

    def __init__(self):
        self.customers = {}
        self.transactions = []
        self.fail = False
        self._ids = count(1)

    def create_or_find_customer(self, email):
        if self.fail:
            raise PaymentProviderError("Payment provider unavailable, try again")
        if email not in self.customers:
            self.customers[email] = f"cus_{len(self.customers) + 1}"
        return self.customers[email]

    def create_payment_transaction(self, amount, currency, customer_id, metadata):
        if self.fail:
            raise PaymentProviderError("Payment provider unavailable, try again")
        n = next(self._ids)
        tx = PaymentTransaction(id=f"pi_{n}", client_secret=f"pi_{n}_secret")
        self.transactions.append(
            {
                "id": tx.id,
                "amount": amount,
                "currency": currency,
                "customer_id": customer_id,
                "metadata": metadata,
            }
        )
        return tx


@pytest.fixture(autouse=True)
def fresh_schema():
    Base.metadata.drop_all(bind=engine)
    init_db()
    yield


@pytest.fixture(scope="session", autouse=True)
def _cleanup_tmp_dir():
    yield
    engine.dispose()
    shutil.rmtree(_tmp_dir, ignore_errors=True)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def catalog():
    return FakeCatalog(
        products={"A": 1000, "B": 2500, "C": 700},
        variants={"B-large": ("B", 3000), "B-small": ("B", None)},
    )


@pytest.fixture
def pricing(catalog):
    return PricingResolver(catalog)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def ledger(db, pricing):
    return CartService(db=db, pricing=pricing)


@pytest.fixture
def make_cart(db):
    """Insert a cart directly. Usage: make_cart(user_id=None, expires_in=timedelta(days=7))"""

    def _fn(user_id=None, expires_in=timedelta(days=7)):
        expires_at = None
        if user_id is None and expires_in is not None:
            expires_at = datetime.now(timezone.utc) + expires_in
        cart = CartModel(user_id=user_id, expires_at=expires_at)
        db.add(cart)
        db.commit()
        return cart

    return _fn


@pytest.fixture
def app(catalog, gateway):
    return create_app(catalog=catalog, payment_gateway=gateway)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
