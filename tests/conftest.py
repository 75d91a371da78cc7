import os

# konfiguracja przed importem app.*, settings czytaja env przy imporcie
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test"

import threading
from contextlib import contextmanager
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.data.models  # noqa: F401
from app.api import create_app
from app.api.deps import get_lock_service, get_payment_client
from app.data.database import Base, build_engine, get_db
from app.data.models import CategoryModel, ProductModel, UserModel
from app.domain.errors import CartBusy
from app.domain.pricing import to_cents
from app.services.payment_client import PaymentClient, PaymentResult

WEBHOOK_SECRET = "whsec_test"


class FakeLockService:
    """Lock w pamieci procesu, ta sama semantyka co LockService.owner_lock."""

    def __init__(self):
        self.held = set()
        self.acquired = []
        self._guard = threading.Lock()

    @contextmanager
    def owner_lock(self, owner_key: str):
        with self._guard:
            if owner_key in self.held:
                raise CartBusy()
            self.held.add(owner_key)
            self.acquired.append(owner_key)
        try:
            yield
        finally:
            with self._guard:
                self.held.discard(owner_key)


class FakePaymentClient(PaymentClient):
    """Bramka sterowana z testu, weryfikacja webhookow prawdziwa (HMAC)."""

    def __init__(self):
        super().__init__(base_url="http://payments.test", secret_key="sk_test", webhook_secret=WEBHOOK_SECRET)
        self.succeed = True
        self.error = "Your card was declined."
        self.captures = []

    def create_payment_intent(self, amount, currency, metadata):
        return f"pi_secret_{to_cents(amount)}"

    def capture_or_verify(self, method, token, amount):
        self.captures.append((method, token, amount))
        if not self.succeed:
            return PaymentResult(success=False, error=self.error)
        return PaymentResult(success=True, payment_id=f"pi_{token}")


@pytest.fixture()
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    yield session
    session.close()


@pytest.fixture()
def lock_service():
    return FakeLockService()


@pytest.fixture()
def payments():
    return FakePaymentClient()


@pytest.fixture()
def api(db, lock_service, payments):
    app = create_app()
    # jedna sesja dla testu i aplikacji, zapytania ida sekwencyjnie
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_lock_service] = lambda: lock_service
    app.dependency_overrides[get_payment_client] = lambda: payments
    return app


@pytest.fixture()
def client(api):
    return TestClient(api, raise_server_exceptions=False)


@pytest.fixture()
def make_user(db):
    def _make(user_id=1, name="Jan Kowalski", email=None):
        user = UserModel(id=user_id, name=name, email=email or f"user{user_id}@example.com")
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture()
def category(db):
    cat = CategoryModel(name="Laptops", slug="laptops")
    db.add(cat)
    db.commit()
    return cat


@pytest.fixture()
def make_product(db, category):
    counter = {"n": 0}

    def _make(price="25.00", stock=10, sale_price=None, manage_stock=True, status="active", name=None):
        counter["n"] += 1
        n = counter["n"]
        product = ProductModel(
            category_id=category.id,
            name=name or f"Product {n}",
            slug=f"product-{n}",
            sku=f"SKU-{n:05d}",
            price=Decimal(price),
            sale_price=Decimal(sale_price) if sale_price else None,
            stock_quantity=stock,
            manage_stock=manage_stock,
            status=status,
        )
        db.add(product)
        db.commit()
        return product

    return _make


ADDRESS = {
    "name": "Jan Kowalski",
    "email": "jan@example.com",
    "phone": "555-0100",
    "address": "1 Main St",
    "city": "Springfield",
    "state": "IL",
    "postal_code": "62701",
    "country": "US",
}


def checkout_payload(method="stripe", token="tok_1"):
    return {
        "billing_address": dict(ADDRESS),
        "shipping_address": dict(ADDRESS),
        "payment_method": method,
        "payment_token": token,
    }
