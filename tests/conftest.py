"""
Shared fixtures: in-memory SQLite database, catalog helpers and fakes for the
delayed-job queue, Stripe and the Redis lock.
"""

import hashlib
import hmac
import json
import os
import time
from decimal import Decimal

# settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.data.database import Base
from app.data.models import (
    AppSettingsModel,
    ProductModel,
    ProductSizeModel,
    UserModel,
)
from app.services.cart_service import CartService
from app.services.order_service import OrderService
from app.services.payment_gateway import PaymentGateway

WEBHOOK_SECRET = "whsec_test_secret"


# ============================================================================
# Fakes
# ============================================================================


class FakeScheduler:
    def __init__(self):
        self.scheduled = []
        self.cancelled = []
        self._seq = 0

    def schedule(self, cart_id):
        self._seq += 1
        job_id = f"job-{self._seq}"
        self.scheduled.append((cart_id, job_id))
        return job_id

    def cancel(self, job_id):
        if job_id:
            self.cancelled.append(job_id)


class FakeGateway(PaymentGateway):
    """Real webhook verification, canned Stripe API calls."""

    def __init__(self):
        super().__init__(webhook_secret=WEBHOOK_SECRET)
        self.promotions = {}
        self.sessions = []
        self.expired = []

    def find_active_promotion_code(self, code):
        return self.promotions.get(code)

    def create_checkout_session(self, **params):
        session_id = f"cs_test_{len(self.sessions) + 1}"
        self.sessions.append({"id": session_id, **params})
        return {"id": session_id, "url": f"https://checkout.stripe.test/{session_id}"}

    def expire_checkout_session(self, session_id):
        if session_id:
            self.expired.append(session_id)


class FakeLock:
    def __init__(self):
        self.held = {}

    def acquire(self, key, owner, ttl):
        if key in self.held:
            return False
        self.held[key] = owner
        return True

    def release(self, key, owner):
        if self.held.get(key) == owner:
            del self.held[key]
            return True
        return False


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    timestamp = timestamp or int(time.time())
    signature = hmac.new(
        secret.encode("utf-8"), f"{timestamp}.{payload}".encode("utf-8"), hashlib.sha256
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


def checkout_completed_event(session_id: str, cart_id: int, user_id: int, event_id: str = "evt_1") -> str:
    return json.dumps(
        {
            "id": event_id,
            "object": "event",
            "type": "checkout.session.completed",
            "data": {
                "object": {
                    "id": session_id,
                    "object": "checkout.session",
                    "payment_status": "paid",
                    "metadata": {
                        "cart_id": str(cart_id),
                        "user_id": str(user_id),
                        "phone": "+48123456789",
                        "country": "Poland",
                        "state": "Mazowieckie",
                        "city": "Warsaw",
                        "street": "Marszalkowska 10",
                        "postal_code": "00001",
                    },
                }
            },
        }
    )


# ============================================================================
# Database
# ============================================================================


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# ============================================================================
# Services
# ============================================================================


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def lock():
    return FakeLock()


@pytest.fixture
def cart_service(db, scheduler, gateway):
    return CartService(db=db, scheduler=scheduler, gateway=gateway)


@pytest.fixture
def order_service(db, scheduler, gateway, lock):
    return OrderService(db=db, scheduler=scheduler, gateway=gateway, lock_service=lock)


# ============================================================================
# Catalog helpers
# ============================================================================


@pytest.fixture
def make_user(db):
    def _make(user_id=1, name="Jan"):
        user = UserModel(id=user_id, name=name)
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_flat_product(db):
    def _make(price="10.00", quantity=5, title="Mug", color=None):
        product = ProductModel(title=title, price=Decimal(price), quantity=quantity, color=color, sold=0)
        db.add(product)
        db.commit()
        return product

    return _make


@pytest.fixture
def make_sized_product(db):
    def _make(sizes, title="Hoodie", color="black"):
        """sizes: [(size, quantity, price), ...] in display order."""
        product = ProductModel(title=title, price=Decimal("0"), quantity=0, color=color, sold=0)
        product.sizes = [
            ProductSizeModel(size=size, quantity=qty, price=Decimal(price), position=i)
            for i, (size, qty, price) in enumerate(sizes)
        ]
        db.add(product)
        db.commit()
        return product

    return _make


@pytest.fixture
def set_pricing_settings(db):
    def _set(tax="0", shipping="0"):
        db.add(AppSettingsModel(tax_price=Decimal(tax), shipping_price=Decimal(shipping)))
        db.commit()

    return _set


def size_quantity(db, product_id, size):
    row = (
        db.query(ProductSizeModel)
        .filter(ProductSizeModel.product_id == product_id, ProductSizeModel.size == size)
        .one()
    )
    db.refresh(row)
    return row.quantity


def flat_quantity(db, product_id):
    product = db.get(ProductModel, product_id)
    db.refresh(product)
    return product.quantity
