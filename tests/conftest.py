"""
Shared fixtures. Settings are read from the environment on first import,
so the test database and logging overrides must be set before any
shopdesk module is imported.
"""
import os
import tempfile
from datetime import datetime, timedelta

_TEST_DIR = tempfile.mkdtemp(prefix="shopdesk-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DIR}/test.db"
os.environ["LOG_TO_FILE"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["ENABLE_LLM_INSIGHTS"] = "false"
os.environ["ANTHROPIC_API_KEY"] = ""

import json

import pytest

from shopdesk.models.base import Base, SessionLocal, engine
import shopdesk.models  # noqa: F401  (register tables)
from shopdesk.models.product import Product
from shopdesk.models.sale import Sale, SaleItem
from shopdesk.models.shop import Shop
from shopdesk.models.user import User


GOOD_RESPONSE = {
    "predictions": [
        {"prediction": "Revenue should hold steady over the next week", "horizon": "next_7_days", "confidence": "medium"}
    ],
    "trends": "Weekend sales are strongest",
    "recommendations": ["Restock rice before Friday", "Promote beans"],
    "summary": "Ten sales this month with steady daily revenue.",
    "highlights": ["Rice is the best seller"],
    "restocking": [
        {"product_name": "Rice", "current_stock": 3, "suggested_quantity": 20, "reason": "Sells 1 unit a day"}
    ],
    "restock_insight": "One product is close to running out.",
}


class FakeLLM:
    """Stands in for LLMService: records prompts, replays a canned response."""

    def __init__(self, response=None, error=None):
        self.response = json.dumps(GOOD_RESPONSE) if response is None else response
        self.error = error
        self.prompts = []

    @property
    def calls(self):
        return len(self.prompts)

    def is_available(self):
        return True

    def complete(self, prompt, max_tokens=None):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.response


class FakeClock:
    def __init__(self, start=1_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def make_shop(db, name="Corner Shop", email="owner@example.com", sales=10, stock=3):
    """Owner + shop with two products and `sales` one-unit rice sales over the last days."""
    owner = User(email=email, password_hash="x", name="Owner")
    db.add(owner)
    db.flush()
    shop = Shop(name=name, owner_id=owner.id)
    db.add(shop)
    db.flush()
    rice = Product(shop_id=shop.id, name="Rice", price=1500.0, stock=stock)
    beans = Product(shop_id=shop.id, name="Beans", price=800.0, stock=40)
    db.add_all([rice, beans])
    db.flush()
    now = datetime.utcnow()
    for i in range(sales):
        sale = Sale(shop_id=shop.id, staff_id=owner.id, order_id=f"ORD-{shop.id}-{i}",
                    total_amount=1500.0, created_at=now - timedelta(days=i, minutes=1))
        sale.items.append(SaleItem(product_id=rice.id, quantity=1, price=1500.0))
        db.add(sale)
    db.commit()
    return shop


@pytest.fixture
def shop_factory(db):
    def factory(**kwargs):
        return make_shop(db, **kwargs)
    return factory


@pytest.fixture
def llm_factory():
    return FakeLLM
