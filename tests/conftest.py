"""
Shared fixtures: in-memory database, fake product catalog, fake clock
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.pool import StaticPool

from orders.db import Database
from orders.repository import OrderRepository
from orders.schemas import Product
from orders.services.order_service import OrderService


class FakeClock:
    """Deterministic clock advancing one second per reading"""
    
    def __init__(self, start=None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    
    def __call__(self):
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


class FakeProductLookup:
    """In-memory product catalog recording every lookup"""
    
    def __init__(self, products=()):
        self.catalog = {p.id: p for p in products}
        self.calls = []
        self.timeouts = []
        self.error = None
    
    def lookup_products(self, product_ids, timeout=None):
        ids = sorted(set(product_ids))
        self.calls.append(ids)
        self.timeouts.append(timeout)
        if self.error is not None:
            raise self.error
        return [self.catalog[i] for i in ids if i in self.catalog]


class MockContext:
    """Mock gRPC context"""
    def __init__(self, time_remaining=None):
        self._code = None
        self._details = None
        self._time_remaining = time_remaining
    
    def set_code(self, code):
        self._code = code
    
    def set_details(self, details):
        self._details = details
    
    def time_remaining(self):
        return self._time_remaining


@pytest.fixture
def database():
    """Fresh in-memory SQLite database with tables created"""
    db = Database(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )
    assert db.create_tables(max_retries=1, retry_delay=0)
    yield db
    db.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def repository(database, clock):
    return OrderRepository(database, clock=clock)


@pytest.fixture
def products():
    return FakeProductLookup([
        Product(id=1, name="Pen", price=Decimal("5.00")),
        Product(id=2, name="Notebook", price=Decimal("12.50")),
        Product(id=3, name="Stapler", price=Decimal("19.99")),
    ])


@pytest.fixture
def order_service(repository, products):
    return OrderService(repository, products)
