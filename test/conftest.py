"""
Shared fixtures: an in-memory database with a few customers, a store over it,
and an API client running the real app (in-memory backend, demo data seeded).
"""
from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from order_api.main import app
from order_api.models import Customer, CustomerSegment, Order, OrderStatus, utcnow
from order_api.store import InMemoryDatabase, InMemoryStore


def make_order(customer_id: int, status: OrderStatus = OrderStatus.PENDING, total: str = "100.00", **kwargs) -> Order:
    return Order(customer_id=customer_id, total_amount=Decimal(total), order_status=status, **kwargs)


def delivered_order(customer_id: int, hours_to_deliver: float = 24.0, total: str = "100.00") -> Order:
    ordered = utcnow() - timedelta(days=10)
    return Order(
        customer_id=customer_id,
        total_amount=Decimal(total),
        order_status=OrderStatus.DELIVERED,
        order_date=ordered,
        delivered_date=ordered + timedelta(hours=hours_to_deliver),
    )


@pytest.fixture
def database():
    db = InMemoryDatabase()
    db.add_customer(Customer(id=1, name="New Customer", customer_segment=CustomerSegment.NEW))
    db.add_customer(Customer(id=2, name="Loyal Customer", customer_segment=CustomerSegment.LOYAL))
    db.add_customer(Customer(id=3, name="Regular Customer", customer_segment=CustomerSegment.REGULAR))
    db.add_customer(Customer(id=4, name="Wholesale Customer", customer_segment=CustomerSegment.WHOLESALE))
    return db


@pytest.fixture
def store(database):
    return InMemoryStore(database)


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
