"""
Store interface used by the services, plus the in-memory implementation.

A Store is a unit of work: it hands out copies of entities, tracks the orders
it handed out, stages inserts, and writes everything in one go on save_changes().
Orders carry a version; a tracked order whose row moved on since it was read
fails the save with ConcurrencyConflictError.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Protocol

from order_api.models import Customer, CustomerSegment, Order, OrderStatus, utcnow

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Generic persistence failure."""


class ConcurrencyConflictError(StoreError):
    """Row changed (or vanished) between read and write."""


class Store(Protocol):
    async def get_customer_by_id(self, customer_id: int, include_orders: bool = False) -> Customer | None: ...

    async def get_order_by_id(self, order_id: int, include_customer: bool = False) -> Order | None: ...

    async def get_all_orders(self, include_customer: bool = False) -> list[Order]: ...

    def insert_order(self, order: Order) -> None: ...

    async def save_changes(self) -> int: ...


def _row(order: Order) -> tuple:
    """Persisted columns of an order, used for change detection."""
    return (
        order.customer_id,
        order.order_date,
        order.total_amount,
        order.discount_amount,
        order.order_status,
        order.delivered_date,
    )


class UnitOfWork:
    """Change tracking shared by the store implementations."""

    def __init__(self) -> None:
        self._pending: list[Order] = []
        self._tracked: dict[int, tuple[Order, tuple]] = {}

    def insert_order(self, order: Order) -> None:
        self._pending.append(order)

    def _track(self, order: Order) -> Order:
        self._tracked[order.id] = (order, _row(order))
        return order

    def _dirty(self) -> list[Order]:
        return [order for order, snapshot in self._tracked.values() if _row(order) != snapshot]

    def _accept(self, inserted: list[Order], updated: list[Order]) -> None:
        self._pending.clear()
        for order in inserted + updated:
            self._track(order)


class InMemoryDatabase:
    """Process-lifetime backing data for InMemoryStore. Holds entities without navigation links."""

    def __init__(self) -> None:
        self.customers: dict[int, Customer] = {}
        self.orders: dict[int, Order] = {}
        self._next_customer_id = 1
        self._next_order_id = 1

    def add_customer(self, customer: Customer) -> Customer:
        if not customer.id:
            customer.id = self._next_customer_id
        self._next_customer_id = max(self._next_customer_id, customer.id + 1)
        self.customers[customer.id] = replace(customer, orders=[])
        return customer

    def add_order(self, order: Order) -> Order:
        if order.id is None:
            order.id = self._next_order_id
        order.version = max(order.version, 1)
        self._next_order_id = max(self._next_order_id, order.id + 1)
        self.orders[order.id] = replace(order, customer=None)
        return order


class InMemoryStore(UnitOfWork):
    def __init__(self, db: InMemoryDatabase):
        super().__init__()
        self._db = db

    def _customer(self, customer_id: int) -> Customer | None:
        stored = self._db.customers.get(customer_id)
        return replace(stored, orders=[]) if stored else None

    def _order(self, stored: Order, include_customer: bool) -> Order:
        order = replace(stored)
        if include_customer:
            order.customer = self._customer(order.customer_id)
        return self._track(order)

    async def get_customer_by_id(self, customer_id: int, include_orders: bool = False) -> Customer | None:
        customer = self._customer(customer_id)
        if customer is not None and include_orders:
            customer.orders = [
                self._order(o, include_customer=False)
                for o in sorted(self._db.orders.values(), key=lambda o: o.id)
                if o.customer_id == customer_id
            ]
        return customer

    async def get_order_by_id(self, order_id: int, include_customer: bool = False) -> Order | None:
        stored = self._db.orders.get(order_id)
        return self._order(stored, include_customer) if stored else None

    async def get_all_orders(self, include_customer: bool = False) -> list[Order]:
        return [self._order(o, include_customer) for o in sorted(self._db.orders.values(), key=lambda o: o.id)]

    async def save_changes(self) -> int:
        # No awaits below: the check and the writes happen without interleaving.
        updated = self._dirty()
        for order in updated:
            stored = self._db.orders.get(order.id)
            if stored is None or stored.version != order.version:
                raise ConcurrencyConflictError(
                    f"Order {order.id} was modified or deleted since it was loaded."
                )
        for order in updated:
            order.version += 1
            self._db.orders[order.id] = replace(order, customer=None)
        inserted = list(self._pending)
        for order in inserted:
            order.version = 0
            self._db.add_order(order)
        self._accept(inserted, updated)
        return len(inserted) + len(updated)


def demo_customers() -> list[Customer]:
    return [
        Customer(id=1, name="Alice Smith", customer_segment=CustomerSegment.NEW),
        Customer(id=2, name="Bob Johnson", customer_segment=CustomerSegment.LOYAL),
        Customer(id=3, name="Charlie Brown", customer_segment=CustomerSegment.REGULAR),
        Customer(id=4, name="Diana Prince", customer_segment=CustomerSegment.LOYAL),
    ]


def demo_orders(now: datetime | None = None) -> list[Order]:
    now = now or utcnow()

    def order(
        order_id: int,
        customer_id: int,
        days_ago: int,
        total: str,
        discount: str,
        status: OrderStatus,
        delivered_days_ago: int | None = None,
    ) -> Order:
        return Order(
            id=order_id,
            customer_id=customer_id,
            order_date=now - timedelta(days=days_ago),
            total_amount=Decimal(total),
            discount_amount=Decimal(discount),
            order_status=status,
            delivered_date=now - timedelta(days=delivered_days_ago) if delivered_days_ago is not None else None,
        )

    return [
        order(101, 1, 5, "150.00", "0.00", OrderStatus.PENDING),
        order(102, 1, 4, "25.50", "0.00", OrderStatus.PROCESSING),
        order(201, 2, 30, "500.00", "25.00", OrderStatus.DELIVERED, 28),
        order(202, 2, 25, "120.75", "6.00", OrderStatus.DELIVERED, 24),
        order(203, 2, 20, "300.00", "15.00", OrderStatus.DELIVERED, 19),
        order(204, 2, 15, "80.00", "4.00", OrderStatus.DELIVERED, 14),
        order(205, 2, 10, "180.00", "9.00", OrderStatus.DELIVERED, 9),
        order(206, 2, 2, "75.00", "0.00", OrderStatus.PENDING),
        order(301, 3, 10, "99.99", "0.00", OrderStatus.SHIPPED),
        order(302, 3, 7, "45.00", "0.00", OrderStatus.CANCELLED),
        order(401, 4, 18, "220.00", "11.00", OrderStatus.DELIVERED, 17),
        order(402, 4, 12, "60.00", "0.00", OrderStatus.PROCESSING),
    ]


def seed_in_memory(db: InMemoryDatabase, now: datetime | None = None) -> None:
    for customer in demo_customers():
        db.add_customer(customer)
    for order in demo_orders(now):
        db.add_order(order)
    logger.info("Seeded in-memory store: %d customers, %d orders", len(db.customers), len(db.orders))
