"""
Domain entities: customers, orders and the two enumerations that drive the rules.
Entities are plain mutable dataclasses; stores copy them in and out.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum


class CustomerSegment(str, Enum):
    NEW = "New"
    LOYAL = "Loyal"
    WHOLESALE = "Wholesale"
    REGULAR = "Regular"


class OrderStatus(str, Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Customer:
    id: int
    name: str
    customer_segment: CustomerSegment
    # Only populated when the store is asked for it (include_orders=True).
    orders: list[Order] = field(default_factory=list)


@dataclass
class Order:
    customer_id: int
    total_amount: Decimal
    order_date: datetime = field(default_factory=utcnow)
    discount_amount: Decimal = Decimal("0.00")
    order_status: OrderStatus = OrderStatus.PENDING
    delivered_date: datetime | None = None
    id: int | None = None
    customer: Customer | None = field(default=None, repr=False, compare=False)
    version: int = 0

    @property
    def final_amount(self) -> Decimal:
        """Total after discount. Never stored."""
        return self.total_amount - self.discount_amount
