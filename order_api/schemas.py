"""
Response view models and the entity -> view mapping.
"""
from datetime import datetime
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

from order_api.models import Customer, CustomerSegment, Order, OrderStatus

# Money stays Decimal in Python and goes out as a JSON number.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class ViewModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class OrderResponse(ViewModel):
    id: int
    order_date: datetime
    total_amount: Money
    discount_amount: Money
    final_amount: Money
    order_status: OrderStatus
    delivered_date: datetime | None = None
    customer_id: int
    customer_name: str = ""
    customer_segment: CustomerSegment


class OrderAnalytics(ViewModel):
    average_order_value: Money = Decimal("0")
    average_fulfillment_time_in_hours: float = 0.0
    total_orders: int = 0
    total_pending_orders: int = 0
    total_delivered_orders: int = 0


def to_order_response(order: Order, customer: Customer | None = None) -> OrderResponse:
    """Project an order into its view, inlining the owning customer's name and segment."""
    customer = customer or order.customer
    if customer is None:
        raise ValueError(f"Customer for order {order.id} is not loaded")
    return OrderResponse(
        id=order.id,
        order_date=order.order_date,
        total_amount=order.total_amount,
        discount_amount=order.discount_amount,
        final_amount=order.final_amount,
        order_status=order.order_status,
        delivered_date=order.delivered_date,
        customer_id=order.customer_id,
        customer_name=customer.name,
        customer_segment=customer.customer_segment,
    )
