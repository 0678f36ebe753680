"""
Discount rules by customer segment. Pure apart from writing order.discount_amount.
The customer's orders must already be loaded; an unloaded collection reads as "no history".
"""
from decimal import ROUND_HALF_UP, Decimal

from order_api.models import Customer, CustomerSegment, Order, OrderStatus

NEW_CUSTOMER_FIRST_ORDER_RATE = Decimal("0.10")
LOYAL_CUSTOMER_RATE = Decimal("0.05")
LOYAL_MIN_DELIVERED_ORDERS = 5
CENT = Decimal("0.01")


class InvalidArgumentError(ValueError):
    """Raised when a required argument is missing. Programmer error, not user input."""

    def __init__(self, argument: str):
        self.argument = argument
        super().__init__(f"Argument '{argument}' must not be None")


def discount_rate(customer: Customer) -> Decimal:
    """Percentage (as a fraction) the customer is entitled to on the order being placed."""
    segment = customer.customer_segment
    if segment is CustomerSegment.NEW:
        return NEW_CUSTOMER_FIRST_ORDER_RATE if not customer.orders else Decimal("0")
    if segment is CustomerSegment.LOYAL:
        delivered = sum(1 for o in customer.orders if o.order_status is OrderStatus.DELIVERED)
        return LOYAL_CUSTOMER_RATE if delivered >= LOYAL_MIN_DELIVERED_ORDERS else Decimal("0")
    if segment in (CustomerSegment.WHOLESALE, CustomerSegment.REGULAR):
        return Decimal("0")
    raise ValueError(f"Unknown customer segment: {segment!r}")


def apply_discount(order: Order, customer: Customer) -> Decimal:
    """Compute the discount for order, store it on the order and return it.

    Rounded half-up to cents, the precision amounts are stored with, then clamped
    to [0, total], so a non-positive total always yields 0.
    """
    if order is None:
        raise InvalidArgumentError("order")
    if customer is None:
        raise InvalidArgumentError("customer")

    calculated = (order.total_amount * discount_rate(customer)).quantize(CENT, rounding=ROUND_HALF_UP)
    order.discount_amount = max(Decimal("0"), min(calculated, order.total_amount))
    return order.discount_amount
