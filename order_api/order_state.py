"""
Order lifecycle state machine. Valid transitions enforce business rules.
"""
from datetime import datetime

from order_api.models import Order, OrderStatus, utcnow
from order_api.results import ValidationFailure

STATUS_FIELD = "newStatus"

# Current status -> allowed next statuses
VALID_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),  # terminal
    OrderStatus.CANCELLED: frozenset(),  # terminal
}


def is_valid_transition(current_status: OrderStatus, new_status: OrderStatus) -> bool:
    """True if new_status is allowed after current_status."""
    return new_status in VALID_TRANSITIONS.get(current_status, frozenset())


def is_terminal(status: OrderStatus) -> bool:
    return not VALID_TRANSITIONS.get(status)


def transition(
    order: Order,
    new_status: OrderStatus,
    *,
    now: datetime | None = None,
) -> Order | ValidationFailure:
    """
    Move order to new_status in place and return it, or return a ValidationFailure
    and leave the order untouched. Entering Delivered stamps delivered_date.
    Persisting the change is the caller's job.
    """
    current_status = order.order_status
    if new_status == current_status:
        return ValidationFailure.single(
            f"Order is already in '{new_status.value}' status.", STATUS_FIELD
        )

    if not is_valid_transition(current_status, new_status):
        return ValidationFailure.single(
            f"Invalid status transition from '{current_status.value}' to '{new_status.value}'.",
            STATUS_FIELD,
        )

    order.order_status = new_status
    if new_status is OrderStatus.DELIVERED:
        order.delivered_date = now or utcnow()
    return order
