"""
Order workflow: validate -> look up -> apply rules -> persist -> map to view.
Every operation returns one result variant; nothing raises across this boundary
except task cancellation.
"""
import logging
from collections.abc import Callable, Mapping
from decimal import Decimal
from typing import Any

from order_api.discount import apply_discount
from order_api.metrics import (
    order_discounts_applied_total,
    order_status_transitions_rejected_total,
    order_status_transitions_total,
    orders_created_total,
    service_unexpected_errors_total,
)
from order_api.models import Customer, Order, OrderStatus, utcnow
from order_api.order_state import is_terminal, transition
from order_api.results import (
    CreateOrderResult,
    GetAllOrdersResult,
    GetOrderResult,
    NotFound,
    Success,
    UnexpectedError,
    UpdateOrderStatusResult,
    ValidationFailure,
)
from order_api.schemas import to_order_response
from order_api.store import ConcurrencyConflictError, Store, StoreError
from order_api.validation import CreateOrderRequest, UpdateOrderStatusRequest, validate

logger = logging.getLogger(__name__)

DiscountPolicy = Callable[[Order, Customer], Decimal]


def unexpected(operation: str, message: str, cause: Exception) -> UnexpectedError:
    """Build an UnexpectedError and record it. Call from inside the except block."""
    logger.exception("%s failed: %s", operation, message)
    service_unexpected_errors_total.labels(operation=operation).inc()
    return UnexpectedError(message, cause)


class OrderService:
    def __init__(self, store: Store, discount: DiscountPolicy = apply_discount):
        if store is None:
            raise ValueError("store is required")
        self._store = store
        self._discount = discount

    async def create_order(self, request: CreateOrderRequest | Mapping[str, Any] | None) -> CreateOrderResult:
        validated = validate(CreateOrderRequest, request)
        if isinstance(validated, ValidationFailure):
            logger.info("Rejected order creation: %s", [e.message for e in validated.errors])
            return validated
        body = validated.data

        try:
            # Orders must be loaded eagerly: the discount rules count the customer's history.
            customer = await self._store.get_customer_by_id(body.customer_id, include_orders=True)
            if customer is None:
                return NotFound(f"Customer with ID '{body.customer_id}' not found.")

            order = Order(
                customer_id=customer.id,
                total_amount=body.total_amount,
                order_date=utcnow(),
                order_status=OrderStatus.PENDING,
                discount_amount=Decimal("0.00"),
            )
            self._discount(order, customer)

            self._store.insert_order(order)
            await self._store.save_changes()
            response = to_order_response(order, customer)
        except StoreError as e:
            return unexpected("create_order", f"A database error occurred while creating the order: {e}", e)
        except Exception as e:
            return unexpected("create_order", f"An unexpected error occurred while creating the order: {e}", e)

        segment = customer.customer_segment.value
        orders_created_total.labels(customer_segment=segment).inc()
        if order.discount_amount > 0:
            order_discounts_applied_total.labels(customer_segment=segment).inc()
        logger.info(
            "Created order id=%s customer_id=%s total=%s discount=%s",
            order.id, order.customer_id, order.total_amount, order.discount_amount,
        )
        return Success(response)

    async def get_order_by_id(self, order_id: int) -> GetOrderResult:
        try:
            order = await self._store.get_order_by_id(order_id, include_customer=True)
            if order is None:
                return NotFound(f"Order with ID '{order_id}' not found.")
            return Success(to_order_response(order))
        except Exception as e:
            # Surfaced verbatim, unlike the other operations; existing clients read this message.
            return unexpected("get_order_by_id", str(e), e)

    async def get_all_orders(self) -> GetAllOrdersResult:
        try:
            orders = await self._store.get_all_orders(include_customer=True)
            return Success([to_order_response(o) for o in orders])
        except StoreError as e:
            return unexpected("get_all_orders", f"A database error occurred while retrieving all orders: {e}", e)
        except Exception as e:
            return unexpected("get_all_orders", f"An unexpected error occurred while retrieving all orders: {e}", e)

    async def update_order_status(
        self, request: UpdateOrderStatusRequest | Mapping[str, Any] | None
    ) -> UpdateOrderStatusResult:
        validated = validate(UpdateOrderStatusRequest, request)
        if isinstance(validated, ValidationFailure):
            logger.info("Rejected status update: %s", [e.message for e in validated.errors])
            return validated
        body = validated.data

        try:
            order = await self._store.get_order_by_id(body.order_id, include_customer=True)
            if order is None:
                return NotFound(f"Order with ID '{body.order_id}' not found.")

            previous_status = order.order_status
            outcome = transition(order, body.new_status)
            if isinstance(outcome, ValidationFailure):
                order_status_transitions_rejected_total.labels(
                    from_status=previous_status.value, to_status=body.new_status.value
                ).inc()
                logger.info(
                    "Rejected transition for order %s (%s%s): %s",
                    order.id,
                    previous_status.value,
                    ", terminal" if is_terminal(previous_status) else "",
                    outcome.errors[0].message,
                )
                return outcome

            await self._store.save_changes()
            response = to_order_response(order)
        except ConcurrencyConflictError as e:
            return unexpected(
                "update_order_status", f"A concurrency error occurred while updating the order status: {e}", e
            )
        except StoreError as e:
            return unexpected(
                "update_order_status", f"A database error occurred while updating the order status: {e}", e
            )
        except Exception as e:
            return unexpected(
                "update_order_status", f"An unexpected error occurred while updating the order status: {e}", e
            )

        order_status_transitions_total.labels(
            from_status=previous_status.value, to_status=order.order_status.value
        ).inc()
        logger.info("Order %s moved %s -> %s", order.id, previous_status.value, order.order_status.value)
        return Success(response)
