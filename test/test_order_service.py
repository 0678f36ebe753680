"""
Tests for the order workflow service, against the in-memory store and against
store doubles that fail in specific ways.
"""
import logging
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import delivered_order, make_order

from order_api.models import Customer, CustomerSegment, OrderStatus
from order_api.results import NotFound, Success, UnexpectedError, ValidationFailure
from order_api.services.orders import OrderService
from order_api.store import ConcurrencyConflictError, InMemoryStore, StoreError


def failing_store(**overrides) -> MagicMock:
    store = MagicMock()
    store.get_customer_by_id = AsyncMock(
        return_value=Customer(id=1, name="Test Customer", customer_segment=CustomerSegment.NEW)
    )
    store.get_order_by_id = AsyncMock(return_value=None)
    store.get_all_orders = AsyncMock(return_value=[])
    store.save_changes = AsyncMock(return_value=1)
    for name, value in overrides.items():
        setattr(store, name, value)
    return store


class TestCreateOrder:
    @pytest.mark.asyncio
    async def test_creates_pending_order_with_first_order_discount(self, database, store):
        result = await OrderService(store).create_order({"customerId": 1, "totalAmount": 200})

        assert isinstance(result, Success)
        order = result.data
        assert order.id is not None
        assert order.order_status is OrderStatus.PENDING
        assert order.discount_amount == Decimal("20.00")
        assert order.final_amount == Decimal("180.00")
        assert order.customer_name == "New Customer"
        assert order.customer_segment is CustomerSegment.NEW
        assert order.delivered_date is None
        assert database.orders[order.id].discount_amount == Decimal("20.00")

    @pytest.mark.asyncio
    async def test_second_order_of_new_customer_has_no_discount(self, store):
        service = OrderService(store)
        await service.create_order({"customerId": 1, "totalAmount": 50})
        result = await service.create_order({"customerId": 1, "totalAmount": 50})
        assert result.data.discount_amount == Decimal("0")

    @pytest.mark.asyncio
    async def test_loyal_customer_history_is_loaded_for_discount(self, database, store):
        for _ in range(5):
            database.add_order(delivered_order(customer_id=2))
        result = await OrderService(store).create_order({"customerId": 2, "totalAmount": "100.00"})
        assert result.data.discount_amount == Decimal("5.00")

    @pytest.mark.asyncio
    async def test_invalid_request_returns_every_error(self, store):
        result = await OrderService(store).create_order({"customerId": 0, "totalAmount": 0})
        assert isinstance(result, ValidationFailure)
        members = {e.member_names for e in result.errors}
        assert members == {("customerId",), ("totalAmount",)}
        assert any("greater than zero" in e.message for e in result.errors)

    @pytest.mark.parametrize("total", ["0.001", "1e20"])
    @pytest.mark.asyncio
    async def test_unstorable_total_is_rejected_before_saving(self, total):
        store = failing_store()
        result = await OrderService(store).create_order({"customerId": 1, "totalAmount": total})
        assert isinstance(result, ValidationFailure)
        assert result.errors[0].member_names == ("totalAmount",)
        store.save_changes.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_customer(self, store):
        result = await OrderService(store).create_order({"customerId": 999, "totalAmount": 10})
        assert isinstance(result, NotFound)
        assert result.message == "Customer with ID '999' not found."

    @pytest.mark.asyncio
    async def test_storage_failure_is_wrapped(self):
        store = failing_store(save_changes=AsyncMock(side_effect=StoreError("Simulated DB error.")))
        result = await OrderService(store).create_order({"customerId": 1, "totalAmount": 10})
        assert isinstance(result, UnexpectedError)
        assert result.message == "A database error occurred while creating the order: Simulated DB error."
        assert isinstance(result.cause, StoreError)

    @pytest.mark.asyncio
    async def test_other_failure_is_wrapped(self):
        store = failing_store(get_customer_by_id=AsyncMock(side_effect=RuntimeError("boom")))
        result = await OrderService(store).create_order({"customerId": 1, "totalAmount": 10})
        assert isinstance(result, UnexpectedError)
        assert result.message.startswith("An unexpected error occurred while creating the order")

    @pytest.mark.asyncio
    async def test_discount_policy_is_injectable(self, store):
        def flat_five(order, customer):
            order.discount_amount = Decimal("5")
            return order.discount_amount

        result = await OrderService(store, discount=flat_five).create_order({"customerId": 3, "totalAmount": 20})
        assert result.data.discount_amount == Decimal("5")


class TestGetOrders:
    @pytest.mark.asyncio
    async def test_get_by_id(self, database, store):
        order = database.add_order(make_order(customer_id=3, total="50.00"))
        result = await OrderService(store).get_order_by_id(order.id)
        assert isinstance(result, Success)
        assert result.data.id == order.id
        assert result.data.customer_name == "Regular Customer"
        assert result.data.customer_segment is CustomerSegment.REGULAR

    @pytest.mark.asyncio
    async def test_get_by_id_not_found(self, store):
        result = await OrderService(store).get_order_by_id(999)
        assert isinstance(result, NotFound)
        assert result.message == "Order with ID '999' not found."

    @pytest.mark.asyncio
    async def test_get_by_id_surfaces_fault_message_verbatim(self):
        store = failing_store(get_order_by_id=AsyncMock(side_effect=StoreError("Simulated DB connection error.")))
        result = await OrderService(store).get_order_by_id(1)
        assert isinstance(result, UnexpectedError)
        assert result.message == "Simulated DB connection error."

    @pytest.mark.asyncio
    async def test_get_all_empty_is_success(self, store):
        result = await OrderService(store).get_all_orders()
        assert result == Success([])

    @pytest.mark.asyncio
    async def test_get_all_maps_customers(self, database, store):
        database.add_order(make_order(customer_id=1))
        database.add_order(make_order(customer_id=2))
        result = await OrderService(store).get_all_orders()
        assert [o.customer_name for o in result.data] == ["New Customer", "Loyal Customer"]

    @pytest.mark.asyncio
    async def test_get_all_storage_failure(self):
        store = failing_store(get_all_orders=AsyncMock(side_effect=StoreError("down")))
        result = await OrderService(store).get_all_orders()
        assert isinstance(result, UnexpectedError)
        assert result.message.startswith("A database error occurred")


class TestUpdateOrderStatus:
    @pytest.mark.asyncio
    async def test_valid_transition_is_persisted(self, database, store):
        order = database.add_order(make_order(customer_id=1))
        result = await OrderService(store).update_order_status({"orderId": order.id, "newStatus": "Processing"})
        assert isinstance(result, Success)
        assert result.data.order_status is OrderStatus.PROCESSING
        assert database.orders[order.id].order_status is OrderStatus.PROCESSING

    @pytest.mark.asyncio
    async def test_delivery_sets_delivered_date(self, database, store):
        order = database.add_order(make_order(customer_id=1, status=OrderStatus.SHIPPED))
        result = await OrderService(store).update_order_status({"orderId": order.id, "newStatus": "Delivered"})
        assert result.data.delivered_date is not None
        assert database.orders[order.id].delivered_date == result.data.delivered_date

    @pytest.mark.asyncio
    async def test_same_status_is_rejected(self, database, store):
        order = database.add_order(make_order(customer_id=1))
        result = await OrderService(store).update_order_status({"orderId": order.id, "newStatus": "Pending"})
        assert isinstance(result, ValidationFailure)
        assert result.errors[0].message == "Order is already in 'Pending' status."

    @pytest.mark.parametrize(
        "current,new",
        [
            (OrderStatus.PROCESSING, "Pending"),
            (OrderStatus.SHIPPED, "Processing"),
            (OrderStatus.DELIVERED, "Pending"),
            (OrderStatus.CANCELLED, "Delivered"),
        ],
    )
    @pytest.mark.asyncio
    async def test_invalid_transition_is_rejected_and_not_saved(self, database, store, current, new):
        order = database.add_order(make_order(customer_id=1, status=current))
        result = await OrderService(store).update_order_status({"orderId": order.id, "newStatus": new})
        assert isinstance(result, ValidationFailure)
        assert result.errors[0].message.startswith("Invalid status transition")
        assert database.orders[order.id].order_status is current

    @pytest.mark.asyncio
    async def test_rejection_from_final_status_is_logged_as_terminal(self, database, store, caplog):
        caplog.set_level(logging.INFO, logger="order_api.services.orders")
        delivered = database.add_order(make_order(customer_id=1, status=OrderStatus.DELIVERED))
        pending = database.add_order(make_order(customer_id=1))

        result = await OrderService(store).update_order_status({"orderId": delivered.id, "newStatus": "Pending"})
        assert isinstance(result, ValidationFailure)
        await OrderService(store).update_order_status({"orderId": pending.id, "newStatus": "Delivered"})

        rejected = [r.getMessage() for r in caplog.records if r.getMessage().startswith("Rejected transition")]
        assert len(rejected) == 2
        assert f"order {delivered.id} (Delivered, terminal)" in rejected[0]
        assert f"order {pending.id} (Pending)" in rejected[1]

    @pytest.mark.asyncio
    async def test_invalid_request(self, store):
        result = await OrderService(store).update_order_status({"orderId": -1, "newStatus": "Nope"})
        assert isinstance(result, ValidationFailure)
        assert len(result.errors) == 2

    @pytest.mark.asyncio
    async def test_unknown_order(self, store):
        result = await OrderService(store).update_order_status({"orderId": 999, "newStatus": "Shipped"})
        assert isinstance(result, NotFound)
        assert result.message == "Order with ID '999' not found."

    @pytest.mark.asyncio
    async def test_concurrent_update_is_reported_as_concurrency_error(self, database):
        order = database.add_order(make_order(customer_id=1))
        first, second = InMemoryStore(database), InMemoryStore(database)
        loaded = await second.get_order_by_id(order.id)

        assert isinstance(
            await OrderService(first).update_order_status({"orderId": order.id, "newStatus": "Processing"}),
            Success,
        )
        # second still holds the copy read before the first update
        second.get_order_by_id = AsyncMock(return_value=loaded)
        result = await OrderService(second).update_order_status({"orderId": order.id, "newStatus": "Cancelled"})

        assert isinstance(result, UnexpectedError)
        assert result.message.startswith("A concurrency error occurred while updating the order status")
        assert database.orders[order.id].order_status is OrderStatus.PROCESSING

    @pytest.mark.parametrize(
        "error,prefix",
        [
            (ConcurrencyConflictError("stale"), "A concurrency error occurred"),
            (StoreError("Simulated DB error."), "A database error occurred"),
            (RuntimeError("boom"), "An unexpected error occurred"),
        ],
    )
    @pytest.mark.asyncio
    async def test_save_failures_are_classified(self, database, error, prefix):
        order = database.add_order(make_order(customer_id=1))
        store = InMemoryStore(database)
        store.save_changes = AsyncMock(side_effect=error)
        result = await OrderService(store).update_order_status({"orderId": order.id, "newStatus": "Processing"})
        assert isinstance(result, UnexpectedError)
        assert result.message.startswith(prefix)
        assert result.cause is error
