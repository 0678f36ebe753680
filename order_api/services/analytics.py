from decimal import Decimal

from order_api.models import OrderStatus
from order_api.results import AnalyticsResult, Success
from order_api.schemas import OrderAnalytics
from order_api.services.orders import unexpected
from order_api.store import Store

SECONDS_PER_HOUR = 3600


class AnalyticsService:
    def __init__(self, store: Store):
        if store is None:
            raise ValueError("store is required")
        self._store = store

    async def get_order_analytics(self) -> AnalyticsResult:
        """Summary figures over every order. All or nothing: no partial aggregates."""
        try:
            orders = await self._store.get_all_orders()

            total_orders = len(orders)
            average_order_value = (
                sum((o.final_amount for o in orders), Decimal("0")) / total_orders if total_orders else Decimal("0")
            )

            delivered = [
                o for o in orders
                if o.order_status is OrderStatus.DELIVERED and o.delivered_date is not None
            ]
            average_fulfillment_hours = 0.0
            if delivered:
                average_fulfillment_hours = sum(
                    (o.delivered_date - o.order_date).total_seconds() / SECONDS_PER_HOUR for o in delivered
                ) / len(delivered)

            return Success(
                OrderAnalytics(
                    average_order_value=average_order_value,
                    average_fulfillment_time_in_hours=average_fulfillment_hours,
                    total_orders=total_orders,
                    total_pending_orders=sum(1 for o in orders if o.order_status is OrderStatus.PENDING),
                    total_delivered_orders=len(delivered),
                )
            )
        except Exception as e:
            return unexpected(
                "get_order_analytics",
                f"An unexpected error occurred while retrieving order analytics: {e}",
                e,
            )
