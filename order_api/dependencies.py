from fastapi import Depends, Request

from order_api.services.analytics import AnalyticsService
from order_api.services.orders import OrderService
from order_api.store import Store


def get_store(request: Request) -> Store:
    """One unit of work per request, built by the factory installed at startup."""
    return request.app.state.store_factory()


def get_order_service(store: Store = Depends(get_store)) -> OrderService:
    return OrderService(store)


def get_analytics_service(store: Store = Depends(get_store)) -> AnalyticsService:
    return AnalyticsService(store)
