from typing import assert_never

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from order_api.dependencies import get_analytics_service
from order_api.results import Success, UnexpectedError
from order_api.routes.responses import problem
from order_api.services.analytics import AnalyticsService

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/orders")
async def order_analytics(service: AnalyticsService = Depends(get_analytics_service)) -> JSONResponse:
    """Order count, average final amount, pending/delivered counts and average fulfillment time."""
    result = await service.get_order_analytics()
    match result:
        case Success(data=analytics):
            return JSONResponse(status_code=200, content=analytics.to_json())
        case UnexpectedError():
            return problem(result)
        case _:
            assert_never(result)
