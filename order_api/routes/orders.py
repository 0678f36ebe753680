from typing import Any, assert_never

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from order_api.dependencies import get_order_service
from order_api.results import NotFound, Success, UnexpectedError, ValidationFailure
from order_api.routes.responses import not_found, problem, validation_problem
from order_api.services.orders import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("")
async def create_order(
    payload: Any = Body(default=None, description="{customerId, totalAmount}"),
    service: OrderService = Depends(get_order_service),
) -> JSONResponse:
    """
    Place an order. The discount is computed from the customer's segment and history.
    201 with the order and a Location header; 400 on invalid input; 404 for an unknown customer.
    """
    result = await service.create_order(payload)
    match result:
        case Success(data=order):
            return JSONResponse(
                status_code=201,
                content=order.to_json(),
                headers={"Location": f"/orders/{order.id}"},
            )
        case ValidationFailure():
            return validation_problem(result)
        case NotFound():
            return not_found(result)
        case UnexpectedError():
            return problem(result)
        case _:
            assert_never(result)


@router.get("")
async def get_all_orders(service: OrderService = Depends(get_order_service)) -> JSONResponse:
    result = await service.get_all_orders()
    match result:
        case Success(data=orders):
            return JSONResponse(status_code=200, content=[o.to_json() for o in orders])
        case UnexpectedError():
            return problem(result)
        case _:
            assert_never(result)


@router.put("/status")
async def update_order_status(
    payload: Any = Body(default=None, description="{orderId, newStatus}"),
    service: OrderService = Depends(get_order_service),
) -> JSONResponse:
    """Move an order along its lifecycle. Invalid or no-op transitions are 400."""
    result = await service.update_order_status(payload)
    match result:
        case Success(data=order):
            return JSONResponse(status_code=200, content=order.to_json())
        case ValidationFailure():
            return validation_problem(result)
        case NotFound():
            return not_found(result)
        case UnexpectedError():
            return problem(result)
        case _:
            assert_never(result)


@router.get("/{order_id}")
async def get_order_by_id(order_id: int, service: OrderService = Depends(get_order_service)) -> JSONResponse:
    result = await service.get_order_by_id(order_id)
    match result:
        case Success(data=order):
            return JSONResponse(status_code=200, content=order.to_json())
        case NotFound():
            return not_found(result)
        case UnexpectedError():
            return problem(result)
        case _:
            assert_never(result)
