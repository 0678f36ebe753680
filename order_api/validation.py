"""
Request models and the validator that turns pydantic errors into a ValidationFailure.
Every failing field is reported; validation never stops at the first error.
"""
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, ClassVar, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from order_api.models import OrderStatus
from order_api.results import Success, ValidationError, ValidationFailure, ValidationResult

RequestT = TypeVar("RequestT", bound="RequestModel")


class RequestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    # field name -> {"required": message when absent/null, "<pydantic error type>": specific message,
    #                "invalid": message for any other failure}
    error_messages: ClassVar[dict[str, dict[str, str]]] = {}


class CreateOrderRequest(RequestModel):
    customer_id: int = Field(..., alias="customerId", gt=0, description="Customer placing the order")
    total_amount: Decimal = Field(
        ...,
        alias="totalAmount",
        ge=Decimal("0.01"),
        max_digits=18,
        decimal_places=2,
        description="Order total before discount",
    )

    error_messages: ClassVar[dict[str, dict[str, str]]] = {
        "customer_id": {
            "required": "Customer ID is required.",
            "invalid": "Customer ID must be a positive integer.",
        },
        "total_amount": {
            "required": "Total amount is required.",
            "invalid": "Total amount must be greater than zero.",
            "decimal_max_places": "Total amount cannot have more than 2 decimal places.",
            "decimal_max_digits": "Total amount is too large.",
            "decimal_whole_digits": "Total amount is too large.",
        },
    }


class UpdateOrderStatusRequest(RequestModel):
    order_id: int = Field(..., alias="orderId", gt=0, description="Order to update")
    new_status: OrderStatus = Field(..., alias="newStatus", description="Target status")

    error_messages: ClassVar[dict[str, dict[str, str]]] = {
        "order_id": {
            "required": "Order ID is required.",
            "invalid": "Order ID must be a positive integer.",
        },
        "new_status": {
            "required": "New status is required.",
            "invalid": "Invalid order status value.",
        },
    }


def _field_name(model_cls: type[RequestModel], loc_head: Any) -> str | None:
    """Resolve a pydantic error location (alias or attribute name) to the attribute name."""
    if loc_head in model_cls.model_fields:
        return loc_head
    for name, info in model_cls.model_fields.items():
        if info.alias == loc_head:
            return name
    return None


def _to_validation_error(model_cls: type[RequestModel], err: dict[str, Any]) -> ValidationError:
    loc = err.get("loc") or ()
    name = _field_name(model_cls, loc[0]) if loc else None
    if name is None:
        return ValidationError(err.get("msg") or "Validation error", tuple(str(p) for p in loc))

    member = model_cls.model_fields[name].alias or name
    messages = model_cls.error_messages.get(name, {})
    required = err.get("type") == "missing" or err.get("input", ...) is None
    key = "required" if required else err.get("type")
    message = messages.get(key) or messages.get("invalid") or err.get("msg") or "Validation error"
    return ValidationError(message, (member,))


def validate(
    model_cls: type[RequestT],
    data: Mapping[str, Any] | BaseModel | None,
) -> ValidationResult:
    """Validate data against model_cls. Returns Success(model) or every violation found."""
    if data is None:
        return ValidationFailure.single(f"{model_cls.__name__} cannot be null")

    if isinstance(data, BaseModel):
        # Re-check instances too: model_construct() skips validation.
        data = data.model_dump(by_alias=True)

    try:
        return Success(model_cls.model_validate(data))
    except PydanticValidationError as e:
        errors: list[ValidationError] = []
        for err in e.errors():
            error = _to_validation_error(model_cls, err)
            if error not in errors:
                errors.append(error)
        return ValidationFailure(errors=tuple(errors))
