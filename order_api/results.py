"""
Outcome variants returned by every service operation.

Services never raise across their boundary: each call returns exactly one of
these. Callers `match` on the value and close the match with `assert_never`
so a new variant in an operation's union shows up as a type error.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeAlias, TypeVar

if TYPE_CHECKING:
    from order_api.schemas import OrderAnalytics, OrderResponse

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    data: T


@dataclass(frozen=True)
class ValidationError:
    message: str
    member_names: tuple[str, ...] = ()


@dataclass(frozen=True)
class ValidationFailure:
    errors: tuple[ValidationError, ...]

    @classmethod
    def single(cls, message: str, *member_names: str) -> ValidationFailure:
        return cls(errors=(ValidationError(message, tuple(member_names)),))


@dataclass(frozen=True)
class NotFound:
    message: str


@dataclass(frozen=True)
class Unauthorized:
    message: str
    required_role: str | None = None


@dataclass(frozen=True)
class UnexpectedError:
    message: str
    cause: BaseException | None = field(default=None, compare=False)


@dataclass(frozen=True)
class AlreadyExists:
    message: str


@dataclass(frozen=True)
class InUse:
    message: str
    referencing_entities: tuple[str, ...] | None = None


ValidationResult: TypeAlias = "Success[Any] | ValidationFailure"
CreateOrderResult: TypeAlias = "Success[OrderResponse] | ValidationFailure | NotFound | UnexpectedError"
GetOrderResult: TypeAlias = "Success[OrderResponse] | NotFound | UnexpectedError"
GetAllOrdersResult: TypeAlias = "Success[list[OrderResponse]] | UnexpectedError"
UpdateOrderStatusResult: TypeAlias = "Success[OrderResponse] | ValidationFailure | NotFound | UnexpectedError"
AnalyticsResult: TypeAlias = "Success[OrderAnalytics] | UnexpectedError"
