"""
Result variant -> HTTP response translation shared by the routers.
"""
from fastapi.responses import JSONResponse

from order_api.results import NotFound, UnexpectedError, ValidationFailure


def validation_problem(failure: ValidationFailure) -> JSONResponse:
    errors: dict[str, list[str]] = {}
    for error in failure.errors:
        errors.setdefault(", ".join(error.member_names), []).append(error.message)
    return JSONResponse(
        status_code=400,
        content={
            "title": "One or more validation errors occurred.",
            "status": 400,
            "errors": errors,
        },
    )


def not_found(result: NotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content=result.message)


def problem(result: UnexpectedError) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={
            "title": "An error occurred while processing your request.",
            "status": 500,
            "detail": result.message,
        },
    )
