"""API error taxonomy and FastAPI exception handlers.

Every error response is JSON: ``{"error": ...}`` for not-found, business-rule
and server failures, ``{"message": ..., "errors": {field: [msgs]}}`` for
validation failures. Internal details never cross the API boundary.
"""
import logging
from typing import Any, Mapping

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Failed to process request"


class ApiError(Exception):
    """Base class for errors that map directly onto an API response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = GENERIC_FAILURE_MESSAGE

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_content(self) -> dict[str, Any]:
        return {"error": self.message}

    def to_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.to_content())


class NotFound(ApiError):
    """Referenced region/project/pin does not exist."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str = "Resource"):
        self.resource = resource
        super().__init__(f"{resource} not found")


class ValidationFailed(ApiError):
    """Input failed field rules; carries the full field-error map."""

    status_code = 422
    message = "Validation failed"

    def __init__(self, errors: Mapping[str, list[str]]):
        self.errors = {field: list(messages) for field, messages in errors.items()}
        super().__init__()

    def to_content(self) -> dict[str, Any]:
        return {"message": self.message, "errors": self.errors}


class BusinessRuleViolation(ApiError):
    """Request is well formed but breaks a business rule."""

    status_code = status.HTTP_400_BAD_REQUEST


class TransientStoreFailure(ApiError):
    """Transient data-store failure that outlived the retry budget."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Database transaction failed. Please try again."

    def __init__(self, operation: str, attempts: int):
        self.operation = operation
        self.attempts = attempts
        super().__init__()


def _field_name(loc: tuple) -> str:
    # ("body", "latitude") -> "latitude"; ("path", "region_id") -> "region_id"
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) if parts else "body"


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return exc.to_response()


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        field = _field_name(tuple(error.get("loc", ())))
        if error.get("type") == "missing" and field == "body":
            message = "Request body is required."
        else:
            message = f"The {field} field is invalid."
        errors.setdefault(field, []).append(message)
    return ValidationFailed(errors).to_response()


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": GENERIC_FAILURE_MESSAGE},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
