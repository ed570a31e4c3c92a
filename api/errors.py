"""Global exception handlers for FastAPI."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from starlette.responses import JSONResponse

from api.base import APIFieldError, ErrorCodes, error_response
from core.exceptions import (
    BackingStoreUnavailableError,
    DuplicateInvoiceNumberError,
    InvoiceNotFoundError,
    InvoiceValidationError,
)
from core.validation import field_errors

logger = logging.getLogger(__name__)


def _json_error(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: list[APIFieldError] | None = None,
) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    return JSONResponse(
        status_code=status_code,
        content=error_response(code, message, details, request_id).model_dump(mode="json"),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(InvoiceValidationError)
    async def invoice_validation_handler(request: Request, exc: InvoiceValidationError):
        return _json_error(
            request, 400, ErrorCodes.VALIDATION_ERROR,
            "Validation failed",
            [APIFieldError(field=e.field, message=e.message) for e in exc.errors],
        )

    @app.exception_handler(InvoiceNotFoundError)
    async def not_found_handler(request: Request, exc: InvoiceNotFoundError):
        return _json_error(request, 404, ErrorCodes.NOT_FOUND, str(exc))

    @app.exception_handler(DuplicateInvoiceNumberError)
    async def duplicate_handler(request: Request, exc: DuplicateInvoiceNumberError):
        return _json_error(
            request, 409, ErrorCodes.ALREADY_EXISTS, str(exc),
            [APIFieldError(field="invoice_number", message=str(exc))],
        )

    @app.exception_handler(BackingStoreUnavailableError)
    async def unavailable_handler(request: Request, exc: BackingStoreUnavailableError):
        logger.error("Backing store unavailable on %s: %s", request.url.path, exc)
        return _json_error(
            request, 503, ErrorCodes.SERVICE_UNAVAILABLE,
            "Service temporarily unavailable. Please try again.",
        )

    @app.exception_handler(ValidationError)
    async def model_error_handler(request: Request, exc: ValidationError):
        # Request bodies fail as RequestValidationError; this is data we produced or stored
        logger.exception("Model validation failed on %s", request.url.path)
        return _json_error(
            request, 500, ErrorCodes.INTERNAL_ERROR, "An internal error occurred",
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return _json_error(request, 400, ErrorCodes.INVALID_REQUEST, str(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = []
        for error in field_errors(exc):
            # Drop the leading 'body'/'query'/'path' segment
            field = error.field.split(".", 1)[-1]
            details.append(APIFieldError(field=field, message=error.message))
        return _json_error(
            request, 400, ErrorCodes.VALIDATION_ERROR, "Validation failed", details,
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return _json_error(
            request, 500, ErrorCodes.INTERNAL_ERROR, "An internal error occurred",
        )
