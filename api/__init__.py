"""API modules for HTTP interface."""

from api.base import (
    APIError,
    APIFieldError,
    APIMeta,
    APIResponse,
    success_response,
    error_response,
    ErrorCodes,
)
