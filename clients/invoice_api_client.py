"""
Async HTTP client for the invoicing API.

Used by the status board (and scripts) to talk to a running server. Every
non-2xx response is mapped back onto the typed invoicing exceptions so
callers branch on the same error kinds the server raised:

    400 -> InvoiceValidationError      404 -> InvoiceNotFoundError
    409 -> DuplicateInvoiceNumberError 503 -> BackingStoreUnavailableError
    anything else -> InvoiceAPIError

A 2xx body that does not parse as the expected model is an InvoiceAPIError too.

Network failures (connect errors, timeouts) count as the backing store
being unavailable.
"""

import logging
from datetime import date
from typing import Any
from uuid import UUID

import httpx
from pydantic import BaseModel, ValidationError

from core.exceptions import (
    BackingStoreUnavailableError,
    DuplicateInvoiceNumberError,
    FieldError,
    InvoiceNotFoundError,
    InvoiceValidationError,
    InvoicingError,
)
from core.models import IncomeReport, Invoice, InvoiceFilter, InvoicePage, InvoiceStatus

logger = logging.getLogger(__name__)

SESSION_COOKIE = "session_token"


class InvoiceAPIError(InvoicingError):
    """Unexpected API failure (401, 500, malformed response...)."""

    def __init__(self, status_code: int, code: str | None, message: str):
        self.status_code = status_code
        self.code = code
        super().__init__(message)


def _error_body(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {}
    if not isinstance(body, dict):
        return {}
    return body.get("error") or {}


class InvoiceAPIClient:
    """
    Usage:
        async with InvoiceAPIClient("http://localhost:8000") as api:
            await api.login("demo", "demo")
            page = await api.list_invoices(InvoiceFilter(status=InvoiceStatus.PENDING))
    """

    def __init__(
        self,
        base_url: str,
        session_token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)
        if session_token:
            self._client.cookies.set(SESSION_COOKIE, session_token)

    async def __aenter__(self) -> "InvoiceAPIClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        model: type[BaseModel] | None = None,
        invoice_id: UUID | None = None,
        invoice_number: str | None = None,
        **kwargs: Any,
    ) -> Any:
        """
        Send request, return the envelope's data or raise the mapped error.

        With a model, the data is parsed into it and a body that does not fit
        raises InvoiceAPIError.
        """
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            logger.warning("Invoicing API unreachable: %s %s (%s)", method, path, e)
            raise BackingStoreUnavailableError(f"Could not reach the invoicing API: {e}") from e

        if response.is_success:
            try:
                data = response.json()["data"]
            except (ValueError, KeyError, TypeError) as e:
                raise InvoiceAPIError(response.status_code, None, "Invalid response from API") from e
            if model is None:
                return data
            try:
                return model.model_validate(data)
            except ValidationError as e:
                logger.warning("Unexpected %s body from %s %s: %s", model.__name__, method, path, e)
                raise InvoiceAPIError(
                    response.status_code, None, f"Invalid {model.__name__} in API response"
                ) from e

        error = _error_body(response)
        message = error.get("message") or f"HTTP {response.status_code}"
        status = response.status_code

        if status == 400:
            details = error.get("details") or [{"field": "body", "message": message}]
            raise InvoiceValidationError(
                [FieldError(field=d["field"], message=d["message"]) for d in details]
            )
        if status == 404:
            raise InvoiceNotFoundError(invoice_id if invoice_id is not None else path)
        if status == 409:
            raise DuplicateInvoiceNumberError(invoice_number or "")
        if status == 503:
            raise BackingStoreUnavailableError(message)
        raise InvoiceAPIError(status, error.get("code"), message)

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    async def login(self, username: str, password: str) -> None:
        """Log in with the demo credential and keep the session cookie."""
        try:
            response = await self._client.post(
                "/auth/login", json={"username": username, "password": password}
            )
        except httpx.TransportError as e:
            raise BackingStoreUnavailableError(f"Could not reach the invoicing API: {e}") from e

        if not response.is_success:
            error = _error_body(response)
            raise InvoiceAPIError(
                response.status_code, error.get("code"), error.get("message") or "Login failed"
            )

        token = response.cookies.get(SESSION_COOKIE)
        if token:
            self._client.cookies.set(SESSION_COOKIE, token)

    async def logout(self) -> None:
        await self._request("POST", "/auth/logout")
        self._client.cookies.delete(SESSION_COOKIE)

    # ------------------------------------------------------------------
    # Invoices
    # ------------------------------------------------------------------

    async def create_invoice(self, payload: dict) -> Invoice:
        return await self._request(
            "POST", "/api/invoices", Invoice,
            invoice_number=payload.get("invoice_number"),
            json=payload,
        )

    async def get_invoice(self, invoice_id: UUID) -> Invoice:
        return await self._request(
            "GET", f"/api/invoices/{invoice_id}", Invoice, invoice_id=invoice_id
        )

    async def list_invoices(
        self,
        filters: InvoiceFilter | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> InvoicePage:
        params = filters.model_dump(mode="json", exclude_none=True) if filters else {}
        if page is not None:
            params["page"] = page
        if limit is not None:
            params["limit"] = limit
        return await self._request("GET", "/api/invoices", InvoicePage, params=params)

    async def update_invoice(self, invoice_id: UUID, payload: dict) -> Invoice:
        return await self._request(
            "PUT", f"/api/invoices/{invoice_id}", Invoice,
            invoice_id=invoice_id,
            invoice_number=payload.get("invoice_number"),
            json=payload,
        )

    async def update_invoice_status(self, invoice_id: UUID, status: InvoiceStatus) -> Invoice:
        """Status-only update; the body is exactly {"status": ...}."""
        return await self._request(
            "PATCH", f"/api/invoices/{invoice_id}", Invoice,
            invoice_id=invoice_id,
            json={"status": InvoiceStatus(status).value},
        )

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    async def get_income_report(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> IncomeReport:
        params = {}
        if start_date is not None:
            params["start_date"] = start_date.isoformat()
        if end_date is not None:
            params["end_date"] = end_date.isoformat()
        return await self._request("GET", "/api/reports/income", IncomeReport, params=params)
