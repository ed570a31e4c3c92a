"""Invoice routes: /api/invoices."""

from datetime import date
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, Query, Request
from pydantic import BaseModel

from api.base import success_response
from core.board import group_by_column
from core.exceptions import InvoiceNotFoundError
from core.models import Invoice, InvoiceFilter, InvoiceStatus
from core.totals import invoice_totals
from utils.timezone import today_in


class StatusUpdateRequest(BaseModel):
    status: str


def serialize_invoice(invoice: Invoice) -> dict:
    """Invoice as JSON with derived totals attached."""
    data = invoice.model_dump(mode="json")
    totals = invoice_totals(invoice)
    data["total_amount"] = str(totals.total_amount)
    data["total_due"] = str(totals.total_due)
    return data


def create_invoices_router(services: dict) -> APIRouter:
    router = APIRouter(tags=["invoices"])

    invoice_svc = services["invoice"]

    def _ok(request: Request, data: Any) -> dict:
        request_id = getattr(request.state, "request_id", None)
        return success_response(data, request_id).model_dump(mode="json")

    @router.post("/invoices", status_code=201)
    async def create_invoice(request: Request, payload: dict = Body(...)):
        invoice = invoice_svc.create(payload)
        return _ok(request, serialize_invoice(invoice))

    @router.get("/invoices")
    async def list_invoices(
        request: Request,
        customer_name: str | None = Query(None, max_length=200),
        status: InvoiceStatus | None = Query(None),
        due_date_start: date | None = Query(None),
        due_date_end: date | None = Query(None),
        page: int | None = Query(None, ge=1),
        limit: int | None = Query(None, ge=1),
    ):
        filters = InvoiceFilter(
            customer_name=customer_name or None,
            status=status,
            due_date_start=due_date_start,
            due_date_end=due_date_end,
        )
        result = invoice_svc.list_invoices(filters, page=page, limit=limit)
        return _ok(request, {
            "invoices": [serialize_invoice(i) for i in result.invoices],
            "pagination": result.pagination.model_dump() if result.pagination else None,
        })

    # -------------------------------------------------------------------------
    # Fixed paths (must be registered before /invoices/{invoice_id})
    # -------------------------------------------------------------------------

    @router.get("/invoices/board")
    async def board_columns(request: Request):
        today = today_in(invoice_svc.config.timezone)
        columns = group_by_column(invoice_svc.list_for_board(), today)
        return _ok(request, {
            "date": today.isoformat(),
            "columns": [
                {"name": name, "invoices": [serialize_invoice(i) for i in invoices]}
                for name, invoices in columns.items()
            ],
        })

    @router.get("/invoices/next-number")
    async def next_invoice_number(request: Request):
        return _ok(request, {"invoice_number": invoice_svc.suggest_invoice_number()})

    # -------------------------------------------------------------------------
    # Single invoice
    # -------------------------------------------------------------------------

    @router.get("/invoices/{invoice_id}")
    async def get_invoice(request: Request, invoice_id: UUID):
        invoice = invoice_svc.get_by_id(invoice_id)
        if invoice is None:
            raise InvoiceNotFoundError(invoice_id)
        return _ok(request, serialize_invoice(invoice))

    @router.put("/invoices/{invoice_id}")
    async def update_invoice(request: Request, invoice_id: UUID, payload: dict = Body(...)):
        invoice = invoice_svc.update(invoice_id, payload)
        return _ok(request, serialize_invoice(invoice))

    @router.patch("/invoices/{invoice_id}")
    async def update_invoice_status(
        request: Request, invoice_id: UUID, body: StatusUpdateRequest
    ):
        invoice = invoice_svc.update_status(invoice_id, body.status)
        return _ok(request, serialize_invoice(invoice))

    @router.get("/invoices/{invoice_id}/history")
    async def invoice_history(request: Request, invoice_id: UUID):
        return _ok(request, invoice_svc.get_history(invoice_id))

    return router
