"""
Invoice persistence over PostgreSQL.

The repository owns the SQL and nothing else: callers hand it validated
models and get models back. Client-level failures are translated here into
the invoicing exceptions the rest of the application understands.
"""

import logging
import math
from contextlib import contextmanager
from datetime import date
from typing import Any
from uuid import UUID, uuid4

from psycopg2.extras import Json

from clients.postgres_client import DatabaseUnavailableError, DuplicateKeyError, PostgresClient
from core.exceptions import BackingStoreUnavailableError, DuplicateInvoiceNumberError
from core.models import (
    Invoice,
    InvoiceCreate,
    InvoiceFilter,
    InvoicePage,
    InvoiceStatus,
    Pagination,
)
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, invoice_number, customer_name, customer_email, customer_address, "
    "invoice_date, due_date, items, notes, paid_amount, status, created_at, updated_at"
)


def _escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _items_json(data: InvoiceCreate) -> Json:
    return Json([item.model_dump(mode="json") for item in data.items])


@contextmanager
def _store_errors(invoice_number: str | None = None):
    """Translate client errors raised inside the block."""
    try:
        yield
    except DuplicateKeyError as e:
        logger.info("Duplicate invoice number rejected: %s", invoice_number)
        raise DuplicateInvoiceNumberError(invoice_number or "") from e
    except DatabaseUnavailableError as e:
        raise BackingStoreUnavailableError(str(e)) from e


class InvoiceRepository:
    """
    CRUD and queries for the invoices table.

    Usage:
        repo = InvoiceRepository(PostgresClient(database_url))
        invoice = repo.create(validated)
        page = repo.list_invoices(InvoiceFilter(status=InvoiceStatus.PENDING), page=1, limit=20)
    """

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    @contextmanager
    def transaction(self):
        """
        Commit every statement in the block together, invoice writes and
        their audit entries alike. Client errors raised anywhere inside are
        translated, so a lost connection surfaces as BackingStoreUnavailableError.
        """
        with _store_errors(), self.postgres.transaction():
            yield

    def create(self, data: InvoiceCreate) -> Invoice:
        """
        Insert a new invoice. The repository assigns id and timestamps.

        Raises:
            DuplicateInvoiceNumberError: invoice_number already used
            BackingStoreUnavailableError: database unreachable
        """
        now = now_utc()
        with _store_errors(data.invoice_number):
            row = self.postgres.execute_returning(
                f"""
                INSERT INTO invoices (
                    id, invoice_number, customer_name, customer_email, customer_address,
                    invoice_date, due_date, items, notes, paid_amount, status,
                    created_at, updated_at
                ) VALUES (
                    %s, %s, %s, %s, %s,
                    %s, %s, %s, %s, %s, %s,
                    %s, %s
                )
                RETURNING {_COLUMNS}
                """,
                (
                    uuid4(), data.invoice_number, data.customer_name,
                    data.customer_email, data.customer_address,
                    data.invoice_date, data.due_date, _items_json(data),
                    data.notes, data.paid_amount, data.status.value,
                    now, now,
                )
            )[0]
        return Invoice.model_validate(row)

    def get(self, invoice_id: UUID) -> Invoice | None:
        with _store_errors():
            row = self.postgres.execute_single(
                f"SELECT {_COLUMNS} FROM invoices WHERE id = %s",
                (invoice_id,)
            )
        return Invoice.model_validate(row) if row else None

    def list_invoices(
        self,
        filters: InvoiceFilter | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> InvoicePage:
        """
        List invoices matching every given criterion, newest invoice_date first.

        Paging applies only when both page and limit are given; otherwise
        all matches are returned and pagination is None.
        """
        filters = filters or InvoiceFilter()
        conditions: list[str] = []
        params: list[Any] = []

        if filters.customer_name:
            conditions.append("customer_name ILIKE %s")
            params.append(f"%{_escape_like(filters.customer_name)}%")
        if filters.status is not None:
            conditions.append("status = %s")
            params.append(filters.status.value)
        if filters.due_date_start is not None:
            conditions.append("due_date >= %s")
            params.append(filters.due_date_start)
        if filters.due_date_end is not None:
            # DATE column, so <= covers the whole end day
            conditions.append("due_date <= %s")
            params.append(filters.due_date_end)

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        query = f"SELECT {_COLUMNS} FROM invoices {where} ORDER BY invoice_date DESC, created_at DESC"

        with _store_errors():
            if page is None or limit is None:
                rows = self.postgres.execute(query, tuple(params))
                return InvoicePage(invoices=[Invoice.model_validate(r) for r in rows])

            total = self.postgres.execute_scalar(
                f"SELECT COUNT(*) FROM invoices {where}", tuple(params)
            ) or 0
            rows = self.postgres.execute(
                f"{query} LIMIT %s OFFSET %s",
                tuple(params) + (limit, (page - 1) * limit)
            )

        return InvoicePage(
            invoices=[Invoice.model_validate(r) for r in rows],
            pagination=Pagination(
                current_page=page,
                total_pages=math.ceil(total / limit),
                total_invoices=total,
                limit=limit,
            ),
        )

    def update(self, invoice_id: UUID, data: InvoiceCreate) -> Invoice | None:
        """Replace every editable field. Returns None if the invoice does not exist."""
        with _store_errors(data.invoice_number):
            rows = self.postgres.execute_returning(
                f"""
                UPDATE invoices SET
                    invoice_number = %s, customer_name = %s, customer_email = %s,
                    customer_address = %s, invoice_date = %s, due_date = %s,
                    items = %s, notes = %s, paid_amount = %s, status = %s,
                    updated_at = %s
                WHERE id = %s
                RETURNING {_COLUMNS}
                """,
                (
                    data.invoice_number, data.customer_name, data.customer_email,
                    data.customer_address, data.invoice_date, data.due_date,
                    _items_json(data), data.notes, data.paid_amount, data.status.value,
                    now_utc(),
                    invoice_id,
                )
            )
        return Invoice.model_validate(rows[0]) if rows else None

    def update_status(self, invoice_id: UUID, status: InvoiceStatus) -> Invoice | None:
        """Set only the status. Returns None if the invoice does not exist."""
        with _store_errors():
            rows = self.postgres.execute_returning(
                f"""
                UPDATE invoices SET status = %s, updated_at = %s
                WHERE id = %s
                RETURNING {_COLUMNS}
                """,
                (status.value, now_utc(), invoice_id)
            )
        return Invoice.model_validate(rows[0]) if rows else None

    def list_between(self, start: date, end: date) -> list[Invoice]:
        """Invoices of any status whose invoice_date falls in [start, end]."""
        with _store_errors():
            rows = self.postgres.execute(
                f"""
                SELECT {_COLUMNS} FROM invoices
                WHERE invoice_date >= %s AND invoice_date <= %s
                ORDER BY invoice_date
                """,
                (start, end)
            )
        return [Invoice.model_validate(r) for r in rows]

    def latest_invoice_number(self, prefix: str) -> str | None:
        """Highest invoice number starting with prefix, or None."""
        with _store_errors():
            return self.postgres.execute_scalar(
                """
                SELECT invoice_number FROM invoices
                WHERE invoice_number LIKE %s
                ORDER BY invoice_number DESC
                LIMIT 1
                """,
                (f"{_escape_like(prefix)}%",)
            )
