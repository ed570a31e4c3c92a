"""Invoice domain models.

Money is Decimal end to end (NUMERIC in PostgreSQL, strings inside JSONB)
so totals never pick up binary float rounding.

Totals are not stored and not attached to the models; see core.totals.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator


class InvoiceStatus(str, Enum):
    """
    Invoice lifecycle status.

    No transition graph: any status may move to any other,
    including back out of Completed or Cancelled.
    """

    PENDING = "Pending"
    IN_PROCESS = "In Process"
    HOLD = "Hold"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"


class InvoiceItem(BaseModel):
    """One billed line. Color is display-only."""

    description: str = Field(..., min_length=1, max_length=500)
    quantity: Decimal = Field(..., ge=1)
    price: Decimal = Field(..., ge=Decimal("0.01"))
    color: str | None = Field(None, max_length=32)

    model_config = {"str_strip_whitespace": True}


class InvoiceCreate(BaseModel):
    """Data required to create an invoice. Also the shape of a full update."""

    invoice_number: str = Field(..., min_length=1, max_length=100)
    customer_name: str = Field(..., min_length=1, max_length=200)
    customer_email: EmailStr | None = None
    customer_address: str | None = Field(None, max_length=1000)
    invoice_date: date
    due_date: date
    items: list[InvoiceItem] = Field(..., min_length=1)
    notes: str | None = Field(None, max_length=2000)
    paid_amount: Decimal = Field(Decimal("0"), ge=0)
    status: InvoiceStatus = InvoiceStatus.PENDING

    model_config = {"str_strip_whitespace": True}

    @field_validator("customer_email", "customer_address", "notes", mode="before")
    @classmethod
    def blank_is_absent(cls, value):
        """Forms submit empty strings for untouched optional fields."""
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("paid_amount", mode="before")
    @classmethod
    def missing_paid_amount_is_zero(cls, value):
        if value is None or value == "":
            return Decimal("0")
        return value


# Fields a full or partial update may touch. id and timestamps are owned by the store.
EDITABLE_FIELDS = frozenset(InvoiceCreate.model_fields)


class Invoice(BaseModel):
    """Full invoice entity as stored."""

    id: UUID
    invoice_number: str
    customer_name: str
    customer_email: str | None
    customer_address: str | None
    invoice_date: date
    due_date: date
    items: list[InvoiceItem]
    notes: str | None
    paid_amount: Decimal
    status: InvoiceStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class InvoiceFilter(BaseModel):
    """List filter. All criteria optional and combined with AND."""

    customer_name: str | None = Field(None, max_length=200)
    status: InvoiceStatus | None = None
    due_date_start: date | None = None
    due_date_end: date | None = None


class Pagination(BaseModel):
    """Paging block returned alongside a paged invoice list."""

    current_page: int
    total_pages: int
    total_invoices: int
    limit: int


class InvoicePage(BaseModel):
    """Result of a list query. pagination is None when paging was not requested."""

    invoices: list[Invoice]
    pagination: Pagination | None = None
