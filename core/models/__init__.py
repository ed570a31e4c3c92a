"""Core domain models."""

from core.models.invoice import (
    EDITABLE_FIELDS,
    Invoice,
    InvoiceCreate,
    InvoiceFilter,
    InvoiceItem,
    InvoicePage,
    InvoiceStatus,
    Pagination,
)
from core.models.report import IncomeReport, MonthlyIncome, ReportRange

__all__ = [
    # Invoice
    "Invoice", "InvoiceCreate", "InvoiceItem", "InvoiceStatus", "EDITABLE_FIELDS",
    # Listing
    "InvoiceFilter", "InvoicePage", "Pagination",
    # Report
    "IncomeReport", "MonthlyIncome", "ReportRange",
]
