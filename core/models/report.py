"""Income report models."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field


class ReportRange(BaseModel):
    """Effective report range, always whole months."""

    start_date: date
    end_date: date


class MonthlyIncome(BaseModel):
    """
    Recognized income for one calendar month.

    total_income counts Completed invoices only. The invoiced, paid and due
    sums cover every invoice dated in the month, whatever its status.
    """

    month: str = Field(..., description="Month label, YYYY-MM")
    year: int
    month_index: int = Field(..., ge=0, le=11, description="0 = January")
    total_income: Decimal
    total_invoiced: Decimal = Decimal("0")
    total_paid: Decimal = Decimal("0")
    total_due: Decimal = Decimal("0")


class IncomeReport(BaseModel):
    """
    Monthly income series for a range.

    Months without Completed invoices are absent, not zero-filled. Their
    invoiced, paid and due amounts still count in the *_in_range totals.
    """

    monthly_data: list[MonthlyIncome]
    total_income_in_range: Decimal
    total_invoiced_in_range: Decimal = Decimal("0")
    total_paid_in_range: Decimal = Decimal("0")
    total_due_in_range: Decimal = Decimal("0")
    start_date: date
    end_date: date
