"""
Monthly income aggregation.

Income is recognized by invoice_date using paid_amount, for invoices that
are Completed at query time. Alongside it each month carries what was
invoiced, paid and still due across every invoice dated in that month,
whatever its status. Pure functions; the service supplies the rows.
"""

import calendar
from datetime import date
from decimal import Decimal
from typing import Iterable

from core.exceptions import FieldError, InvoiceValidationError
from core.models import IncomeReport, Invoice, InvoiceStatus, MonthlyIncome, ReportRange
from core.totals import invoice_totals

END_BEFORE_START_MESSAGE = "End date cannot be before start date."

_ZERO = Decimal("0")


def month_start(day: date) -> date:
    return day.replace(day=1)


def month_end(day: date) -> date:
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def normalize_report_range(start: date, end: date) -> ReportRange:
    """
    Snap a range outward to whole months.

    Raises:
        InvoiceValidationError: If the snapped end precedes the snapped start
    """
    snapped = ReportRange(start_date=month_start(start), end_date=month_end(end))
    if snapped.end_date < snapped.start_date:
        raise InvoiceValidationError([
            FieldError(field="end_date", message=END_BEFORE_START_MESSAGE)
        ])
    return snapped


def _empty_month() -> dict[str, Decimal]:
    return {"income": _ZERO, "invoiced": _ZERO, "paid": _ZERO, "due": _ZERO}


def build_income_report(invoices: Iterable[Invoice], report_range: ReportRange) -> IncomeReport:
    """
    Group invoices in the range by (year, month) and sum their amounts.

    Only Completed invoices add to total_income, and only months with at
    least one of them appear in the series. The invoiced, paid and due
    sums cover every invoice in the range; the *_in_range totals include
    months that have no Completed invoice and so are absent from the
    series. Invoices outside the range are skipped, so callers may pass a
    superset.
    """
    buckets: dict[tuple[int, int], dict[str, Decimal]] = {}
    income_months: set[tuple[int, int]] = set()

    for invoice in invoices:
        if not report_range.start_date <= invoice.invoice_date <= report_range.end_date:
            continue
        key = (invoice.invoice_date.year, invoice.invoice_date.month - 1)
        bucket = buckets.setdefault(key, _empty_month())

        totals = invoice_totals(invoice)
        bucket["invoiced"] += totals.total_amount
        bucket["paid"] += invoice.paid_amount
        bucket["due"] += totals.total_due

        if invoice.status == InvoiceStatus.COMPLETED:
            bucket["income"] += invoice.paid_amount
            income_months.add(key)

    monthly = [
        MonthlyIncome(
            month=f"{year:04d}-{month_index + 1:02d}",
            year=year,
            month_index=month_index,
            total_income=bucket["income"],
            total_invoiced=bucket["invoiced"],
            total_paid=bucket["paid"],
            total_due=bucket["due"],
        )
        for (year, month_index), bucket in sorted(buckets.items())
        if (year, month_index) in income_months
    ]

    def in_range(name: str) -> Decimal:
        return sum((b[name] for b in buckets.values()), _ZERO)

    return IncomeReport(
        monthly_data=monthly,
        total_income_in_range=in_range("income"),
        total_invoiced_in_range=in_range("invoiced"),
        total_paid_in_range=in_range("paid"),
        total_due_in_range=in_range("due"),
        start_date=report_range.start_date,
        end_date=report_range.end_date,
    )
