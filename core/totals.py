"""
Invoice total computation.

Free functions over plain values so every place that shows a total
(API payloads, the status board, scripts) derives it the same way from
the current items and paid amount. Nothing here is cached or stored.
"""

from decimal import Decimal
from typing import Any, Iterable, NamedTuple

_ZERO = Decimal("0")


class InvoiceTotals(NamedTuple):
    total_amount: Decimal
    total_due: Decimal


def _as_decimal(value: Any) -> Decimal:
    """None and garbage count as zero; floats go through str to keep their printed value."""
    if value is None:
        return _ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else _ZERO
    if isinstance(value, bool):
        return _ZERO
    if isinstance(value, (int, float, str)):
        try:
            parsed = Decimal(str(value))
        except ArithmeticError:
            return _ZERO
        return parsed if parsed.is_finite() else _ZERO
    return _ZERO


def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def line_total(item: Any) -> Decimal:
    """quantity x price, with negative or missing parts clamped to zero."""
    quantity = max(_ZERO, _as_decimal(_field(item, "quantity")))
    price = max(_ZERO, _as_decimal(_field(item, "price")))
    return quantity * price


def compute_totals(items: Iterable[Any] | None, paid_amount: Any = None) -> InvoiceTotals:
    """
    Derive (total_amount, total_due) from line items and the amount paid.

    total_due is not clamped: an overpaid invoice has a negative balance.

    Args:
        items: InvoiceItem models or plain dicts with quantity/price
        paid_amount: Amount already paid (None counts as 0)
    """
    total_amount = sum((line_total(item) for item in items or ()), _ZERO)
    return InvoiceTotals(
        total_amount=total_amount,
        total_due=total_amount - _as_decimal(paid_amount),
    )


def invoice_totals(invoice: Any) -> InvoiceTotals:
    """Totals for an Invoice (or anything with items and paid_amount)."""
    return compute_totals(_field(invoice, "items"), _field(invoice, "paid_amount"))
