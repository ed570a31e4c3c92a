"""
Invoice payload validation.

Runs every check in one pass and reports all violations together.
Field-level rules live on the pydantic models; the cross-field date
rule is checked here so it still runs when unrelated fields fail.
"""

from datetime import date
from typing import Any, Mapping

from pydantic import TypeAdapter, ValidationError

from core.exceptions import FieldError, InvoiceValidationError
from core.models import InvoiceCreate, InvoiceStatus

DUE_BEFORE_INVOICE_MESSAGE = "Due date cannot be before invoice date."

# Same date parsing the models use, so a date the field rules reject is
# never also compared here.
_DATE = TypeAdapter(date)


def _parse_date(value: Any) -> date | None:
    try:
        return _DATE.validate_python(value)
    except ValidationError:
        return None


def _field_path(loc: tuple) -> str:
    """('items', 0, 'price') -> 'items.0.price'"""
    if not loc:
        return "body"
    return ".".join(str(part) for part in loc)


def _message(error: dict) -> str:
    if error["type"] == "missing":
        return "This field is required."
    if error["type"] == "enum":
        allowed = ", ".join(s.value for s in InvoiceStatus)
        return f"Invalid status value. Allowed values are: {allowed}."
    return error["msg"]


def field_errors(exc: ValidationError) -> list[FieldError]:
    """Flatten a pydantic ValidationError into field-scoped errors."""
    return [
        FieldError(field=_field_path(error["loc"]), message=_message(error))
        for error in exc.errors()
    ]


def check_date_order(payload: Mapping[str, Any]) -> FieldError | None:
    """
    due_date must not precede invoice_date.

    Unparseable dates are reported by the field rules, so only a pair of
    valid dates can fail here.
    """
    invoice_date = _parse_date(payload.get("invoice_date"))
    due_date = _parse_date(payload.get("due_date"))
    if invoice_date is None or due_date is None:
        return None
    if due_date < invoice_date:
        return FieldError(field="due_date", message=DUE_BEFORE_INVOICE_MESSAGE)
    return None


def validate_invoice_payload(payload: Mapping[str, Any]) -> InvoiceCreate:
    """
    Validate a candidate invoice before it reaches the repository.

    Args:
        payload: Raw invoice data (request body or merged update)

    Returns:
        Parsed InvoiceCreate

    Raises:
        InvoiceValidationError: With every violation found
    """
    if not isinstance(payload, Mapping):
        raise InvoiceValidationError([
            FieldError(field="body", message="Invoice data must be an object.")
        ])

    errors: list[FieldError] = []
    data = None

    try:
        data = InvoiceCreate.model_validate(dict(payload))
    except ValidationError as exc:
        errors.extend(field_errors(exc))

    order_error = check_date_order(payload)
    if order_error is not None:
        errors.append(order_error)

    if errors:
        raise InvoiceValidationError(errors)

    return data


def parse_status(value: Any) -> InvoiceStatus:
    """
    Coerce a status value from the closed set.

    Raises:
        InvoiceValidationError: If value is missing or not a known status
    """
    if isinstance(value, InvoiceStatus):
        return value
    try:
        return InvoiceStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in InvoiceStatus)
        raise InvoiceValidationError([
            FieldError(
                field="status",
                message=f"Invalid status provided. Allowed statuses are: {allowed}.",
            )
        ])
