"""Typed exceptions for invoicing failures."""

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class FieldError:
    """A single validation failure scoped to one field."""

    field: str
    message: str


class InvoicingError(Exception):
    """Base class for invoicing errors."""


class InvoiceValidationError(InvoicingError):
    """
    Payload failed validation.

    Carries every violation found in one pass so a form can show
    all of them at once.
    """

    def __init__(self, errors: list[FieldError]):
        self.errors = list(errors)
        summary = "; ".join(f"{e.field}: {e.message}" for e in self.errors)
        super().__init__(f"Invoice validation failed: {summary}")


class DuplicateInvoiceNumberError(InvoicingError):
    """Invoice number already in use. Never retried automatically."""

    def __init__(self, invoice_number: str):
        self.invoice_number = invoice_number
        super().__init__(
            f"Invoice number '{invoice_number}' already exists. "
            "Please use a different number."
        )


class InvoiceNotFoundError(InvoicingError):
    """No invoice with the requested ID."""

    def __init__(self, invoice_id: UUID | str):
        self.invoice_id = invoice_id
        super().__init__(f"Invoice {invoice_id} not found")


class BackingStoreUnavailableError(InvoicingError):
    """
    The database (or the API in front of it) could not be reached.

    Retryable by the user; nothing retries automatically.
    """


class InvalidMoveError(InvoicingError):
    """Board move targets something that is not a droppable status column."""


class InvoiceLockedError(InvoicingError):
    """A status move for this invoice is still awaiting confirmation."""

    def __init__(self, invoice_id: UUID):
        self.invoice_id = invoice_id
        super().__init__(f"Invoice {invoice_id} has a status update in flight")


class OptimisticUpdateError(InvoicingError):
    """
    A board move was rejected and rolled back.

    The original failure is chained as __cause__.
    """

    def __init__(self, invoice_id: UUID, destination: str, reason: str):
        self.invoice_id = invoice_id
        self.destination = destination
        self.reason = reason
        super().__init__(f"Could not update status: {reason}")
