"""
Invoice service: validation, persistence and audit for invoice changes.

Every write goes through validate_invoice_payload first, so the repository
only ever sees complete, valid invoices. Updates are merged onto the stored
invoice and then validated as a whole. Each write commits in the same
transaction as its audit entry, so neither is stored without the other.
"""

import logging
from typing import Any, Mapping
from uuid import UUID

from core.audit import AuditAction, AuditLogger, compute_changes
from core.config import AppConfig
from core.exceptions import FieldError, InvoiceNotFoundError, InvoiceValidationError
from core.models import EDITABLE_FIELDS, Invoice, InvoiceFilter, InvoicePage, InvoiceStatus
from core.repository import InvoiceRepository
from core.validation import parse_status, validate_invoice_payload
from utils.timezone import today_in

logger = logging.getLogger(__name__)

# Sent back by clients that echo a whole invoice; owned by the store or derived.
_READ_ONLY_FIELDS = frozenset({"id", "created_at", "updated_at", "total_amount", "total_due"})


class InvoiceService:
    """Service for invoice operations."""

    def __init__(
        self,
        repository: InvoiceRepository,
        audit: AuditLogger,
        config: AppConfig | None = None,
    ):
        self.repository = repository
        self.audit = audit
        self.config = config or AppConfig()

    def suggest_invoice_number(self) -> str:
        """
        Next free invoice number for today.

        Format: INV-YYYYMMDD-XXXX where XXXX is a sequence number.
        Only a suggestion; uniqueness is enforced when the invoice is saved.
        """
        today = today_in(self.config.timezone).strftime("%Y%m%d")
        prefix = f"{self.config.invoice_number_prefix}-{today}-"

        existing = self.repository.latest_invoice_number(prefix)
        if existing is None:
            sequence = 1
        else:
            try:
                sequence = int(existing.split("-")[-1]) + 1
            except (ValueError, IndexError):
                sequence = 1

        return f"{prefix}{sequence:04d}"

    def create(self, payload: Mapping[str, Any]) -> Invoice:
        """
        Validate and store a new invoice.

        Raises:
            InvoiceValidationError: Payload invalid (all violations listed)
            DuplicateInvoiceNumberError: invoice_number already used
            BackingStoreUnavailableError: Database unreachable; nothing is stored
        """
        data = validate_invoice_payload(payload)
        with self.repository.transaction():
            invoice = self.repository.create(data)
            self.audit.log_change(
                entity_type="invoice",
                entity_id=invoice.id,
                action=AuditAction.CREATE,
                changes={"created": invoice.model_dump(mode="json")}
            )

        logger.info("Invoice %s created (%s)", invoice.invoice_number, invoice.id)
        return invoice

    def get_by_id(self, invoice_id: UUID) -> Invoice | None:
        """Invoice if found, None otherwise."""
        return self.repository.get(invoice_id)

    def _require(self, invoice_id: UUID) -> Invoice:
        invoice = self.repository.get(invoice_id)
        if invoice is None:
            raise InvoiceNotFoundError(invoice_id)
        return invoice

    def list_invoices(
        self,
        filters: InvoiceFilter | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> InvoicePage:
        """
        List invoices, newest invoice_date first.

        Paging is on when page or limit is given; the missing one defaults
        to page 1 or the configured page size.
        """
        if page is None and limit is None:
            return self.repository.list_invoices(filters)

        if page is None:
            page = 1
        if limit is None:
            limit = self.config.default_page_limit

        errors = []
        if page < 1:
            errors.append(FieldError(field="page", message="Page must be at least 1."))
        if not 1 <= limit <= self.config.max_page_limit:
            errors.append(FieldError(
                field="limit",
                message=f"Limit must be between 1 and {self.config.max_page_limit}.",
            ))
        if errors:
            raise InvoiceValidationError(errors)

        return self.repository.list_invoices(filters, page=page, limit=limit)

    def update(self, invoice_id: UUID, payload: Mapping[str, Any]) -> Invoice:
        """
        Partially update an invoice.

        Given fields replace the stored ones; the merged invoice must pass
        full validation (including the date order rule).

        Raises:
            InvoiceValidationError: Empty update or merged invoice invalid
            InvoiceNotFoundError: No such invoice
            DuplicateInvoiceNumberError: New invoice_number already used
        """
        if not isinstance(payload, Mapping):
            raise InvoiceValidationError([
                FieldError(field="body", message="Invoice data must be an object.")
            ])

        changes = {k: v for k, v in payload.items() if k not in _READ_ONLY_FIELDS}
        if not changes:
            raise InvoiceValidationError([
                FieldError(field="body", message="No update data provided.")
            ])

        current = self._require(invoice_id)

        merged = current.model_dump(mode="json", include=EDITABLE_FIELDS)
        merged.update({k: v for k, v in changes.items() if k in EDITABLE_FIELDS})
        data = validate_invoice_payload(merged)

        with self.repository.transaction():
            updated = self.repository.update(invoice_id, data)
            if updated is None:
                raise InvoiceNotFoundError(invoice_id)

            diff = compute_changes(current.model_dump(mode="json"), updated.model_dump(mode="json"))
            if diff:
                self.audit.log_change(
                    entity_type="invoice",
                    entity_id=invoice_id,
                    action=AuditAction.UPDATE,
                    changes=diff
                )

        logger.info("Invoice %s updated (%d fields changed)", invoice_id, len(diff))
        return updated

    def update_status(self, invoice_id: UUID, status: InvoiceStatus | str) -> Invoice:
        """
        Change only the status. Any status may move to any other.

        Raises:
            InvoiceValidationError: Unknown status
            InvoiceNotFoundError: No such invoice
        """
        new_status = parse_status(status)
        current = self._require(invoice_id)

        with self.repository.transaction():
            updated = self.repository.update_status(invoice_id, new_status)
            if updated is None:
                raise InvoiceNotFoundError(invoice_id)

            self.audit.log_change(
                entity_type="invoice",
                entity_id=invoice_id,
                action=AuditAction.STATUS_CHANGE,
                changes={"status": {"old": current.status.value, "new": new_status.value}}
            )

        logger.info(
            "Invoice %s status %s -> %s", invoice_id, current.status.value, new_status.value
        )
        return updated

    def get_history(self, invoice_id: UUID) -> list[dict[str, Any]]:
        """Audit entries for an invoice, newest first."""
        with self.repository.transaction():
            self._require(invoice_id)
            return self.audit.get_entity_history("invoice", invoice_id)

    def list_for_board(self) -> list[Invoice]:
        """Every invoice, for grouping into board columns."""
        return self.repository.list_invoices().invoices
