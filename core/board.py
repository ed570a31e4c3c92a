"""
Status board with optimistic moves.

The board holds the last server-confirmed list of invoices plus the moves
still awaiting confirmation. What the user sees is the confirmed list with
the pending moves laid over it, so a rejected move is undone by dropping
its overlay and nothing else on the board is touched.

Column membership is computed on every read: an invoice due today shows in
"Due Today" regardless of status, and moves back to its status column once
the date rolls over. Nothing about the Due Today column is ever stored.

Usage:
    async with InvoiceAPIClient(base_url) as api:
        await api.login("demo", "demo")
        board = StatusBoard(api.update_invoice_status, today_fn=lambda: today_in("UTC"))
        await board.refresh(api_loader(api))
        await board.apply_move(invoice_id, "Completed")
        columns = board.columns()
"""

import logging
from datetime import date
from typing import Awaitable, Callable, Iterable
from uuid import UUID

from core.exceptions import (
    InvalidMoveError,
    InvoiceLockedError,
    InvoiceNotFoundError,
    InvoicingError,
    OptimisticUpdateError,
)
from core.models import Invoice, InvoiceFilter, InvoiceStatus
from utils.timezone import parse_day

logger = logging.getLogger(__name__)

DUE_TODAY = "Due Today"

BOARD_COLUMNS = (
    DUE_TODAY,
    InvoiceStatus.PENDING.value,
    InvoiceStatus.IN_PROCESS.value,
    InvoiceStatus.HOLD.value,
    InvoiceStatus.COMPLETED.value,
    InvoiceStatus.CANCELLED.value,
)

StatusUpdater = Callable[[UUID, InvoiceStatus], Awaitable[Invoice | None]]
InvoiceLoader = Callable[[], Awaitable[list[Invoice]]]


def column_for(invoice: Invoice, today: date) -> str:
    """Display column: Due Today wins over the status column."""
    if parse_day(invoice.due_date) == today:
        return DUE_TODAY
    return InvoiceStatus(invoice.status).value


def _sort_key(invoice: Invoice) -> tuple[int, int]:
    # invoice_date descending, unparseable dates last
    day = parse_day(invoice.invoice_date)
    if day is None:
        return (1, 0)
    return (0, -day.toordinal())


def group_by_column(invoices: Iterable[Invoice], today: date) -> dict[str, list[Invoice]]:
    """
    Bucket invoices into board columns for the given day.

    Every column is present (possibly empty), in display order. Within a
    column invoices are sorted by invoice_date descending; the sort is
    stable so ties keep their board order.
    """
    columns: dict[str, list[Invoice]] = {name: [] for name in BOARD_COLUMNS}
    for invoice in invoices:
        columns[column_for(invoice, today)].append(invoice)
    for bucket in columns.values():
        bucket.sort(key=_sort_key)
    return columns


def api_loader(client, filters: InvoiceFilter | None = None) -> InvoiceLoader:
    """Loader for StatusBoard.refresh backed by an InvoiceAPIClient."""
    async def load() -> list[Invoice]:
        page = await client.list_invoices(filters)
        return page.invoices
    return load


class StatusBoard:
    """Kanban view of invoices with optimistic, rollback-safe status moves."""

    def __init__(
        self,
        updater: StatusUpdater,
        invoices: Iterable[Invoice] = (),
        today_fn: Callable[[], date] = date.today,
    ):
        """
        Args:
            updater: Persists a status change; awaited with (invoice_id, status).
                May return the stored invoice, or None to keep the optimistic copy.
            invoices: Initial confirmed snapshot
            today_fn: Clock for the Due Today column
        """
        self._updater = updater
        self._today_fn = today_fn
        self._confirmed: tuple[Invoice, ...] = tuple(invoices)
        self._pending: dict[UUID, InvoiceStatus] = {}
        self._generation = 0

    @property
    def confirmed(self) -> tuple[Invoice, ...]:
        """Last server-acknowledged snapshot."""
        return self._confirmed

    @property
    def invoices(self) -> tuple[Invoice, ...]:
        """Visible board: confirmed snapshot with pending moves applied in order."""
        board = list(self._confirmed)
        for invoice_id, destination in self._pending.items():
            for index, invoice in enumerate(board):
                if invoice.id == invoice_id:
                    moved = board.pop(index).model_copy(update={"status": destination})
                    board.append(moved)
                    break
        return tuple(board)

    def find(self, invoice_id: UUID) -> Invoice | None:
        for invoice in self.invoices:
            if invoice.id == invoice_id:
                return invoice
        return None

    def is_pending(self, invoice_id: UUID) -> bool:
        return invoice_id in self._pending

    def columns(self) -> dict[str, list[Invoice]]:
        """Board columns for the current day. Recomputed on every call."""
        return group_by_column(self.invoices, self._today_fn())

    async def apply_move(self, invoice_id: UUID, destination: str | InvoiceStatus) -> Invoice:
        """
        Move an invoice to a status column.

        The move is visible immediately and held as pending until the updater
        returns. If the updater fails, the move is dropped and the board shows
        the confirmed snapshot again.

        Returns:
            The confirmed invoice (unchanged if it already had that status)

        Raises:
            InvalidMoveError: destination is Due Today or not a status
            InvoiceLockedError: a move of this invoice is still pending
            InvoiceNotFoundError: invoice is not on the board
            OptimisticUpdateError: the updater rejected the move
        """
        try:
            status = InvoiceStatus(destination)
        except ValueError:
            raise InvalidMoveError(f"Cannot move an invoice to '{destination}'") from None

        if invoice_id in self._pending:
            raise InvoiceLockedError(invoice_id)

        current = self.find(invoice_id)
        if current is None:
            raise InvoiceNotFoundError(invoice_id)

        if current.status == status:
            return current

        optimistic = current.model_copy(update={"status": status})
        self._pending[invoice_id] = status

        try:
            stored = await self._updater(invoice_id, status)
        except InvoicingError as e:
            logger.warning(
                "Status move of %s to %s rolled back: %s", invoice_id, status.value, e
            )
            raise OptimisticUpdateError(invoice_id, status.value, str(e)) from e
        finally:
            self._pending.pop(invoice_id, None)

        confirmed = stored if stored is not None else optimistic
        self._confirm(confirmed)
        logger.info("Invoice %s moved to %s", invoice_id, status.value)
        return confirmed

    def _confirm(self, invoice: Invoice) -> None:
        """Replace the confirmed copy; it moves to the end like the optimistic one."""
        # A refresh still in flight may have read the store before this move landed
        self._generation += 1
        remaining = [i for i in self._confirmed if i.id != invoice.id]
        if len(remaining) == len(self._confirmed):
            # Dropped by a refresh while the move was in flight
            return
        self._confirmed = tuple(remaining) + (invoice,)

    async def refresh(self, loader: InvoiceLoader) -> bool:
        """
        Replace the confirmed snapshot with freshly loaded invoices.

        A refresh started later, or a move confirmed meanwhile, supersedes
        one still in flight: the older response is discarded when it arrives.

        Returns:
            True if the loaded data was applied, False if it was stale
        """
        self._generation += 1
        generation = self._generation

        invoices = await loader()

        if generation != self._generation:
            logger.warning("Discarding stale board refresh (generation %d)", generation)
            return False

        self._confirmed = tuple(invoices)
        return True
