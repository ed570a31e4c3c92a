"""
Load sample invoices into the database.

Applies schema.sql, then creates a spread of invoices across statuses and
months through InvoiceService, so every row passes the same validation and
gets the same audit entries as one created through the API.

Usage:
    python -m scripts.seed_db                     # database URL from Vault
    python -m scripts.seed_db --database-url postgresql://localhost/invoicing
"""

import argparse
import logging
from datetime import date, timedelta
from pathlib import Path

from clients.postgres_client import PostgresClient
from clients.vault_client import get_database_url
from core.audit import AuditLogger
from core.config import AppConfig
from core.exceptions import DuplicateInvoiceNumberError
from core.models import InvoiceStatus
from core.repository import InvoiceRepository
from core.services.invoice_service import InvoiceService
from core.totals import compute_totals
from utils.timezone import today_in
from utils.user_context import user_context

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schema.sql"

_CUSTOMERS = [
    ("Acme Corp", "billing@acme.example", "1 Industrial Way, Springfield"),
    ("Globex", "accounts@globex.example", "200 Market St, Cypress Creek"),
    ("Initech", None, "4120 Freidrich Ln, Austin"),
    ("Umbrella Ltd", "ap@umbrella.example", None),
    ("Stark Industries", "finance@stark.example", "10880 Malibu Point"),
]

_ITEMS = [
    {"description": "Website design", "quantity": "1", "price": "1200.00", "color": "#4f46e5"},
    {"description": "Hosting (monthly)", "quantity": "12", "price": "25.00"},
    {"description": "Logo refresh", "quantity": "1", "price": "350.00", "color": "#f59e0b"},
    {"description": "Consulting hour", "quantity": "6", "price": "95.00"},
    {"description": "Printed brochures", "quantity": "500", "price": "0.45"},
]

_STATUSES = list(InvoiceStatus)


def sample_payloads(today: date, count: int = 20) -> list[dict]:
    """Deterministic sample invoices spread over the last few months."""
    payloads = []
    for n in range(count):
        name, email, address = _CUSTOMERS[n % len(_CUSTOMERS)]
        invoice_date = today - timedelta(days=9 * n)
        items = [_ITEMS[n % len(_ITEMS)], _ITEMS[(n + 2) % len(_ITEMS)]]
        status = _STATUSES[n % len(_STATUSES)]
        total = compute_totals(items).total_amount

        payloads.append({
            "invoice_number": f"INV-SEED-{n + 1:04d}",
            "customer_name": name,
            "customer_email": email,
            "customer_address": address,
            "invoice_date": invoice_date.isoformat(),
            # every fifth invoice is due today so the board has something there
            "due_date": (today if n % 5 == 0 else invoice_date + timedelta(days=30)).isoformat(),
            "items": items,
            "notes": "Sample data",
            "paid_amount": str(total if status == InvoiceStatus.COMPLETED else 0),
            "status": status.value,
        })
    return payloads


def seed(postgres: PostgresClient, today: date | None = None) -> int:
    """Apply the schema and insert sample invoices. Returns how many were created."""
    postgres.execute(SCHEMA_PATH.read_text())

    config = AppConfig.from_env()
    repository = InvoiceRepository(postgres)
    service = InvoiceService(repository, AuditLogger(postgres), config)

    created = 0
    with user_context("seed"):
        for payload in sample_payloads(today or today_in(config.timezone)):
            try:
                service.create(payload)
                created += 1
            except DuplicateInvoiceNumberError:
                logger.info("Skipping %s, already present", payload["invoice_number"])
    return created


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--database-url", help="PostgreSQL URL (default: from Vault)")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    postgres = PostgresClient(args.database_url or get_database_url())
    try:
        created = seed(postgres)
    finally:
        postgres.close()
    logger.info("Seeded %d invoices", created)


if __name__ == "__main__":
    main()
