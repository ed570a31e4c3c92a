"""Shared test fixtures for the invoicing test suite."""

import pytest
from pathlib import Path
from unittest.mock import Mock

from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

# Reset vault client singleton to pick up env vars
import clients.vault_client as vault_module
vault_module._vault_client_instance = None
vault_module._secret_cache.clear()

from core.audit import AuditLogger
from core.config import AppConfig
from core.services.invoice_service import InvoiceService
from core.services.report_service import IncomeReportService
from tests.fakes import FakeInvoiceRepository
from utils.user_context import user_context, clear_current_username


TEST_USERNAME = "demo"


# =============================================================================
# USER CONTEXT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_user_context():
    """Ensure clean user context before and after each test."""
    clear_current_username()
    yield
    clear_current_username()


@pytest.fixture
def as_demo_user():
    """Run the test as the logged-in demo user."""
    with user_context(TEST_USERNAME):
        yield TEST_USERNAME


# =============================================================================
# PAYLOADS
# =============================================================================


@pytest.fixture
def make_payload():
    """Factory for a valid invoice payload; keyword args override fields."""
    counter = iter(range(1, 10_000))

    def _make(**overrides):
        payload = {
            "invoice_number": f"INV-TEST-{next(counter):04d}",
            "customer_name": "Acme Corp",
            "customer_email": "billing@acme.example",
            "customer_address": "1 Industrial Way",
            "invoice_date": "2024-07-01",
            "due_date": "2024-07-31",
            "items": [
                {"description": "Design work", "quantity": "2", "price": "100.00"},
                {"description": "Hosting", "quantity": "1", "price": "25.50"},
            ],
            "notes": None,
            "paid_amount": "0",
            "status": "Pending",
        }
        payload.update(overrides)
        return payload

    return _make


# =============================================================================
# SERVICE FIXTURES (in-memory, no database needed)
# =============================================================================


@pytest.fixture
def app_config():
    return AppConfig()


@pytest.fixture
def repository():
    return FakeInvoiceRepository()


@pytest.fixture
def audit():
    mock = Mock(spec=AuditLogger)
    mock.get_entity_history.return_value = []
    return mock


@pytest.fixture
def invoice_service(repository, audit, app_config):
    return InvoiceService(repository, audit, app_config)


@pytest.fixture
def report_service(repository, app_config):
    return IncomeReportService(repository, app_config)


@pytest.fixture
def services(invoice_service, report_service):
    return {"invoice": invoice_service, "report": report_service}
