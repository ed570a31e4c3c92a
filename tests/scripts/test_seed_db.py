"""Tests for the sample-data seed script."""

from datetime import date
from unittest.mock import Mock

import pytest

import scripts.seed_db as seed_module
from clients.postgres_client import PostgresClient
from core.board import DUE_TODAY, group_by_column
from core.models import InvoiceStatus
from core.totals import invoice_totals
from core.validation import validate_invoice_payload
from scripts.seed_db import sample_payloads, seed
from tests.fakes import FakeInvoiceRepository

TODAY = date(2024, 7, 15)


class TestSamplePayloads:

    def test_every_payload_is_valid(self):
        for payload in sample_payloads(TODAY):
            validate_invoice_payload(payload)

    def test_numbers_unique(self):
        numbers = [p["invoice_number"] for p in sample_payloads(TODAY)]

        assert len(numbers) == len(set(numbers)) == 20

    def test_covers_every_status(self):
        statuses = {p["status"] for p in sample_payloads(TODAY)}

        assert statuses == {s.value for s in InvoiceStatus}

    def test_some_due_today(self):
        payloads = sample_payloads(TODAY, count=6)

        assert sum(p["due_date"] == TODAY.isoformat() for p in payloads) == 2

    def test_completed_invoices_fully_paid(self, repository):
        for payload in sample_payloads(TODAY):
            invoice = repository.create(validate_invoice_payload(payload))
            if invoice.status == InvoiceStatus.COMPLETED:
                assert invoice_totals(invoice).total_due == 0


class TestSeed:

    @pytest.fixture
    def fake_repository(self, monkeypatch):
        repository = FakeInvoiceRepository()
        monkeypatch.setattr(seed_module, "InvoiceRepository", lambda postgres: repository)
        monkeypatch.setattr(seed_module, "AuditLogger", lambda postgres: Mock())
        return repository

    def test_applies_schema_then_creates(self, fake_repository):
        postgres = Mock(spec=PostgresClient)

        created = seed(postgres, today=TODAY)

        assert created == 20
        assert "CREATE TABLE" in postgres.execute.call_args.args[0]
        assert len(fake_repository.invoices) == 20

    def test_rerun_skips_existing(self, fake_repository):
        postgres = Mock(spec=PostgresClient)
        seed(postgres, today=TODAY)

        assert seed(postgres, today=TODAY) == 0
        assert len(fake_repository.invoices) == 20

    def test_board_has_due_today(self, fake_repository):
        seed(Mock(spec=PostgresClient), today=TODAY)

        columns = group_by_column(fake_repository.invoices.values(), TODAY)

        assert len(columns[DUE_TODAY]) == 4
