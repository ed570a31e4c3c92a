"""Tests for global error handlers and app-level routes."""

from unittest.mock import Mock

import pytest
from fastapi import FastAPI
from pydantic import ValidationError
from starlette.testclient import TestClient

from api.errors import register_error_handlers
from api.middleware import RequestIDMiddleware
from clients.postgres_client import DatabaseUnavailableError, PostgresClient
from core.exceptions import (
    BackingStoreUnavailableError,
    DuplicateInvoiceNumberError,
    FieldError,
    InvoiceNotFoundError,
    InvoiceValidationError,
)
from core.models import Invoice
from main import create_app


def _stored_row_error() -> ValidationError:
    with pytest.raises(ValidationError) as exc_info:
        Invoice.model_validate({"id": "not-a-uuid", "invoice_number": "INV-1"})
    return exc_info.value


@pytest.fixture
def raising_client():
    """App whose /boom/{kind} route raises the named error."""
    errors = {
        "validation": InvoiceValidationError([FieldError(field="customer_name", message="Required.")]),
        "not-found": InvoiceNotFoundError("abc"),
        "duplicate": DuplicateInvoiceNumberError("INV-1"),
        "unavailable": BackingStoreUnavailableError("connection refused"),
        "value": ValueError("bad input"),
        "crash": RuntimeError("secret internals"),
        "corrupt-row": _stored_row_error(),
    }

    app = FastAPI()
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    @app.get("/boom/{kind}")
    async def boom(kind: str):
        raise errors[kind]

    return TestClient(app, raise_server_exceptions=False)


class TestErrorHandlers:

    @pytest.mark.parametrize("kind,status,code", [
        ("validation", 400, "VALIDATION_ERROR"),
        ("not-found", 404, "NOT_FOUND"),
        ("duplicate", 409, "ALREADY_EXISTS"),
        ("unavailable", 503, "SERVICE_UNAVAILABLE"),
        ("value", 400, "INVALID_REQUEST"),
        ("crash", 500, "INTERNAL_ERROR"),
        ("corrupt-row", 500, "INTERNAL_ERROR"),
    ])
    def test_status_and_code(self, raising_client, kind, status, code):
        response = raising_client.get(f"/boom/{kind}")

        assert response.status_code == status
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == code

    def test_request_id_in_error_meta(self, raising_client):
        response = raising_client.get("/boom/not-found")

        assert response.json()["meta"]["request_id"] == response.headers["X-Request-ID"]

    def test_internal_error_hides_details(self, raising_client):
        response = raising_client.get("/boom/crash")

        assert "secret internals" not in response.text

    def test_corrupt_row_is_not_a_client_error(self, raising_client, caplog):
        """Model errors outside request parsing are server faults, logged with a traceback."""
        response = raising_client.get("/boom/corrupt-row")

        assert response.status_code == 500
        assert "not-a-uuid" not in response.text
        assert any(r.name == "api.errors" and r.levelname == "ERROR" for r in caplog.records)

    def test_unavailable_message_is_retryable(self, raising_client):
        response = raising_client.get("/boom/unavailable")

        assert "try again" in response.json()["error"]["message"]
        assert "connection refused" not in response.text


class TestHealth:

    def test_ok_without_database(self, unauthed_client):
        response = unauthed_client.get("/health")

        assert response.status_code == 200
        assert response.json()["data"] == {"status": "ok"}

    def test_database_down(self, services, mock_session_manager, auth_config):
        postgres = Mock(spec=PostgresClient)
        postgres.ping.side_effect = DatabaseUnavailableError("no route to host")
        client = TestClient(
            create_app(services, mock_session_manager, auth_config, postgres=postgres),
            raise_server_exceptions=False,
        )

        response = client.get("/health")

        assert response.status_code == 503
