"""Tests for /api/invoices routes."""

from datetime import timedelta
from uuid import uuid4

from clients.postgres_client import DatabaseUnavailableError
from core.audit import AuditAction
from core.validation import DUE_BEFORE_INVOICE_MESSAGE
from utils.timezone import today_in


class TestAuthRequired:

    def test_list_requires_session(self, unauthed_client):
        response = unauthed_client.get("/api/invoices")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "NOT_AUTHENTICATED"

    def test_create_requires_session(self, unauthed_client, make_payload, repository):
        """Rejected before the route runs, so nothing is stored."""
        response = unauthed_client.post("/api/invoices", json=make_payload())

        assert response.status_code == 401
        assert repository.invoices == {}


class TestCreateInvoice:

    def test_created_with_totals(self, client, make_payload):
        response = client.post("/api/invoices", json=make_payload(paid_amount="25.50"))

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert data["id"]
        assert data["customer_name"] == "Acme Corp"
        assert data["total_amount"] == "225.50"
        assert data["total_due"] == "200.00"
        assert data["status"] == "Pending"

    def test_creation_audited(self, client, make_payload, audit):
        client.post("/api/invoices", json=make_payload())

        audit.log_change.assert_called_once()
        assert audit.log_change.call_args.kwargs["action"] == AuditAction.CREATE

    def test_all_violations_reported(self, client, make_payload):
        payload = make_payload(
            customer_name="",
            invoice_date="2024-07-10",
            due_date="2024-07-01",
            items=[],
        )

        response = client.post("/api/invoices", json=payload)

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        fields = {d["field"]: d["message"] for d in error["details"]}
        assert "customer_name" in fields
        assert "items" in fields
        assert fields["due_date"] == DUE_BEFORE_INVOICE_MESSAGE

    def test_missing_field_named(self, client, make_payload):
        payload = make_payload()
        del payload["customer_name"]

        response = client.post("/api/invoices", json=payload)

        assert response.status_code == 400
        details = response.json()["error"]["details"]
        assert {"field": "customer_name", "message": "This field is required."} in details

    def test_item_error_path(self, client, make_payload):
        payload = make_payload(items=[{"description": "Widget", "quantity": "0", "price": "5"}])

        response = client.post("/api/invoices", json=payload)

        assert response.status_code == 400
        fields = [d["field"] for d in response.json()["error"]["details"]]
        assert "items.0.quantity" in fields

    def test_invalid_status(self, client, make_payload):
        response = client.post("/api/invoices", json=make_payload(status="Paid"))

        assert response.status_code == 400
        details = response.json()["error"]["details"]
        assert details[0]["field"] == "status"
        assert "Pending" in details[0]["message"]

    def test_non_object_body(self, client):
        response = client.post("/api/invoices", json=["not", "an", "invoice"])

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_duplicate_number_conflict(self, client, make_payload, created):
        created(invoice_number="INV-DUP")

        response = client.post("/api/invoices", json=make_payload(invoice_number="INV-DUP"))

        assert response.status_code == 409
        error = response.json()["error"]
        assert error["code"] == "ALREADY_EXISTS"
        assert error["details"][0]["field"] == "invoice_number"

    def test_store_down(self, client, make_payload, repository):
        repository.available = False

        response = client.post("/api/invoices", json=make_payload())

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "SERVICE_UNAVAILABLE"

    def test_audit_store_down_keeps_nothing(self, client, make_payload, repository, audit):
        """A failed audit insert undoes the create, so a retry is not a duplicate."""
        audit.log_change.side_effect = DatabaseUnavailableError("Database connection lost")
        payload = make_payload(invoice_number="INV-RETRY")

        response = client.post("/api/invoices", json=payload)

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "SERVICE_UNAVAILABLE"
        assert repository.invoices == {}

        audit.log_change.side_effect = None
        assert client.post("/api/invoices", json=payload).status_code == 201


class TestGetInvoice:

    def test_found(self, client, created):
        invoice = created()

        response = client.get(f"/api/invoices/{invoice['id']}")

        assert response.status_code == 200
        assert response.json()["data"]["invoice_number"] == invoice["invoice_number"]

    def test_not_found(self, client):
        response = client.get(f"/api/invoices/{uuid4()}")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_malformed_id(self, client):
        response = client.get("/api/invoices/not-a-uuid")

        assert response.status_code == 400
        assert response.json()["error"]["details"][0]["field"] == "invoice_id"


class TestListInvoices:

    def test_unpaged_returns_everything(self, client, created):
        for _ in range(3):
            created()

        response = client.get("/api/invoices")

        data = response.json()["data"]
        assert len(data["invoices"]) == 3
        assert data["pagination"] is None

    def test_newest_invoice_date_first(self, client, created):
        created(invoice_number="OLD", invoice_date="2024-01-01", due_date="2024-01-31")
        created(invoice_number="NEW", invoice_date="2024-06-01", due_date="2024-06-30")

        data = client.get("/api/invoices").json()["data"]

        assert [i["invoice_number"] for i in data["invoices"]] == ["NEW", "OLD"]

    def test_filters(self, client, created):
        created(customer_name="Acme Corp", status="Completed", due_date="2024-07-31")
        created(customer_name="ACME Labs", status="Pending", due_date="2024-07-31")
        created(customer_name="Globex", status="Completed", due_date="2024-07-31")

        response = client.get("/api/invoices", params={"customer_name": "acme", "status": "Completed"})

        invoices = response.json()["data"]["invoices"]
        assert [i["customer_name"] for i in invoices] == ["Acme Corp"]

    def test_due_date_range_inclusive(self, client, created):
        created(invoice_number="A", invoice_date="2024-07-01", due_date="2024-07-10")
        created(invoice_number="B", invoice_date="2024-07-01", due_date="2024-07-20")
        created(invoice_number="C", invoice_date="2024-07-01", due_date="2024-07-30")

        response = client.get(
            "/api/invoices",
            params={"due_date_start": "2024-07-10", "due_date_end": "2024-07-20"},
        )

        numbers = {i["invoice_number"] for i in response.json()["data"]["invoices"]}
        assert numbers == {"A", "B"}

    def test_pagination(self, client, created):
        for _ in range(5):
            created()

        response = client.get("/api/invoices", params={"page": 2, "limit": 2})

        data = response.json()["data"]
        assert len(data["invoices"]) == 2
        assert data["pagination"] == {
            "current_page": 2,
            "total_pages": 3,
            "total_invoices": 5,
            "limit": 2,
        }

    def test_limit_alone_defaults_page(self, client, created):
        created()

        data = client.get("/api/invoices", params={"limit": 10}).json()["data"]

        assert data["pagination"]["current_page"] == 1

    def test_page_past_end_is_empty(self, client, created):
        created()

        data = client.get("/api/invoices", params={"page": 5, "limit": 10}).json()["data"]

        assert data["invoices"] == []
        assert data["pagination"]["total_invoices"] == 1

    def test_limit_over_max_rejected(self, client):
        response = client.get("/api/invoices", params={"limit": 10_000})

        assert response.status_code == 400
        assert response.json()["error"]["details"][0]["field"] == "limit"

    def test_zero_page_rejected(self, client):
        response = client.get("/api/invoices", params={"page": 0})

        assert response.status_code == 400

    def test_unknown_status_filter(self, client):
        response = client.get("/api/invoices", params={"status": "Paid"})

        assert response.status_code == 400
        assert response.json()["error"]["details"][0]["field"] == "status"


class TestUpdateInvoice:

    def test_partial_update_keeps_other_fields(self, client, created):
        invoice = created(notes="first")

        response = client.put(f"/api/invoices/{invoice['id']}", json={"notes": "second"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["notes"] == "second"
        assert data["customer_name"] == invoice["customer_name"]
        assert data["items"] == invoice["items"]

    def test_items_replace_recomputes_totals(self, client, created):
        invoice = created()

        response = client.put(
            f"/api/invoices/{invoice['id']}",
            json={"items": [{"description": "Support", "quantity": "3", "price": "10"}]},
        )

        assert response.json()["data"]["total_amount"] == "30"

    def test_date_order_checked_against_stored(self, client, created):
        invoice = created(invoice_date="2024-07-01", due_date="2024-07-31")

        response = client.put(f"/api/invoices/{invoice['id']}", json={"due_date": "2024-06-01"})

        assert response.status_code == 400
        assert response.json()["error"]["details"] == [
            {"field": "due_date", "message": DUE_BEFORE_INVOICE_MESSAGE}
        ]

    def test_echoed_read_only_fields_ignored(self, client, created):
        invoice = created()

        response = client.put(f"/api/invoices/{invoice['id']}", json={
            **invoice, "customer_name": "Renamed", "total_amount": "1.00",
        })

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["customer_name"] == "Renamed"
        assert data["id"] == invoice["id"]
        assert data["total_amount"] == "225.50"

    def test_empty_body_rejected(self, client, created):
        invoice = created()

        response = client.put(f"/api/invoices/{invoice['id']}", json={})

        assert response.status_code == 400
        assert response.json()["error"]["details"][0]["field"] == "body"

    def test_renumber_to_taken_number(self, client, created):
        created(invoice_number="INV-1")
        other = created(invoice_number="INV-2")

        response = client.put(f"/api/invoices/{other['id']}", json={"invoice_number": "INV-1"})

        assert response.status_code == 409

    def test_unknown_invoice(self, client):
        response = client.put(f"/api/invoices/{uuid4()}", json={"notes": "x"})

        assert response.status_code == 404


class TestUpdateStatus:

    def test_status_changed(self, client, created):
        invoice = created()

        response = client.patch(f"/api/invoices/{invoice['id']}", json={"status": "In Process"})

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "In Process"

    def test_completed_can_reopen(self, client, created):
        invoice = created(status="Completed")

        response = client.patch(f"/api/invoices/{invoice['id']}", json={"status": "Pending"})

        assert response.json()["data"]["status"] == "Pending"

    def test_invalid_status(self, client, created):
        invoice = created()

        response = client.patch(f"/api/invoices/{invoice['id']}", json={"status": "Due Today"})

        assert response.status_code == 400
        assert response.json()["error"]["details"][0]["field"] == "status"

    def test_missing_status(self, client, created):
        invoice = created()

        response = client.patch(f"/api/invoices/{invoice['id']}", json={})

        assert response.status_code == 400
        assert response.json()["error"]["details"][0]["field"] == "status"

    def test_unknown_invoice(self, client):
        response = client.patch(f"/api/invoices/{uuid4()}", json={"status": "Hold"})

        assert response.status_code == 404

    def test_audit_store_down_keeps_status(self, client, created, audit):
        invoice = created()
        audit.log_change.side_effect = DatabaseUnavailableError("Database connection lost")

        response = client.patch(f"/api/invoices/{invoice['id']}", json={"status": "Completed"})

        assert response.status_code == 503
        assert client.get(f"/api/invoices/{invoice['id']}").json()["data"]["status"] == "Pending"


class TestBoard:

    def test_columns_in_display_order(self, client):
        data = client.get("/api/invoices/board").json()["data"]

        assert [c["name"] for c in data["columns"]] == [
            "Due Today", "Pending", "In Process", "Hold", "Completed", "Cancelled",
        ]

    def test_due_today_overrides_status(self, client, created):
        today = today_in("UTC")
        created(
            invoice_number="TODAY",
            invoice_date=(today - timedelta(days=7)).isoformat(),
            due_date=today.isoformat(),
            status="Completed",
        )
        created(
            invoice_number="LATER",
            invoice_date=today.isoformat(),
            due_date=(today + timedelta(days=7)).isoformat(),
        )

        data = client.get("/api/invoices/board").json()["data"]

        columns = {c["name"]: [i["invoice_number"] for i in c["invoices"]] for c in data["columns"]}
        assert data["date"] == today.isoformat()
        assert columns["Due Today"] == ["TODAY"]
        assert columns["Pending"] == ["LATER"]
        assert columns["Completed"] == []


class TestNextNumber:

    def test_first_of_the_day(self, client):
        today = today_in("UTC").strftime("%Y%m%d")

        data = client.get("/api/invoices/next-number").json()["data"]

        assert data["invoice_number"] == f"INV-{today}-0001"

    def test_follows_existing(self, client, created):
        today = today_in("UTC").strftime("%Y%m%d")
        created(invoice_number=f"INV-{today}-0007")

        data = client.get("/api/invoices/next-number").json()["data"]

        assert data["invoice_number"] == f"INV-{today}-0008"


class TestHistory:

    def test_returns_audit_entries(self, client, created, audit):
        invoice = created()
        audit.get_entity_history.return_value = [{"action": "create", "actor": "demo"}]

        response = client.get(f"/api/invoices/{invoice['id']}/history")

        assert response.status_code == 200
        assert response.json()["data"] == [{"action": "create", "actor": "demo"}]

    def test_unknown_invoice(self, client):
        response = client.get(f"/api/invoices/{uuid4()}/history")

        assert response.status_code == 404
