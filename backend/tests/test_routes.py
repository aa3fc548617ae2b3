# Overview: Pytest coverage for the finance HTTP API (status codes, headers, JSON shapes).

import pytest


@pytest.fixture
def foreign_headers(other_institution, actor_id):
    return {"X-Institution-Id": str(other_institution.id), "X-Actor-Id": str(actor_id)}


def create_obligation(client, headers, payer, concept, **extra):
    body = {"third_party_id": payer.id, "concept_id": concept.id, **extra}
    return client.post("/api/finance/obligations", json=body, headers=headers)


class TestSystemRoutes:
    def test_health(self, client, db_session):
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.get_json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"]["status"] == "healthy"


class TestTenantHeaders:
    def test_missing_headers(self, client, db_session):
        response = client.get("/api/finance/concepts")
        assert response.status_code == 401

    def test_malformed_actor(self, client, institution):
        response = client.get(
            "/api/finance/concepts",
            headers={"X-Institution-Id": str(institution.id), "X-Actor-Id": "abc"},
        )
        assert response.status_code == 401

    def test_unknown_institution(self, client, db_session):
        response = client.get("/api/finance/concepts", headers={"X-Institution-Id": "9999", "X-Actor-Id": "1"})
        assert response.status_code == 404


class TestConceptRoutes:
    def test_create_and_duplicate(self, client, headers):
        body = {"name": "Monthly Tuition", "default_amount": "100000.00", "due_date": "2026-03-05"}

        created = client.post("/api/finance/concepts", json=body, headers=headers)
        assert created.status_code == 201
        concept = created.get_json()["concept"]
        assert concept["default_amount"] == "100000.00"
        assert concept["due_date"] == "2026-03-05"

        duplicate = client.post("/api/finance/concepts", json=body, headers=headers)
        assert duplicate.status_code == 409

    def test_float_amount_rejected(self, client, headers):
        response = client.post(
            "/api/finance/concepts", json={"name": "Books", "default_amount": 10.5}, headers=headers
        )
        assert response.status_code == 400
        assert "decimal string" in response.get_json()["error"]

    def test_non_object_body(self, client, headers):
        response = client.post("/api/finance/concepts", json=["name"], headers=headers)
        assert response.status_code == 400


class TestLedgerFlow:
    def test_charge_pay_and_void(self, client, headers, payer, concept):
        created = create_obligation(client, headers, payer, concept)
        assert created.status_code == 201
        obligation = created.get_json()["obligation"]
        assert obligation["status"] == "PENDING"
        assert obligation["balance"] == "100000.00"
        assert obligation["reference"].startswith("OBL-")

        paid = client.post("/api/finance/payments", json={
            "third_party_id": payer.id,
            "obligation_id": obligation["id"],
            "amount": "60000",
            "payment_method": "NEQUI",
            "payment_date": "2026-02-03T14:10:00Z",
        }, headers=headers)
        assert paid.status_code == 201
        payment = paid.get_json()["payment"]
        assert payment["receipt_number"] == "REC-000001"
        assert payment["payment_date"] == "2026-02-03T14:10:00Z"

        after_payment = client.get(f"/api/finance/obligations/{obligation['id']}", headers=headers).get_json()
        assert after_payment["obligation"]["status"] == "PARTIAL"
        assert after_payment["obligation"]["balance"] == "40000.00"

        voided = client.post(f"/api/finance/payments/{payment['id']}/void", json={"reason": "Bounced"}, headers=headers)
        assert voided.status_code == 200
        assert voided.get_json()["payment"]["is_voided"] is True

        again = client.post(f"/api/finance/payments/{payment['id']}/void", json={"reason": "Bounced"}, headers=headers)
        assert again.status_code == 409

        after_void = client.get(f"/api/finance/obligations/{obligation['id']}", headers=headers).get_json()
        assert after_void["obligation"]["status"] == "PENDING"
        assert after_void["obligation"]["balance"] == "100000.00"

    def test_payment_on_paid_obligation_conflicts(self, client, headers, payer, concept):
        obligation = create_obligation(client, headers, payer, concept, amount="100").get_json()["obligation"]
        body = {"third_party_id": payer.id, "obligation_id": obligation["id"], "amount": "100", "payment_method": "CASH"}

        assert client.post("/api/finance/payments", json=body, headers=headers).status_code == 201
        assert client.post("/api/finance/payments", json=body, headers=headers).status_code == 409

    def test_zero_payment_rejected(self, client, headers, payer):
        response = client.post("/api/finance/payments", json={
            "third_party_id": payer.id, "amount": "0", "payment_method": "CASH",
        }, headers=headers)
        assert response.status_code == 400

    def test_discount_and_cancel(self, client, headers, payer, concept):
        obligation = create_obligation(client, headers, payer, concept).get_json()["obligation"]

        discounted = client.post(
            f"/api/finance/obligations/{obligation['id']}/discount",
            json={"discount_amount": "20000", "reason": "Sibling"},
            headers=headers,
        )
        assert discounted.status_code == 200
        assert discounted.get_json()["obligation"]["total_amount"] == "80000.00"

        cancelled = client.post(
            f"/api/finance/obligations/{obligation['id']}/cancel", json={"reason": "Withdrawn"}, headers=headers
        )
        assert cancelled.status_code == 200
        assert cancelled.get_json()["obligation"]["status"] == "CANCELLED"

        assert client.post(
            f"/api/finance/obligations/{obligation['id']}/cancel", json={"reason": "Twice"}, headers=headers
        ).status_code == 409

    def test_cross_tenant_obligation_is_not_found(self, client, headers, foreign_headers, payer, concept):
        obligation = create_obligation(client, headers, payer, concept).get_json()["obligation"]

        response = client.get(f"/api/finance/obligations/{obligation['id']}", headers=foreign_headers)
        assert response.status_code == 404

    def test_list_and_stats(self, client, headers, payer, concept):
        create_obligation(client, headers, payer, concept)

        listed = client.get("/api/finance/obligations?status=pending", headers=headers).get_json()
        assert listed["count"] == 1

        stats = client.get("/api/finance/obligations/stats", headers=headers).get_json()
        assert stats["pending"] == {"count": 1, "balance": "100000.00"}

        bad = client.get("/api/finance/obligations?status=LOST", headers=headers)
        assert bad.status_code == 400


class TestMassiveRoute:
    def test_grade_generation_twice(self, client, headers, concept, roster):
        body = {"concept_id": concept.id, "target_type": "GRADE", "target_ids": [6]}

        first = client.post("/api/finance/obligations/massive", json=body, headers=headers)
        assert first.status_code == 200
        assert first.get_json() == {"created": 2, "skipped": 0, "errors": []}

        second = client.post("/api/finance/obligations/massive", json=body, headers=headers)
        assert second.get_json() == {"created": 0, "skipped": 2, "errors": []}

    def test_unknown_concept(self, client, headers, payer):
        body = {"concept_id": 777, "target_type": "THIRD_PARTIES", "target_ids": [payer.id]}
        assert client.post("/api/finance/obligations/massive", json=body, headers=headers).status_code == 404


class TestCloseRegisterRoute:
    def test_close_and_fetch(self, client, headers, payer):
        client.post("/api/finance/payments", json={
            "third_party_id": payer.id,
            "amount": "50000",
            "payment_method": "CASH",
            "payment_date": "2026-02-03T15:00:00Z",
        }, headers=headers)

        closed = client.post(
            "/api/finance/payments/close-register",
            json={"date": "2026-02-03", "physical_cash": "48000"},
            headers=headers,
        )
        assert closed.status_code == 200
        record = closed.get_json()["close"]
        assert record["cash_total"] == "50000.00"
        assert record["variance"] == "-2000.00"

        fetched = client.get("/api/finance/payments/close-register/2026-02-03", headers=headers)
        assert fetched.get_json()["close"]["id"] == record["id"]

        missing = client.get("/api/finance/payments/close-register/2026-02-04", headers=headers)
        assert missing.status_code == 404

    def test_date_required(self, client, headers):
        response = client.post("/api/finance/payments/close-register", json={}, headers=headers)
        assert response.status_code == 400


class TestInvoiceAndSettingsRoutes:
    def test_invoice_lifecycle(self, client, headers, payer):
        created = client.post("/api/finance/invoices", json={
            "third_party_id": payer.id,
            "items": [{"description": "Uniform", "quantity": 2, "unit_price": "45000"}],
            "tax_amount": "17100",
        }, headers=headers)
        assert created.status_code == 201
        invoice = created.get_json()["invoice"]
        assert invoice["invoice_number"] == "FAC-000001"
        assert invoice["total"] == "107100.00"

        invoice_id = invoice["id"]
        assert client.post(f"/api/finance/invoices/{invoice_id}/pay", headers=headers).status_code == 409
        assert client.post(f"/api/finance/invoices/{invoice_id}/issue", headers=headers).status_code == 200
        assert client.post(f"/api/finance/invoices/{invoice_id}/pay", headers=headers).status_code == 200

    def test_settings_read_and_update(self, client, headers):
        read = client.get("/api/finance/settings", headers=headers)
        assert read.status_code == 200
        assert read.get_json()["settings"]["receipt_prefix"] == "REC"

        updated = client.patch("/api/finance/settings", json={"receipt_prefix": "RC"}, headers=headers)
        assert updated.get_json()["settings"]["receipt_prefix"] == "RC"

        rejected = client.patch("/api/finance/settings", json={"receipt_next_number": 1}, headers=headers)
        assert rejected.status_code == 400
