"""Reimbursement and out-of-office endpoint tests."""

from decimal import Decimal

import pytest

from app.models.reimbursement import Reimbursement, ReimbursementStatus

INVOICE = ("invoice.pdf", b"%PDF-1.4 fake invoice", "application/pdf")


@pytest.fixture
def reimbursement(client, alice_headers, alice):
    """Submit a pending reimbursement as Alice."""
    response = client.post(
        "/reimbursements",
        headers=alice_headers,
        data={
            "amount": "125.50",
            "invoice_date": "2024-03-01T00:00:00",
            "currency": "usd",
            "description": "Conference ticket",
        },
        files={"file": INVOICE},
    )
    assert response.status_code == 201
    return response.json()


def ooo_payload(**overrides):
    data = {
        "user_name": "Alice",
        "user_email": "alice@blockful.io",
        "start_date": "2024-07-01T00:00:00Z",
        "end_date": "2024-07-15T00:00:00Z",
        "reason": "Vacation",
        "message": "Back on the 15th",
    }
    data.update(overrides)
    return data


class TestReimbursements:
    """Tests for reimbursement endpoints."""

    def test_requires_auth(self, client):
        response = client.get("/reimbursements")
        assert response.status_code == 401

    def test_create(self, reimbursement, alice, mock_blob_storage):
        assert Decimal(reimbursement["amount"]) == Decimal("125.50")
        assert reimbursement["currency"] == "USD"
        assert reimbursement["status"] == "pending"
        assert reimbursement["user_id"] == alice["id"]
        assert reimbursement["file_name"] == "invoice.pdf"
        assert reimbursement["file_size"] == len(INVOICE[1])
        assert len(mock_blob_storage._storage) == 1

    def test_create_rejects_non_positive_amount(self, client, alice_headers):
        response = client.post(
            "/reimbursements",
            headers=alice_headers,
            data={"amount": "0", "invoice_date": "2024-03-01T00:00:00"},
            files={"file": INVOICE},
        )
        assert response.status_code == 422

    def test_create_requires_file(self, client, alice_headers):
        response = client.post(
            "/reimbursements",
            headers=alice_headers,
            data={"amount": "10", "invoice_date": "2024-03-01T00:00:00"},
        )
        assert response.status_code == 422

    def test_create_rejects_empty_file(self, client, alice_headers):
        response = client.post(
            "/reimbursements",
            headers=alice_headers,
            data={"amount": "10", "invoice_date": "2024-03-01T00:00:00"},
            files={"file": ("empty.pdf", b"", "application/pdf")},
        )
        assert response.status_code == 400

    def test_list(self, client, alice_headers, reimbursement):
        response = client.get("/reimbursements", headers=alice_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["reimbursements"][0]["id"] == reimbursement["id"]

    def test_list_filtered_by_status(self, client, alice_headers, reimbursement):
        response = client.get("/reimbursements", headers=alice_headers, params={"status": "approved"})
        assert response.status_code == 200
        assert response.json()["total"] == 0

    def test_other_users_cannot_see(self, client, bob_headers, reimbursement):
        assert client.get("/reimbursements", headers=bob_headers).json()["total"] == 0
        response = client.get(f"/reimbursements/{reimbursement['id']}", headers=bob_headers)
        assert response.status_code == 404

    def test_download_file(self, client, alice_headers, reimbursement):
        response = client.get(f"/reimbursements/{reimbursement['id']}/file", headers=alice_headers)
        assert response.status_code == 200
        assert response.content == INVOICE[1]
        assert response.headers["content-type"] == "application/pdf"
        assert 'filename="invoice.pdf"' in response.headers["content-disposition"]

    def test_update_pending(self, client, alice_headers, reimbursement):
        response = client.put(
            f"/reimbursements/{reimbursement['id']}",
            headers=alice_headers,
            json={"description": "Conference ticket and hotel"},
        )
        assert response.status_code == 200
        assert response.json()["description"] == "Conference ticket and hotel"

    def test_update_approved_rejected(self, client, alice_headers, reimbursement, db_session):
        record = db_session.get(Reimbursement, reimbursement["id"])
        record.status = ReimbursementStatus.APPROVED
        db_session.commit()

        response = client.put(
            f"/reimbursements/{reimbursement['id']}",
            headers=alice_headers,
            json={"description": "Changed"},
        )
        assert response.status_code == 404

        response = client.delete(f"/reimbursements/{reimbursement['id']}", headers=alice_headers)
        assert response.status_code == 404

    def test_delete_removes_attachment(self, client, alice_headers, reimbursement, mock_blob_storage):
        response = client.delete(f"/reimbursements/{reimbursement['id']}", headers=alice_headers)
        assert response.status_code == 200
        assert mock_blob_storage._storage == {}

        response = client.get(f"/reimbursements/{reimbursement['id']}", headers=alice_headers)
        assert response.status_code == 404

    def test_dashboard_counts(self, client, alice_headers, reimbursement):
        data = client.get("/dashboard", headers=alice_headers).json()
        assert data["reimbursements"]["pending"] == 1
        assert data["reimbursements"]["approved"] == 0


class TestOutOfOffice:
    """Tests for out-of-office endpoints."""

    def test_requires_auth(self, client):
        assert client.get("/ooo").status_code == 401

    def test_create_and_get(self, client, alice_headers, alice):
        response = client.post("/ooo", headers=alice_headers, json=ooo_payload())
        assert response.status_code == 201
        record = response.json()
        assert record["active"] is True

        response = client.get(f"/ooo/{record['id']}", headers=alice_headers)
        assert response.status_code == 200
        assert response.json()["reason"] == "Vacation"

    def test_create_rejects_inverted_range(self, client, alice_headers, alice):
        response = client.post(
            "/ooo",
            headers=alice_headers,
            json=ooo_payload(end_date="2024-06-30T00:00:00Z"),
        )
        assert response.status_code == 422

    def test_create_with_mixed_offsets(self, client, alice_headers, alice):
        response = client.post(
            "/ooo",
            headers=alice_headers,
            json=ooo_payload(start_date="2026-01-01T00:00:00Z", end_date="2026-01-05T00:00:00"),
        )
        assert response.status_code == 201

    def test_create_rejects_inverted_mixed_offsets(self, client, alice_headers, alice):
        response = client.post(
            "/ooo",
            headers=alice_headers,
            json=ooo_payload(start_date="2026-01-05T00:00:00", end_date="2026-01-05T02:00:00+03:00"),
        )
        assert response.status_code == 422

    def test_list_active_filter(self, client, alice_headers, alice):
        client.post("/ooo", headers=alice_headers, json=ooo_payload())
        client.post("/ooo", headers=alice_headers, json=ooo_payload(active=False))

        assert client.get("/ooo", headers=alice_headers).json()["total"] == 2
        active = client.get("/ooo", headers=alice_headers, params={"active": "true"}).json()
        assert active["total"] == 1
        assert active["ooo"][0]["active"] is True

    def test_update(self, client, alice_headers, alice):
        record = client.post("/ooo", headers=alice_headers, json=ooo_payload()).json()

        response = client.put(
            f"/ooo/{record['id']}",
            headers=alice_headers,
            json={"active": False, "message": "Extended"},
        )
        assert response.status_code == 200
        assert response.json()["active"] is False
        assert response.json()["message"] == "Extended"

    def test_update_rejects_inverted_range(self, client, alice_headers, alice):
        record = client.post("/ooo", headers=alice_headers, json=ooo_payload()).json()

        response = client.put(
            f"/ooo/{record['id']}",
            headers=alice_headers,
            json={"end_date": "2024-06-01T00:00:00Z"},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "End date must be after start date"

    @pytest.mark.parametrize("field", ["active", "start_date", "end_date", "reason", "message"])
    def test_update_rejects_null(self, client, alice_headers, alice, field):
        record = client.post("/ooo", headers=alice_headers, json=ooo_payload()).json()

        response = client.put(f"/ooo/{record['id']}", headers=alice_headers, json={field: None})
        assert response.status_code == 422

        unchanged = client.get(f"/ooo/{record['id']}", headers=alice_headers).json()
        assert unchanged["reason"] == "Vacation"

    def test_update_clears_emergency_contact(self, client, alice_headers, alice):
        record = client.post(
            "/ooo", headers=alice_headers, json=ooo_payload(emergency_contact="+1 555 0100")
        ).json()

        response = client.put(
            f"/ooo/{record['id']}",
            headers=alice_headers,
            json={"emergency_contact": None},
        )
        assert response.status_code == 200
        assert response.json()["emergency_contact"] is None

    def test_delete(self, client, alice_headers, alice):
        record = client.post("/ooo", headers=alice_headers, json=ooo_payload()).json()

        assert client.delete(f"/ooo/{record['id']}", headers=alice_headers).status_code == 200
        assert client.get(f"/ooo/{record['id']}", headers=alice_headers).status_code == 404

    def test_missing_record(self, client, alice_headers, alice):
        response = client.delete("/ooo/9999", headers=alice_headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "OOO request not found"
