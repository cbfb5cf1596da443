"""Integration tests for API endpoints"""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from fastapi.testclient import TestClient
from realty_gateway.config import settings
from realty_gateway.infrastructure.database.models import Client
from realty_gateway.infrastructure.database.repositories import ClientRepository, InstallmentRepository

CLIENT_USER_ID = 100
SELLER_ID = 200
OTHER_SELLER_ID = 201
ADMIN_ID = 1


@pytest.fixture
def seeded(make_client):
    return make_client()


@pytest.fixture
def first_installment_id(db, seeded) -> int:
    return InstallmentRepository(db).list_installments(client_id=seeded.id)[0].id


def _submit(client: TestClient, headers, installment_id: int, amount: str = "100.00", files=None, **form):
    data = {
        "installment_id": str(installment_id),
        "amount": amount,
        "payment_method": "bank_transfer",
        "reference_number": "TRX-001",
    }
    data.update(form)
    return client.post("/v1/payments", data=data, files=files, headers=headers)


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "realty_payment_decisions_total" in response.text


def test_request_id_is_propagated(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_missing_authentication(client: TestClient, first_installment_id):
    response = _submit(client, {}, first_installment_id)
    assert response.status_code == 401
    assert response.json()["detail"] == "Authentication required"


def test_unknown_role_rejected(client: TestClient, first_installment_id):
    response = _submit(client, {"X-User-ID": "100", "X-User-Role": "superuser"}, first_installment_id)
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid authentication context"


def test_submit_payment_with_proof(client: TestClient, auth_headers, first_installment_id):
    """Test POST /v1/payments stores proof and notifies the seller"""
    response = _submit(
        client,
        auth_headers(CLIENT_USER_ID, "client"),
        first_installment_id,
        files={"proof": ("receipt.pdf", b"%PDF-1.4 receipt", "application/pdf")},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "pending"
    assert data["installment_id"] == first_installment_id
    assert Decimal(data["amount"]) == Decimal("100.00")
    assert data["has_proof"] is True
    assert "proof_file_path" not in data

    installment = client.get(
        f"/v1/installments/{first_installment_id}",
        headers=auth_headers(CLIENT_USER_ID, "client"),
    ).json()
    assert installment["status"] == "pending_approval"

    inbox = client.get("/v1/notifications", headers=auth_headers(SELLER_ID, "seller")).json()
    assert inbox["count"] == 1
    assert inbox["notifications"][0]["type"] == "payment_uploaded"
    assert inbox["notifications"][0]["related_payment_id"] == data["id"]

    proof = client.get(f"/v1/payments/{data['id']}/proof", headers=auth_headers(SELLER_ID, "seller"))
    assert proof.status_code == 200
    assert proof.content == b"%PDF-1.4 receipt"


def test_submit_payment_amount_mismatch(client: TestClient, auth_headers, first_installment_id):
    response = _submit(client, auth_headers(CLIENT_USER_ID, "client"), first_installment_id, amount="99.99")

    assert response.status_code == 400
    assert response.json()["detail"] == "Payment amount must match installment amount"


def test_submit_payment_rejects_file_type(client: TestClient, auth_headers, first_installment_id):
    response = _submit(
        client,
        auth_headers(CLIENT_USER_ID, "client"),
        first_installment_id,
        files={"proof": ("notes.txt", b"hello", "text/plain")},
    )

    assert response.status_code == 400
    assert "Invalid file type" in response.json()["detail"]


def test_submit_twice_for_same_installment(client: TestClient, auth_headers, first_installment_id):
    headers = auth_headers(CLIENT_USER_ID, "client")
    assert _submit(client, headers, first_installment_id).status_code == 201

    response = _submit(client, headers, first_installment_id)
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid installment or installment not pending"


def test_client_cannot_pay_someone_elses_installment(client: TestClient, db, make_client, auth_headers):
    owner = make_client(user_id=CLIENT_USER_ID)
    make_client(user_id=101)
    installment_id = InstallmentRepository(db).list_installments(client_id=owner.id)[0].id

    response = _submit(client, auth_headers(101, "client"), installment_id)
    assert response.status_code == 400


def test_staff_submission_requires_client_id(client: TestClient, seeded, auth_headers, first_installment_id):
    headers = auth_headers(SELLER_ID, "seller")

    response = _submit(client, headers, first_installment_id)
    assert response.status_code == 400
    assert response.json()["detail"] == "client_id is required"

    response = _submit(client, headers, first_installment_id, client_id=str(seeded.id))
    assert response.status_code == 201


def _pending_payment_id(client: TestClient, auth_headers, installment_id: int) -> int:
    response = _submit(client, auth_headers(CLIENT_USER_ID, "client"), installment_id)
    assert response.status_code == 201
    return response.json()["id"]


def test_approve_payment(client: TestClient, db, seeded, auth_headers, first_installment_id):
    """Test PUT /v1/payments/{id}/decision settles the installment"""
    payment_id = _pending_payment_id(client, auth_headers, first_installment_id)

    response = client.put(
        f"/v1/payments/{payment_id}/decision",
        json={"status": "approved"},
        headers=auth_headers(SELLER_ID, "seller"),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "approved"
    assert data["approved_by"] == SELLER_ID
    assert data["approved_at"] is not None

    assert ClientRepository(db).get(seeded.id).remaining_balance == Decimal("200.00")

    inbox = client.get("/v1/notifications", headers=auth_headers(CLIENT_USER_ID, "client")).json()
    assert inbox["count"] == 1
    assert inbox["notifications"][0]["title"] == "Payment Approved"


def test_repeat_decision_conflict(client: TestClient, db, seeded, auth_headers, first_installment_id):
    """Test a decided payment answers 409 and the balance moves once"""
    payment_id = _pending_payment_id(client, auth_headers, first_installment_id)
    headers = auth_headers(SELLER_ID, "seller")

    first = client.put(f"/v1/payments/{payment_id}/decision", json={"status": "approved"}, headers=headers)
    assert first.status_code == 200

    second = client.put(f"/v1/payments/{payment_id}/decision", json={"status": "approved"}, headers=headers)
    assert second.status_code == 409
    assert second.json()["detail"] == f"Payment {payment_id} has already been approved"

    assert ClientRepository(db).get(seeded.id).remaining_balance == Decimal("200.00")


def test_reject_payment(client: TestClient, auth_headers, first_installment_id):
    payment_id = _pending_payment_id(client, auth_headers, first_installment_id)

    response = client.put(
        f"/v1/payments/{payment_id}/decision",
        json={"status": "rejected", "notes": "Transfer not found"},
        headers=auth_headers(ADMIN_ID, "real_estate_admin"),
    )

    assert response.status_code == 200
    assert response.json()["status"] == "rejected"
    assert response.json()["notes"] == "Transfer not found"

    # Installment is open again
    assert _submit(client, auth_headers(CLIENT_USER_ID, "client"), first_installment_id).status_code == 201


def test_decision_authorization(client: TestClient, auth_headers, first_installment_id):
    payment_id = _pending_payment_id(client, auth_headers, first_installment_id)
    body = {"status": "approved"}

    as_client = client.put(f"/v1/payments/{payment_id}/decision", json=body, headers=auth_headers(CLIENT_USER_ID, "client"))
    assert as_client.status_code == 403
    assert as_client.json()["detail"] == "Insufficient permissions"

    other_seller = client.put(
        f"/v1/payments/{payment_id}/decision",
        json=body,
        headers=auth_headers(OTHER_SELLER_ID, "seller"),
    )
    assert other_seller.status_code == 403
    assert other_seller.json()["detail"] == "Access denied: not assigned to this client"


def test_decision_validation(client: TestClient, auth_headers, first_installment_id):
    headers = auth_headers(SELLER_ID, "seller")

    missing = client.put("/v1/payments/9999/decision", json={"status": "approved"}, headers=headers)
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Payment not found"

    payment_id = _pending_payment_id(client, auth_headers, first_installment_id)
    invalid = client.put(f"/v1/payments/{payment_id}/decision", json={"status": "maybe"}, headers=headers)
    assert invalid.status_code == 422


def test_pending_payments_scoped_to_seller(client: TestClient, auth_headers, first_installment_id):
    _pending_payment_id(client, auth_headers, first_installment_id)

    own = client.get("/v1/payments/pending", headers=auth_headers(SELLER_ID, "seller")).json()
    assert own["count"] == 1

    # seller_id query parameter cannot widen a seller's view
    other = client.get(
        "/v1/payments/pending",
        params={"seller_id": SELLER_ID},
        headers=auth_headers(OTHER_SELLER_ID, "seller"),
    ).json()
    assert other["count"] == 0


def test_payment_history_and_statistics(client: TestClient, seeded, auth_headers, first_installment_id):
    payment_id = _pending_payment_id(client, auth_headers, first_installment_id)
    client.put(
        f"/v1/payments/{payment_id}/decision",
        json={"status": "approved"},
        headers=auth_headers(SELLER_ID, "seller"),
    )

    mine = client.get("/v1/payments/mine", headers=auth_headers(CLIENT_USER_ID, "client")).json()
    assert mine["count"] == 1

    history = client.get(f"/v1/clients/{seeded.id}/payments", headers=auth_headers(SELLER_ID, "seller")).json()
    assert history["payments"][0]["id"] == payment_id

    stats = client.get("/v1/payments/statistics", headers=auth_headers(CLIENT_USER_ID, "client")).json()
    assert stats["total_payments"] == 1
    assert stats["approved_payments"] == 1
    assert Decimal(stats["total_approved_amount"]) == Decimal("100.00")


def test_delete_payment_proof(client: TestClient, auth_headers, first_installment_id):
    response = _submit(
        client,
        auth_headers(CLIENT_USER_ID, "client"),
        first_installment_id,
        files={"proof": ("receipt.png", b"png-bytes", "image/png")},
    )
    payment_id = response.json()["id"]

    forbidden = client.delete(f"/v1/payments/{payment_id}/proof", headers=auth_headers(SELLER_ID, "seller"))
    assert forbidden.status_code == 403

    deleted = client.delete(f"/v1/payments/{payment_id}/proof", headers=auth_headers(ADMIN_ID, "system_admin"))
    assert deleted.status_code == 200
    assert deleted.json()["message"] == "Payment proof deleted successfully"

    payment = client.get(f"/v1/payments/{payment_id}", headers=auth_headers(ADMIN_ID, "system_admin")).json()
    assert payment["has_proof"] is False
    assert payment["status"] == "pending"

    proof = client.get(f"/v1/payments/{payment_id}/proof", headers=auth_headers(ADMIN_ID, "system_admin"))
    assert proof.status_code == 404


def test_overdue_and_upcoming_installments(client: TestClient, make_client, auth_headers):
    today = date.today()
    make_client(user_id=100, installments=1, start_date=today - timedelta(days=5))
    make_client(user_id=101, installments=1, start_date=today + timedelta(days=5))
    headers = auth_headers(ADMIN_ID, "real_estate_admin")

    overdue = client.get("/v1/installments/overdue", headers=headers).json()
    assert overdue["count"] == 1
    assert overdue["installments"][0]["user_id"] == 100
    assert overdue["installments"][0]["days_overdue"] == 5

    upcoming = client.get("/v1/installments/upcoming", headers=headers).json()
    assert upcoming["count"] == 1
    assert upcoming["installments"][0]["user_id"] == 101
    assert upcoming["installments"][0]["days_until_due"] == 5


def test_installment_statistics_and_summary(client: TestClient, seeded, auth_headers):
    stats = client.get("/v1/installments/statistics", headers=auth_headers(ADMIN_ID, "system_admin")).json()
    assert stats["total_installments"] == 3
    assert stats["pending_installments"] == 3
    assert Decimal(stats["total_pending_amount"]) == Decimal("300.00")

    forbidden = client.get("/v1/installments/statistics", headers=auth_headers(SELLER_ID, "seller"))
    assert forbidden.status_code == 403

    summary = client.get(
        f"/v1/clients/{seeded.id}/installments/summary",
        headers=auth_headers(CLIENT_USER_ID, "client"),
    ).json()
    assert summary["total_installments"] == 3
    assert summary["paid_installments"] == 0
    assert Decimal(summary["total_remaining"]) == Decimal("300.00")
    assert summary["next_due_date"] is not None


def test_list_my_installments(client: TestClient, seeded, auth_headers):
    response = client.get("/v1/installments/mine", headers=auth_headers(CLIENT_USER_ID, "client"))

    assert response.status_code == 200
    numbers = [i["installment_number"] for i in response.json()["installments"]]
    assert numbers == [1, 2, 3]


def test_create_installment_schedule(client: TestClient, db, auth_headers):
    """Test schedule setup seeds the remaining balance"""
    financed = Client(user_id=300, assigned_seller_id=SELLER_ID, real_estate_id=1)
    db.add(financed)
    db.commit()
    client_id = financed.id
    headers = auth_headers(ADMIN_ID, "real_estate_admin")
    body = {"total_installments": 12, "installment_amount": "1500.00", "start_date": "2030-01-31"}

    response = client.post(f"/v1/clients/{client_id}/installments/schedule", json=body, headers=headers)

    assert response.status_code == 201
    data = response.json()
    assert data["count"] == 12
    assert data["installments"][1]["due_date"] == "2030-02-28"
    assert ClientRepository(db).get(client_id).remaining_balance == Decimal("18000.00")

    again = client.post(f"/v1/clients/{client_id}/installments/schedule", json=body, headers=headers)
    assert again.status_code == 400
    assert again.json()["detail"] == "Installment schedule already exists for this client"


def test_schedule_for_unknown_client(client: TestClient, auth_headers):
    body = {"total_installments": 3, "installment_amount": "100.00"}
    response = client.post(
        "/v1/clients/9999/installments/schedule",
        json=body,
        headers=auth_headers(ADMIN_ID, "system_admin"),
    )
    assert response.status_code == 404


def test_update_installment_status(client: TestClient, auth_headers, first_installment_id):
    headers = auth_headers(ADMIN_ID, "real_estate_admin")

    response = client.put(f"/v1/installments/{first_installment_id}/status", json={"status": "late"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["status"] == "late"

    reserved = client.put(
        f"/v1/installments/{first_installment_id}/status",
        json={"status": "pending_approval"},
        headers=headers,
    )
    assert reserved.status_code == 400
    assert reserved.json()["detail"] == "Invalid status"


def test_status_override_refused_while_payment_under_review(client: TestClient, db, seeded, auth_headers, first_installment_id):
    payment_id = _pending_payment_id(client, auth_headers, first_installment_id)
    headers = auth_headers(ADMIN_ID, "real_estate_admin")

    reopened = client.put(f"/v1/installments/{first_installment_id}/status", json={"status": "pending"}, headers=headers)
    assert reopened.status_code == 400
    assert reopened.json()["detail"] == "Installment status cannot be changed from pending_approval"

    approved = client.put(f"/v1/payments/{payment_id}/decision", json={"status": "approved"}, headers=headers)
    assert approved.status_code == 200

    after_paid = client.put(f"/v1/installments/{first_installment_id}/status", json={"status": "pending"}, headers=headers)
    assert after_paid.status_code == 400
    assert after_paid.json()["detail"] == "Installment status cannot be changed from paid"
    assert ClientRepository(db).get(seeded.id).remaining_balance == Decimal("200.00")


def test_access_denied_response_keeps_request_id(client: TestClient, seeded, auth_headers):
    headers = {**auth_headers(OTHER_SELLER_ID, "seller"), "X-Request-ID": "req-denied"}

    response = client.get(f"/v1/clients/{seeded.id}/payments", headers=headers)

    assert response.status_code == 403
    assert response.json()["detail"] == "Access denied: not assigned to this client"
    assert response.headers["X-Request-ID"] == "req-denied"


def test_oversized_upload_rejected_before_parsing(client: TestClient, auth_headers, first_installment_id):
    oversized = b"x" * (settings.max_proof_size_bytes + settings.max_form_overhead_bytes + 1)

    response = _submit(
        client,
        auth_headers(CLIENT_USER_ID, "client"),
        first_installment_id,
        files={"proof": ("scan.pdf", oversized, "application/pdf")},
    )

    assert response.status_code == 400
    assert response.json()["detail"].startswith("File too large")
    assert client.get("/v1/payments/mine", headers=auth_headers(CLIENT_USER_ID, "client")).json()["count"] == 0
