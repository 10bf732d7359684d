import re

import pytest

from crm.core.settings import settings
from crm.models import AuditLog, Customer, Lead
from tests.conftest import FakeResult, entity_handler, make_case, make_customer, make_lead

CODE_PATTERN = re.compile(r"OTP for [A-Z ]+: (\d{6})")


def _code_from(outbox) -> str:
    _, _, body = outbox.messages[-1]
    match = CODE_PATTERN.search(body)
    assert match, body
    return match.group(1)


def _audit_actions(fake_db) -> list[str]:
    return [entry.action for entry in fake_db.added_of(AuditLog)]


@pytest.mark.parametrize(
    ("collection", "purpose"),
    [("leads", "export_leads"), ("cases", "export_cases"), ("customers", "export_customers")],
)
def test_request_otp_emails_owner_without_leaking_code(client, outbox, fake_db, test_user, collection, purpose):
    response = client.post(f"/api/v1/{collection}/export/request-otp")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["ok"] is True
    assert data["message"] == "OTP sent to the owner for approval."
    assert data["requester"] == {"name": test_user.name, "email": test_user.email, "ip": "testclient"}

    assert len(outbox.messages) == 1
    to, subject, body = outbox.messages[0]
    assert to == "owner@example.com"
    assert subject == f"OTP Request: {purpose}"
    assert f"Email: {test_user.email}" in body
    assert "Role: admin" in body
    assert _code_from(outbox) not in response.text
    assert _audit_actions(fake_db) == ["export_otp_requested"]
    assert fake_db.committed is True


def test_request_otp_reports_forwarded_client_ip(client, outbox):
    response = client.post(
        "/api/v1/cases/export/request-otp",
        headers={"X-Forwarded-For": "198.51.100.7, 203.0.113.9"},
    )

    assert response.json()["data"]["requester"]["ip"] == "203.0.113.9"
    assert "IP: 203.0.113.9" in outbox.messages[0][2]


def test_verify_returns_export_rows(client, outbox, fake_db):
    client.post("/api/v1/cases/export/request-otp")
    code = _code_from(outbox)
    fake_db.on_execute_return(FakeResult(items=[make_case(case_id="LEAD-000007", task="Complete")]))

    response = client.post("/api/v1/cases/export/verify", json={"otp": code})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["ok"] is True
    assert len(data["items"]) == 1
    row = data["items"][0]
    assert row["case_id"] == "LEAD-000007"
    assert row["task"] == "Complete"
    assert "pan" not in row
    assert _audit_actions(fake_db) == ["export_otp_requested", "export_completed"]


def test_verify_exports_unfiltered_leads_and_customers(client, outbox, fake_db):
    leads = [make_lead(status="archived"), make_lead(lead_id="LEAD-000002")]
    fake_db.on_execute(entity_handler(Lead, FakeResult(items=leads)))
    fake_db.on_execute(entity_handler(Customer, FakeResult(items=[make_customer(status="close")])))

    client.post("/api/v1/leads/export/request-otp")
    response = client.post("/api/v1/leads/export/verify", json={"otp": _code_from(outbox)})
    assert [item["status"] for item in response.json()["data"]["items"]] == ["archived", "free_pool"]

    client.post("/api/v1/customers/export/request-otp")
    response = client.post("/api/v1/customers/export/verify", json={"otp": _code_from(outbox)})
    assert response.json()["data"]["items"][0]["status"] == "close"


def test_verify_code_cannot_be_replayed(client, outbox):
    client.post("/api/v1/cases/export/request-otp")
    code = _code_from(outbox)

    assert client.post("/api/v1/cases/export/verify", json={"otp": code}).status_code == 200
    replay = client.post("/api/v1/cases/export/verify", json={"otp": code})

    assert replay.status_code == 401
    assert replay.json()["message"] == "OTP not found"


def test_verify_accepts_numeric_code(client, outbox, fake_db):
    fake_db.on_execute_return(FakeResult(items=[]))
    client.post("/api/v1/cases/export/request-otp")

    response = client.post("/api/v1/cases/export/verify", json={"otp": int(_code_from(outbox))})

    assert response.status_code == 200
    assert response.json()["data"] == {"ok": True, "items": []}


@pytest.mark.parametrize("body", [None, {}, {"otp": ""}, {"otp": "   "}, {"otp": None}])
def test_verify_requires_otp(client, body):
    if body is None:
        response = client.post("/api/v1/cases/export/verify")
    else:
        response = client.post("/api/v1/cases/export/verify", json=body)

    assert response.status_code == 400
    assert response.json()["message"] == "OTP is required."


def test_verify_without_pending_code(client):
    response = client.post("/api/v1/leads/export/verify", json={"otp": "123456"})

    assert response.status_code == 401
    assert response.json()["message"] == "OTP not found"
    assert response.json()["code"] == "otp_rejected"
    assert response.json()["details"] == {"reason": "not_found"}


def test_verify_wrong_code_then_correct_code(client, outbox, fake_db):
    client.post("/api/v1/customers/export/request-otp")
    code = _code_from(outbox)
    wrong = "100000" if code != "100000" else "100001"

    mismatch = client.post("/api/v1/customers/export/verify", json={"otp": wrong})
    ok = client.post("/api/v1/customers/export/verify", json={"otp": code})

    assert mismatch.status_code == 401
    assert mismatch.json()["message"] == "Invalid OTP"
    assert ok.status_code == 200


def test_verify_after_ttl_reports_expired(client, outbox, clock):
    client.post("/api/v1/cases/export/request-otp")
    code = _code_from(outbox)
    clock.advance(301)

    response = client.post("/api/v1/cases/export/verify", json={"otp": code})

    assert response.status_code == 401
    assert response.json()["message"] == "OTP expired"


def test_code_for_one_collection_does_not_unlock_another(client, outbox):
    client.post("/api/v1/leads/export/request-otp")

    response = client.post("/api/v1/customers/export/verify", json={"otp": _code_from(outbox)})

    assert response.status_code == 401
    assert response.json()["message"] == "OTP not found"


def test_delivery_failure_is_swallowed(client, outbox, caplog):
    outbox.fail_with = "smtp unavailable"

    response = client.post("/api/v1/cases/export/request-otp")

    assert response.status_code == 200
    assert response.json()["data"]["ok"] is True
    assert len(outbox.messages) == 1
    assert "smtp unavailable" in caplog.text


def test_missing_owner_address_skips_email(client, outbox, monkeypatch):
    monkeypatch.setattr(settings, "owner_email", None)

    response = client.post("/api/v1/cases/export/request-otp")

    assert response.status_code == 200
    assert outbox.messages == []


def test_export_requires_permission(client, outbox, test_user):
    test_user.role = "officer"

    response = client.post("/api/v1/cases/export/request-otp")

    assert response.status_code == 403
    assert response.json()["message"] == "Missing permission: case.export"
    assert outbox.messages == []
