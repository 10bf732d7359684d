from datetime import date
from decimal import Decimal
from uuid import uuid4

from crm.models import AuditLog, Customer, Disbursement
from tests.conftest import FakeResult, make_customer, sequence_handler


def test_list_customers_with_bank_filter(client, fake_db):
    fake_db.on_execute(
        sequence_handler([FakeResult(scalar=1), FakeResult(scalar=0), FakeResult(items=[make_customer()])])
    )

    response = client.get("/api/v1/customers", params={"bank": "HDFC", "q": "ravi"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["items"][0]["bank_name"] == "HDFC"
    count_sql = str(fake_db.statements[0])
    assert "customers.bank_name" in count_sql
    assert "lower(customers.name)" in count_sql or "ILIKE" in count_sql.upper()


def test_customer_meta(client, fake_db):
    fake_db.on_execute_return(FakeResult(items=["Axis", "HDFC"]))

    assert client.get("/api/v1/customers/meta/banks").json()["data"] == ["Axis", "HDFC"]
    assert client.get("/api/v1/customers/meta/statuses").json()["data"] == ["open", "close"]


def test_add_disbursement_records_audit(client, fake_db):
    customer = make_customer()
    fake_db.on_get(Customer, customer.id, customer)

    response = client.post(
        f"/api/v1/customers/{customer.id}/disbursements",
        json={"amount": "150000.50", "date": "2024-03-01", "notes": "first tranche"},
    )

    assert response.status_code == 201
    disbursement = fake_db.added_of(Disbursement)[0]
    assert disbursement.customer_id == customer.id
    assert disbursement.amount == Decimal("150000.50")
    assert disbursement.date == date(2024, 3, 1)
    audit = fake_db.added_of(AuditLog)[0]
    assert audit.action == "disbursement_added"
    assert audit.meta["amount"] == "150000.50"


def test_add_disbursement_rejects_non_positive_amount(client, fake_db):
    customer = make_customer()
    fake_db.on_get(Customer, customer.id, customer)

    response = client.post(
        f"/api/v1/customers/{customer.id}/disbursements",
        json={"amount": "0", "date": "2024-03-01"},
    )

    assert response.status_code == 422


def test_delete_disbursement_of_other_customer_is_not_found(client, fake_db):
    customer = make_customer()
    foreign = Disbursement(
        id=uuid4(), customer_id=uuid4(), amount=Decimal("10"), date=date(2024, 1, 1), notes=""
    )
    fake_db.on_get(Customer, customer.id, customer)
    fake_db.on_get(Disbursement, foreign.id, foreign)

    response = client.delete(f"/api/v1/customers/{customer.id}/disbursements/{foreign.id}")

    assert response.status_code == 404
    assert fake_db.deleted == []


def test_delete_disbursement(client, fake_db):
    customer = make_customer()
    disbursement = Disbursement(
        id=uuid4(), customer_id=customer.id, amount=Decimal("10"), date=date(2024, 1, 1), notes=""
    )
    fake_db.on_get(Customer, customer.id, customer)
    fake_db.on_get(Disbursement, disbursement.id, disbursement)

    response = client.delete(f"/api/v1/customers/{customer.id}/disbursements/{disbursement.id}")

    assert response.status_code == 200
    assert fake_db.deleted == [disbursement]
    assert fake_db.added_of(AuditLog)[0].action == "disbursement_deleted"


def test_close_customer(client, fake_db):
    customer = make_customer()
    fake_db.on_get(Customer, customer.id, customer)

    response = client.patch(f"/api/v1/customers/{customer.id}", json={"status": "close", "name": None})

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "close"
    assert customer.name == "Ravi Kumar"
    audit = fake_db.added_of(AuditLog)[0]
    assert audit.meta == {"before": {"status": "open"}, "after": {"status": "close"}}


def test_customer_status_must_be_known(client, fake_db):
    customer = make_customer()
    fake_db.on_get(Customer, customer.id, customer)

    response = client.patch(f"/api/v1/customers/{customer.id}", json={"status": "pending"})

    assert response.status_code == 422
