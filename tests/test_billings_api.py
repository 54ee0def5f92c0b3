import pytest
from fastapi.testclient import TestClient

from casebook.app.db.base import Base
from casebook.app.db.session import SessionLocal, engine
from casebook.app.main import app
from casebook.app.models.case import Case
from casebook.app.models.client import Client


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def register_and_login(client: TestClient, email: str, password: str) -> str:
    client.post("/auth/register", json={"email": email, "password": password})
    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200
    return resp.json()["access_token"]


def create_case() -> int:
    db = SessionLocal()
    try:
        client = Client(client_number="000001", company_name="Acme Holdings")
        db.add(client)
        db.flush()
        case = Case(case_number="CAS-000001", title="Acme v. Doe", client_id=client.id, currency="PHP")
        db.add(case)
        db.commit()
        return case.id
    finally:
        db.close()


def create_billing(client: TestClient, token: str, case_id: int, **overrides):
    body = {
        "title": "Retainer",
        "case_id": case_id,
        "billing_type": "oneTime",
        "billing_start": "2030-01-01",
        "due_date": "2030-02-01",
        "items": [],
    }
    body.update(overrides)
    return client.post("/billings/", json=body, headers={"Authorization": f"Bearer {token}"})


def test_billing_routes_require_auth():
    client = TestClient(app)
    assert client.get("/billings/").status_code in (401, 403)


def test_create_and_fetch_billing():
    client = TestClient(app)
    token = register_and_login(client, "bill1@example.com", "secret")
    case_id = create_case()

    resp = create_billing(
        client,
        token,
        case_id,
        items=[{"particulars": "Consultation", "quantity": 2, "price": "100", "discount": "10", "vat": 12}],
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["bill_number"] == "BILL-000001"
    assert data["grand_total"] == "201.60"
    assert data["status"] == "unpaid"
    assert data["items"][0]["amount"] == "201.60"

    detail = client.get(f"/billings/{data['id']}", headers={"Authorization": f"Bearer {token}"})
    assert detail.status_code == 200
    assert detail.json()["due_amount"] == "201.60"
    assert detail.json()["payments"] == []


def test_missing_required_field_is_rejected():
    client = TestClient(app)
    token = register_and_login(client, "bill2@example.com", "secret")
    case_id = create_case()
    resp = client.post(
        "/billings/",
        json={"case_id": case_id, "billing_type": "oneTime", "billing_start": "2030-01-01", "due_date": "2030-02-01"},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert resp.status_code == 422


def test_domain_errors_carry_status_and_field():
    client = TestClient(app)
    token = register_and_login(client, "bill3@example.com", "secret")
    case_id = create_case()

    resp = create_billing(client, token, 999)
    assert resp.status_code == 404
    assert resp.json()["type"] == "NotFoundError"

    resp = create_billing(client, token, case_id, billing_type="timeBased")
    assert resp.status_code == 422
    assert resp.json()["field"] == "billing_end"

    assert create_billing(client, token, case_id, bill_number="BILL-000100").status_code == 201
    resp = create_billing(client, token, case_id, bill_number="BILL-000100")
    assert resp.status_code == 409


def test_time_based_item_edit_is_forbidden():
    client = TestClient(app)
    token = register_and_login(client, "bill4@example.com", "secret")
    case_id = create_case()
    billing = create_billing(client, token, case_id, billing_type="timeBased", billing_end="2030-01-31").json()

    resp = client.patch(
        f"/billings/{billing['id']}",
        json={"items": [{"particulars": "Extra", "quantity": 1, "price": "10"}]},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert resp.status_code == 403
    detail = client.get(f"/billings/{billing['id']}", headers={"Authorization": f"Bearer {token}"}).json()
    assert detail["items"] == []


def test_list_filter_and_delete():
    client = TestClient(app)
    token = register_and_login(client, "bill5@example.com", "secret")
    headers = {"Authorization": f"Bearer {token}"}
    case_id = create_case()
    first = create_billing(client, token, case_id, title="Advisory").json()
    create_billing(client, token, case_id, title="Litigation")

    resp = client.get("/billings/", params={"search": "litig"}, headers=headers)
    assert resp.status_code == 200
    page = resp.json()
    assert page["total"] == 1
    assert page["items"][0]["title"] == "Litigation"

    assert client.get("/billings/", params={"sort_by": "nope"}, headers=headers).status_code == 422

    assert client.delete(f"/billings/{first['id']}", headers=headers).status_code == 204
    assert client.get(f"/billings/{first['id']}", headers=headers).status_code == 404
    assert client.get("/billings/", headers=headers).json()["total"] == 1


def test_stats_endpoint():
    client = TestClient(app)
    token = register_and_login(client, "bill6@example.com", "secret")
    headers = {"Authorization": f"Bearer {token}"}
    case_id = create_case()
    create_billing(client, token, case_id, items=[{"quantity": 1, "price": "250"}])

    resp = client.get("/billings/stats", headers=headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["total_billings"] == 1
    assert data["total_amount"] == "250.00"
    assert data["total_due"] == "250.00"
