from sqlalchemy import select

from app.laptrack.db.models import AuditEvent
from tests.laptrack_helpers import auth_headers, create_company, create_laptop, seed_staff


def test_register_laptop(client, db_session):
    company = seed_staff(db_session)
    headers = auth_headers(client, "warehouse-1")

    response = client.post(
        "/laptrack/laptops",
        json={
            "serial_number": "  SN-NEW-1 ",
            "brand": "Lenovo",
            "model": "ThinkPad X1",
            "status": "at_warehouse",
            "client_company_id": str(company.id),
        },
        headers=headers,
    )

    assert response.status_code == 201, response.json()
    body = response.json()
    assert body["serial_number"] == "SN-NEW-1"
    assert body["status"] == "at_warehouse"
    event = db_session.execute(select(AuditEvent).where(AuditEvent.action == "laptop.create")).scalar_one()
    assert event.entity_id == body["id"]


def test_register_laptop_validation(client, db_session):
    seed_staff(db_session)
    headers = auth_headers(client, "logistics-1")

    cases = [
        ({"serial_number": "   "}, "laptop serial number is required"),
        ({"serial_number": "SN-A", "status": "lost"}, "invalid laptop status"),
        ({"serial_number": "SN-B", "status": "delivered"}, "laptops cannot be registered as delivered"),
        ({"serial_number": "SN-C", "brand": "x" * 101}, "laptop brand must be less than 100 characters"),
        (
            {"serial_number": "SN-D", "client_company_id": "3f1e1e9a-0000-4000-8000-000000000000"},
            "client company not found",
        ),
    ]
    for payload, message in cases:
        response = client.post("/laptrack/laptops", json=payload, headers=headers)
        assert response.status_code == 422, payload
        assert response.json()["details"]["message"] == message


def test_register_duplicate_serial(client, db_session):
    seed_staff(db_session)
    create_laptop(db_session, serial_number="SN-DUP")

    response = client.post(
        "/laptrack/laptops",
        json={"serial_number": "SN-DUP"},
        headers=auth_headers(client, "logistics-1"),
    )

    assert response.status_code == 409
    assert response.json()["code"] == "DUPLICATE_SERIAL_NUMBER"


def test_register_laptop_roles(client, db_session):
    seed_staff(db_session)

    as_client = client.post(
        "/laptrack/laptops",
        json={"serial_number": "SN-CL"},
        headers=auth_headers(client, "client-acme"),
    )
    as_pm = client.post(
        "/laptrack/laptops",
        json={"serial_number": "SN-PM"},
        headers=auth_headers(client, "pm-1"),
    )

    assert as_client.status_code == 403
    assert as_pm.status_code == 403


def test_client_sees_only_own_laptops(client, db_session):
    company = seed_staff(db_session)
    other = create_company(db_session, name="Globex")
    own = create_laptop(db_session, serial_number="SN-OWN", company=company)
    foreign = create_laptop(db_session, serial_number="SN-FOREIGN", company=other)
    headers = auth_headers(client, "client-acme")

    own_response = client.get(f"/laptrack/laptops/{own.id}", headers=headers)
    foreign_response = client.get(f"/laptrack/laptops/{foreign.id}", headers=headers)
    staff_response = client.get(f"/laptrack/laptops/{foreign.id}", headers=auth_headers(client, "pm-1"))

    assert own_response.status_code == 200
    assert foreign_response.status_code == 403
    assert foreign_response.json()["code"] == "COMPANY_SCOPE_DENIED"
    assert staff_response.status_code == 200


def test_unknown_laptop(client, db_session):
    seed_staff(db_session)

    response = client.get(
        "/laptrack/laptops/3f1e1e9a-0000-4000-8000-000000000000",
        headers=auth_headers(client, "logistics-1"),
    )

    assert response.status_code == 404
