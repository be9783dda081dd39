import uuid
from datetime import datetime

from sqlalchemy import func, select

from app.laptrack.db.models import AuditEvent, Laptop, PickupForm, ReceptionReport, ShipmentLaptop, User
from tests.laptrack_helpers import (
    auth_headers,
    bulk_payload,
    create_engineer,
    create_laptop,
    engineer_payload,
    seed_staff,
    single_payload,
)


def _add_report(db_session, laptop, username="warehouse-1"):
    warehouse = db_session.execute(select(User).where(User.username == username)).scalars().one()
    report = ReceptionReport(
        id=uuid.uuid4(),
        laptop_id=laptop.id,
        warehouse_user_id=warehouse.id,
        received_at=datetime.utcnow(),
        photo_serial_number="/uploads/a.png",
        photo_external_condition="/uploads/b.png",
        photo_working_condition="/uploads/c.png",
        status="pending",
    )
    db_session.add(report)
    db_session.commit()
    return report


def test_single_full_journey_creates_one_linked_laptop(client, db_session, outbox):
    company = seed_staff(db_session)
    headers = auth_headers(client, "logistics-1")

    response = client.post("/laptrack/shipments", json=single_payload(company), headers=headers)

    assert response.status_code == 201
    body = response.json()
    assert body["shipment_type"] == "single_full_journey"
    assert body["status"] == "pending_pickup"
    assert body["laptop_count"] == 1
    assert body["pickup_scheduled_date"] is not None
    assert len(body["laptops"]) == 1
    laptop = body["laptops"][0]
    assert laptop["serial_number"] == "SN1"
    assert laptop["status"] == "in_transit_to_warehouse"
    assert laptop["client_company_id"] == str(company.id)
    assert body["pickup_form"]["form_data"]["contact_email"] == "dana@acme.example"
    assert body["can_edit"] is True
    assert body["allowed_next_statuses"] == ["pickup_scheduled"]

    assert [message.kind for message in outbox.sent] == ["pickup_confirmation"]
    assert outbox.sent[0].to == ["dana@acme.example"]

    event = db_session.execute(select(AuditEvent).where(AuditEvent.action == "shipment.create")).scalars().one()
    assert event.entity_id == body["id"]
    assert event.actor == "logistics-1"
    assert event.event_metadata["legacy_form"] is False


def test_legacy_payload_routes_to_single_full_journey(client, db_session):
    company = seed_staff(db_session)
    headers = auth_headers(client, "logistics-1")
    payload = single_payload(company, number_of_laptops=1)
    payload.pop("shipment_type")

    response = client.post("/laptrack/shipments", json=payload, headers=headers)

    assert response.status_code == 201
    assert response.json()["shipment_type"] == "single_full_journey"
    assert len(response.json()["laptops"]) == 1
    event = db_session.execute(select(AuditEvent).where(AuditEvent.action == "shipment.create")).scalars().one()
    assert event.event_metadata["legacy_form"] is True


def test_legacy_payload_rejects_more_than_one_laptop(client, db_session):
    company = seed_staff(db_session)
    headers = auth_headers(client, "logistics-1")
    payload = single_payload(company, number_of_laptops=3)
    payload.pop("shipment_type")

    response = client.post("/laptrack/shipments", json=payload, headers=headers)

    assert response.status_code == 422
    assert response.json()["details"]["message"] == "single full journey shipments must have exactly 1 laptop"
    assert db_session.scalar(select(func.count()).select_from(Laptop)) == 0


def test_unknown_shipment_type_is_rejected(client, db_session):
    company = seed_staff(db_session)
    headers = auth_headers(client, "logistics-1")

    response = client.post(
        "/laptrack/shipments",
        json=single_payload(company, shipment_type="drone_drop"),
        headers=headers,
    )

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"
    assert response.json()["details"]["message"] == "invalid shipment type"


def test_malformed_field_reports_field_errors(client, db_session):
    company = seed_staff(db_session)
    headers = auth_headers(client, "logistics-1")

    response = client.post(
        "/laptrack/shipments",
        json=bulk_payload(company, number_of_laptops="many"),
        headers=headers,
    )

    assert response.status_code == 422
    fields = [error["field"] for error in response.json()["details"]["errors"]]
    assert "number_of_laptops" in fields


def test_single_full_journey_validation_messages(client, db_session):
    company = seed_staff(db_session)
    headers = auth_headers(client, "logistics-1")
    cases = [
        ({"jira_ticket_number": "scop-1"}, "JIRA ticket number must be in format PROJECT-NUMBER (e.g., SCOP-67702)"),
        ({"contact_email": "not-an-email"}, "invalid email format"),
        ({"pickup_state": "ZZ"}, "invalid US state code"),
        ({"pickup_zip": "941"}, "ZIP code must be 5 digits"),
        ({"pickup_date": "2001-01-01"}, "pickup date must be in the future"),
        ({"pickup_time_slot": "midnight"}, "invalid time slot"),
        ({"laptop_serial_number": ""}, "laptop serial number is required"),
        ({"laptop_brand": "x" * 101}, "laptop brand must be less than 100 characters"),
        (
            {"include_accessories": True},
            "accessories description is required when including accessories",
        ),
    ]
    for overrides, message in cases:
        response = client.post("/laptrack/shipments", json=single_payload(company, **overrides), headers=headers)
        assert response.status_code == 422, overrides
        assert response.json()["details"]["message"] == message

    assert db_session.scalar(select(func.count()).select_from(Laptop)) == 0


def test_duplicate_serial_number_is_a_conflict(client, db_session):
    company = seed_staff(db_session)
    headers = auth_headers(client, "logistics-1")
    assert client.post("/laptrack/shipments", json=single_payload(company), headers=headers).status_code == 201

    response = client.post(
        "/laptrack/shipments",
        json=single_payload(company, jira_ticket_number="SCOP-101"),
        headers=headers,
    )

    assert response.status_code == 409
    assert response.json()["code"] == "DUPLICATE_SERIAL_NUMBER"


def test_bulk_creation_never_creates_laptops(client, db_session):
    company = seed_staff(db_session)
    headers = auth_headers(client, "logistics-1")

    response = client.post("/laptrack/shipments", json=bulk_payload(company, number_of_laptops=5), headers=headers)

    assert response.status_code == 201
    body = response.json()
    assert body["laptop_count"] == 5
    assert body["laptops"] == []
    assert body["pickup_form"] is not None
    assert db_session.scalar(select(func.count()).select_from(Laptop)) == 0
    assert db_session.scalar(select(func.count()).select_from(ShipmentLaptop)) == 0


def test_bulk_creation_rejects_engineer_and_small_counts(client, db_session):
    company = seed_staff(db_session)
    engineer = create_engineer(db_session)
    headers = auth_headers(client, "logistics-1")

    with_engineer = client.post(
        "/laptrack/shipments",
        json=bulk_payload(company, software_engineer_id=str(engineer.id)),
        headers=headers,
    )
    too_small = client.post("/laptrack/shipments", json=bulk_payload(company, number_of_laptops=1), headers=headers)
    no_dimensions = client.post("/laptrack/shipments", json=bulk_payload(company, bulk_weight=0), headers=headers)

    assert with_engineer.status_code == 422
    assert with_engineer.json()["details"]["message"] == "bulk shipments cannot have software engineer assigned"
    assert too_small.status_code == 422
    assert too_small.json()["details"]["message"] == "bulk shipments must have at least 2 laptops"
    assert no_dimensions.status_code == 422


def test_minimal_bulk_shipment_has_no_pickup_form(client, db_session, outbox):
    company = seed_staff(db_session)
    headers = auth_headers(client, "logistics-1")

    response = client.post(
        "/laptrack/shipments/bulk/minimal",
        json={"client_company_id": str(company.id), "jira_ticket_number": "SCOP-1200", "laptop_count": 5},
        headers=headers,
    )

    assert response.status_code == 201
    body = response.json()
    assert body["laptop_count"] == 5
    assert body["pickup_form"] is None
    assert body["can_edit"] is False
    assert body["edit_block_reason"] == "Cannot edit shipment without pickup form"
    assert db_session.scalar(select(func.count()).select_from(PickupForm)) == 0
    assert outbox.sent == []


def test_minimal_bulk_is_logistics_only(client, db_session):
    company = seed_staff(db_session)
    headers = auth_headers(client, "client-acme")

    response = client.post(
        "/laptrack/shipments/bulk/minimal",
        json={"client_company_id": str(company.id), "jira_ticket_number": "SCOP-1200"},
        headers=headers,
    )

    assert response.status_code == 403
    assert response.json()["code"] == "PERMISSION_DENIED"


def test_client_creates_for_own_company_only(client, db_session):
    company = seed_staff(db_session)
    headers = auth_headers(client, "client-acme")

    payload = single_payload(company)
    payload.pop("client_company_id")
    own = client.post("/laptrack/shipments", json=payload, headers=headers)
    foreign = client.post(
        "/laptrack/shipments",
        json=single_payload(company, serial_number="SN2", client_company_id=str(uuid.uuid4())),
        headers=headers,
    )

    assert own.status_code == 201
    assert own.json()["client_company_id"] == str(company.id)
    assert foreign.status_code == 403
    assert foreign.json()["code"] == "COMPANY_SCOPE_DENIED"


def test_warehouse_role_cannot_create_shipments(client, db_session):
    company = seed_staff(db_session)
    headers = auth_headers(client, "warehouse-1")

    response = client.post("/laptrack/shipments", json=single_payload(company), headers=headers)

    assert response.status_code == 403


def test_warehouse_to_engineer_requires_reception_report(client, db_session):
    company = seed_staff(db_session)
    laptop = create_laptop(db_session, serial_number="SN-W2E", status="at_warehouse", company=company)
    headers = auth_headers(client, "logistics-1")

    response = client.post("/laptrack/shipments", json=engineer_payload(laptop.id), headers=headers)

    assert response.status_code == 422
    assert "reception report" in response.json()["details"]["message"]


def test_warehouse_to_engineer_requires_available_or_warehouse_laptop(client, db_session):
    company = seed_staff(db_session)
    laptop = create_laptop(db_session, serial_number="SN-TRANSIT", status="in_transit_to_warehouse", company=company)
    _add_report(db_session, laptop)
    headers = auth_headers(client, "logistics-1")

    response = client.post("/laptrack/shipments", json=engineer_payload(laptop.id), headers=headers)

    assert response.status_code == 422
    assert "current status: in_transit_to_warehouse" in response.json()["details"]["message"]


def test_warehouse_to_engineer_moves_existing_laptop(client, db_session, outbox):
    company = seed_staff(db_session)
    laptop = create_laptop(db_session, serial_number="SN-READY", status="at_warehouse", company=company)
    _add_report(db_session, laptop)
    headers = auth_headers(client, "logistics-1")

    response = client.post("/laptrack/shipments", json=engineer_payload(laptop.id), headers=headers)

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "released_from_warehouse"
    assert body["client_company_id"] == str(company.id)
    assert body["released_warehouse_at"] is not None
    assert body["delivery_details"]["engineer_email"] == "sam@eng.example"
    assert body["pickup_form"] is None
    assert body["can_edit"] is True
    assert [item["status"] for item in body["laptops"]] == ["in_transit_to_engineer"]
    assert db_session.scalar(select(func.count()).select_from(Laptop)) == 1
    assert [message.kind for message in outbox.sent] == ["release_notification"]


def test_warehouse_to_engineer_rejects_laptop_in_active_shipment(client, db_session):
    company = seed_staff(db_session)
    laptop = create_laptop(db_session, serial_number="SN-BUSY", status="in_transit_to_warehouse", company=company)
    headers = auth_headers(client, "logistics-1")
    bulk = client.post("/laptrack/shipments", json=bulk_payload(company), headers=headers).json()
    added = client.post(
        f"/laptrack/shipments/{bulk['id']}/laptops",
        json={"laptop_id": str(laptop.id)},
        headers=headers,
    )
    assert added.status_code == 200
    _add_report(db_session, laptop)
    laptop.status = "at_warehouse"
    db_session.commit()

    response = client.post("/laptrack/shipments", json=engineer_payload(laptop.id), headers=headers)

    assert response.status_code == 409
    assert response.json()["code"] == "LAPTOP_ALREADY_IN_ACTIVE_SHIPMENT"
    assert bulk["id"] in response.json()["details"]["shipment_ids"]


def test_warehouse_to_engineer_is_logistics_only(client, db_session):
    company = seed_staff(db_session)
    laptop = create_laptop(db_session, serial_number="SN-CLIENT", status="at_warehouse", company=company)
    _add_report(db_session, laptop)
    headers = auth_headers(client, "client-acme")

    response = client.post("/laptrack/shipments", json=engineer_payload(laptop.id), headers=headers)

    assert response.status_code == 403
