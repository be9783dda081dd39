from pathlib import Path

from sqlalchemy import func, select

from app.laptrack.db.models import AuditEvent, Laptop, ReceptionReport
from tests.laptrack_helpers import (
    PNG_BYTES,
    auth_headers,
    create_laptop,
    photo_files,
    seed_staff,
)


def _submit(client, laptop_id, headers, files=None, notes="screen intact"):
    return client.post(
        f"/laptrack/laptops/{laptop_id}/reception-reports",
        data={"notes": notes},
        files=files if files is not None else photo_files(),
        headers=headers,
    )


def _files_under(path: Path) -> list[Path]:
    return [item for item in path.rglob("*") if item.is_file()]


def _report_count(db_session) -> int:
    return db_session.scalar(select(func.count()).select_from(ReceptionReport))


def test_submit_report_promotes_photos(client, db_session, storage):
    company = seed_staff(db_session)
    laptop = create_laptop(db_session, serial_number="SN-R1", status="in_transit_to_warehouse", company=company)

    response = _submit(client, laptop.id, auth_headers(client, "warehouse-1"))

    assert response.status_code == 201, response.json()
    body = response.json()
    assert body["status"] == "pending"
    assert body["notes"] == "screen intact"
    assert body["client_company_id"] == str(company.id)
    for field in ("photo_serial_number", "photo_external_condition", "photo_working_condition"):
        url = body[field]
        assert url.startswith("/uploads/reception-reports/")
        assert Path(storage.resolve_path(url)).read_bytes() == PNG_BYTES
    assert _files_under(Path(storage.staging_path)) == []

    event = db_session.execute(
        select(AuditEvent).where(AuditEvent.action == "reception_report.create")
    ).scalar_one()
    assert event.entity_id == body["id"]


def test_missing_photo_leaves_nothing_behind(client, db_session, storage):
    company = seed_staff(db_session)
    laptop = create_laptop(db_session, serial_number="SN-R2", status="at_warehouse", company=company)

    response = _submit(
        client,
        laptop.id,
        auth_headers(client, "warehouse-1"),
        files=photo_files("photo_serial_number", "photo_external_condition"),
    )

    assert response.status_code == 422
    assert response.json()["details"]["message"] == "photo_working_condition is required"
    assert _report_count(db_session) == 0
    assert _files_under(Path(storage.base_path)) == []
    assert _files_under(Path(storage.staging_path)) == []


def test_non_image_upload_is_rejected_and_cleaned_up(client, db_session, storage):
    company = seed_staff(db_session)
    laptop = create_laptop(db_session, serial_number="SN-R3", status="at_warehouse", company=company)
    files = photo_files()
    files["photo_working_condition"] = ("notes.txt", b"not a photo", "text/plain")

    response = _submit(client, laptop.id, auth_headers(client, "warehouse-1"), files=files)

    assert response.status_code == 422
    assert response.json()["details"]["message"] == "photo_working_condition must be an image"
    assert _report_count(db_session) == 0
    assert _files_under(Path(storage.staging_path)) == []


def test_report_requires_warehouse_bound_laptop(client, db_session):
    company = seed_staff(db_session)
    laptop = create_laptop(db_session, serial_number="SN-R4", status="available", company=company)

    response = _submit(client, laptop.id, auth_headers(client, "warehouse-1"))

    assert response.status_code == 422
    assert response.json()["details"]["message"] == (
        "laptop must be in transit to or at the warehouse (current status: available)"
    )


def test_only_one_pending_report_per_laptop(client, db_session):
    company = seed_staff(db_session)
    laptop = create_laptop(db_session, serial_number="SN-R5", status="at_warehouse", company=company)
    headers = auth_headers(client, "warehouse-1")

    assert _submit(client, laptop.id, headers).status_code == 201
    second = _submit(client, laptop.id, headers)

    assert second.status_code == 422
    assert second.json()["details"]["message"] == "laptop already has a pending reception report"
    assert _report_count(db_session) == 1


def test_only_warehouse_submits_reports(client, db_session):
    company = seed_staff(db_session)
    laptop = create_laptop(db_session, serial_number="SN-R6", status="at_warehouse", company=company)

    response = _submit(client, laptop.id, auth_headers(client, "logistics-1"))

    assert response.status_code == 403
    assert response.json()["code"] == "PERMISSION_DENIED"


def test_report_for_unknown_laptop(client, db_session):
    seed_staff(db_session)

    response = _submit(client, "3f1e1e9a-0000-4000-8000-000000000000", auth_headers(client, "warehouse-1"))

    assert response.status_code == 404


def test_approval_moves_laptop_to_warehouse(client, db_session):
    company = seed_staff(db_session)
    laptop = create_laptop(db_session, serial_number="SN-R7", status="in_transit_to_warehouse", company=company)
    report = _submit(client, laptop.id, auth_headers(client, "warehouse-1")).json()
    logistics = auth_headers(client, "logistics-1")

    approved = client.post(f"/laptrack/reception-reports/{report['id']}/approve", headers=logistics)
    again = client.post(f"/laptrack/reception-reports/{report['id']}/approve", headers=logistics)

    assert approved.status_code == 200
    body = approved.json()
    assert body["status"] == "approved"
    assert body["approved_by"] is not None
    assert body["approved_at"] is not None
    db_session.expire_all()
    assert db_session.get(Laptop, laptop.id).status == "at_warehouse"
    assert again.status_code == 409
    assert again.json()["code"] == "REPORT_ALREADY_APPROVED"


def test_approval_is_logistics_only(client, db_session):
    company = seed_staff(db_session)
    laptop = create_laptop(db_session, serial_number="SN-R8", status="at_warehouse", company=company)
    report = _submit(client, laptop.id, auth_headers(client, "warehouse-1")).json()

    response = client.post(
        f"/laptrack/reception-reports/{report['id']}/approve",
        headers=auth_headers(client, "warehouse-1"),
    )

    assert response.status_code == 403


def test_list_reports_for_laptop(client, db_session):
    company = seed_staff(db_session)
    laptop = create_laptop(db_session, serial_number="SN-R9", status="at_warehouse", company=company)
    warehouse = auth_headers(client, "warehouse-1")
    report = _submit(client, laptop.id, warehouse).json()

    listed = client.get(f"/laptrack/laptops/{laptop.id}/reception-reports", headers=warehouse)
    as_client = client.get(
        f"/laptrack/laptops/{laptop.id}/reception-reports",
        headers=auth_headers(client, "client-acme"),
    )

    assert listed.status_code == 200
    assert [row["id"] for row in listed.json()["rows"]] == [report["id"]]
    assert as_client.status_code == 200


def test_failed_promotion_is_discarded_and_audited(client, db_session, storage, monkeypatch):
    company = seed_staff(db_session)
    laptop = create_laptop(db_session, serial_number="SN-R10", status="at_warehouse", company=company)
    promote = storage.promote

    def flaky_promote(staged):
        if staged.field_name == "photo_working_condition":
            raise OSError("disk full")
        return promote(staged)

    monkeypatch.setattr(storage, "promote", flaky_promote)

    response = _submit(client, laptop.id, auth_headers(client, "warehouse-1"))

    assert response.status_code == 201
    assert _report_count(db_session) == 1
    assert _files_under(Path(storage.staging_path)) == []
    assert len(_files_under(Path(storage.base_path))) == 2
    event = db_session.execute(
        select(AuditEvent).where(AuditEvent.action == "reception_report.create")
    ).scalar_one()
    assert event.event_metadata == {"unpromoted_photos": ["photo_working_condition"]}
