from tests.laptrack_helpers import auth_headers, bulk_payload, create_company, seed_staff, single_payload


def _create(client, payload, headers):
    response = client.post("/laptrack/shipments", json=payload, headers=headers)
    assert response.status_code == 201, response.json()
    return response.json()


def test_list_filters_by_type_and_status(client, db_session):
    company = seed_staff(db_session)
    headers = auth_headers(client, "logistics-1")
    single = _create(client, single_payload(company), headers)
    bulk = _create(client, bulk_payload(company), headers)

    everything = client.get("/laptrack/shipments", headers=headers).json()["rows"]
    bulk_only = client.get("/laptrack/shipments", params={"shipment_type": "bulk_to_warehouse"}, headers=headers)
    pending = client.get("/laptrack/shipments", params={"status": "pending_pickup"}, headers=headers)
    delivered = client.get("/laptrack/shipments", params={"status": "delivered"}, headers=headers)

    assert {row["id"] for row in everything} == {single["id"], bulk["id"]}
    assert [row["id"] for row in bulk_only.json()["rows"]] == [bulk["id"]]
    assert len(pending.json()["rows"]) == 2
    assert delivered.json()["rows"] == []


def test_list_rejects_unknown_filters(client, db_session):
    seed_staff(db_session)
    headers = auth_headers(client, "logistics-1")

    bad_status = client.get("/laptrack/shipments", params={"status": "lost"}, headers=headers)
    bad_type = client.get("/laptrack/shipments", params={"shipment_type": "drone"}, headers=headers)

    assert bad_status.status_code == 422
    assert bad_type.status_code == 422
    assert bad_type.json()["details"]["message"] == "invalid shipment type"


def test_client_only_lists_own_company(client, db_session):
    company = seed_staff(db_session)
    other = create_company(db_session, name="Globex")
    logistics = auth_headers(client, "logistics-1")
    own = _create(client, single_payload(company, serial_number="SN-OWN"), logistics)
    foreign = _create(client, single_payload(other, serial_number="SN-FOREIGN"), logistics)
    headers = auth_headers(client, "client-acme")

    listed = client.get("/laptrack/shipments", headers=headers)
    asked_for_other = client.get("/laptrack/shipments", params={"client_company_id": str(other.id)}, headers=headers)
    detail = client.get(f"/laptrack/shipments/{foreign['id']}", headers=headers)

    assert [row["id"] for row in listed.json()["rows"]] == [own["id"]]
    assert asked_for_other.status_code == 403
    assert detail.status_code == 403
    assert detail.json()["code"] == "COMPANY_SCOPE_DENIED"


def test_project_manager_can_read_but_not_create(client, db_session):
    company = seed_staff(db_session)
    shipment = _create(client, single_payload(company), auth_headers(client, "logistics-1"))
    headers = auth_headers(client, "pm-1")

    detail = client.get(f"/laptrack/shipments/{shipment['id']}", headers=headers)
    created = client.post("/laptrack/shipments", json=single_payload(company, serial_number="SN-PM"), headers=headers)

    assert detail.status_code == 200
    assert detail.json()["allowed_next_statuses"] == ["pickup_scheduled"]
    assert created.status_code == 403
