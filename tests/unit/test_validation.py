from datetime import date

import pytest

from app.laptrack.core.error_catalog import AppError
from app.laptrack.services import validation
from app.laptrack.services.shipment_creation import LEGACY_ROUTE, detect_route, route_creation_request


def _message(exc_info) -> str:
    return exc_info.value.details["message"]


def test_email_zip_state_and_jira_formats():
    assert validation.is_valid_email("dana@acme.example")
    assert not validation.is_valid_email("dana@acme")
    assert not validation.is_valid_email("  ")
    assert validation.is_valid_zip("02139")
    assert not validation.is_valid_zip("2139")
    assert not validation.is_valid_zip("02139-1234")
    assert validation.is_valid_state("ny")
    assert not validation.is_valid_state("XX")
    assert validation.is_valid_jira_ticket("SCOP-67702")
    assert not validation.is_valid_jira_ticket("scop-1")


def test_format_predicates_reject_non_strings():
    assert not validation.is_valid_email(123)
    assert not validation.is_valid_zip(10001)
    assert not validation.is_valid_state(["NY"])

    with pytest.raises(AppError) as date_exc:
        validation.parse_pickup_date(20300310)
    with pytest.raises(AppError) as name_exc:
        validation.require_text(42, "contact name is required", field="contact_name")

    assert _message(date_exc) == "invalid date format"
    assert _message(name_exc) == "contact_name must be a string"


def test_pickup_date_allows_today_but_not_the_past():
    today = date(2030, 3, 10)

    assert validation.parse_pickup_date("2030-03-10", today=today) == today
    with pytest.raises(AppError) as past:
        validation.parse_pickup_date("2030-03-09", today=today)
    with pytest.raises(AppError) as malformed:
        validation.parse_pickup_date("03/10/2030", today=today)

    assert _message(past) == "pickup date must be in the future"
    assert _message(malformed) == "invalid date format"


def test_time_slot_accessories_and_dimensions():
    validation.validate_time_slot("evening")
    validation.validate_accessories(False, None)
    validation.validate_bulk_dimensions(1, 2, 3, 4)

    with pytest.raises(AppError) as slot:
        validation.validate_time_slot("midnight")
    with pytest.raises(AppError) as accessories:
        validation.validate_accessories(True, " ")
    with pytest.raises(AppError):
        validation.validate_bulk_dimensions(1, 2, None, 4)
    with pytest.raises(AppError):
        validation.validate_bulk_dimensions(1, -2, 3, 4)
    with pytest.raises(AppError):
        validation.validate_bulk_dimensions(1, "2", 3, True)

    assert _message(slot) == "invalid time slot"
    assert _message(accessories) == "accessories description is required when including accessories"


def test_courier_must_be_known():
    validation.validate_courier("FedEx")

    with pytest.raises(AppError) as exc_info:
        validation.validate_courier("fedex")

    assert exc_info.value.details["field"] == "courier_name"


def test_laptop_details_length_limits():
    with pytest.raises(AppError) as exc_info:
        validation.validate_laptop_details(
            serial_number="SN1",
            brand="Dell",
            model="m" * 201,
            cpu="i7",
            ram_gb="16",
            ssd_gb="512",
        )

    assert _message(exc_info) == "laptop model must be less than 200 characters"


def test_detect_route():
    assert detect_route({"shipment_type": "bulk_to_warehouse"}) == "bulk_to_warehouse"
    assert detect_route({}) == "single_full_journey"
    assert detect_route({"number_of_laptops": 1}) == LEGACY_ROUTE
    with pytest.raises(AppError) as exc_info:
        detect_route({"shipment_type": "drone"})
    assert _message(exc_info) == "invalid shipment type"


def test_route_creation_request_reports_field_errors():
    with pytest.raises(AppError) as exc_info:
        route_creation_request({"shipment_type": "bulk_to_warehouse", "number_of_laptops": "many"})

    details = exc_info.value.details
    assert details["message"] == "invalid shipment request"
    assert "number_of_laptops" in [error["field"] for error in details["errors"]]


def test_legacy_request_is_parsed_as_single_journey():
    request = route_creation_request({"number_of_laptops": 1, "jira_ticket_number": "SCOP-1"})

    assert request.is_legacy
    assert request.data.shipment_type == "single_full_journey"
