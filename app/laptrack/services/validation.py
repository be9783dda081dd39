from __future__ import annotations

import re
from datetime import date, datetime

from app.laptrack.core.error_catalog import validation_error
from app.laptrack.services.statuses import Courier, is_valid_courier

_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}$")
_ZIP_RE = re.compile(r"^[0-9]{5}$")
_JIRA_RE = re.compile(r"^[A-Z]+-[0-9]+$")

TIME_SLOTS = ("morning", "afternoon", "evening")

US_STATE_CODES = frozenset(
    {
        "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
        "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
        "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
        "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
        "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
        "DC",
    }
)


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def require(value, message: str, *, field: str | None = None) -> None:
    if _blank(value):
        raise validation_error(message, field=field)


def require_text(value, message: str, *, field: str) -> None:
    """Reject blanks and non-string values for a required free-text field."""
    require(value, message, field=field)
    if not isinstance(value, str):
        raise validation_error(f"{field} must be a string", field=field)


def require_max_length(value: str | None, limit: int, message: str, *, field: str | None = None) -> None:
    if value and len(value) > limit:
        raise validation_error(message, field=field)


def is_valid_email(value: str | None) -> bool:
    if not isinstance(value, str) or _blank(value):
        return False
    return bool(_EMAIL_RE.match(value.strip()))


def is_valid_zip(value: str | None) -> bool:
    return isinstance(value, str) and bool(_ZIP_RE.match(value.strip()))


def is_valid_state(value: str | None) -> bool:
    return isinstance(value, str) and value.strip().upper() in US_STATE_CODES


def is_valid_jira_ticket(value: str | None) -> bool:
    return bool(value) and bool(_JIRA_RE.match(value))


def validate_jira_ticket(value: str | None) -> None:
    require(value, "JIRA ticket number is required", field="jira_ticket_number")
    if not is_valid_jira_ticket(value):
        raise validation_error(
            "JIRA ticket number must be in format PROJECT-NUMBER (e.g., SCOP-67702)",
            field="jira_ticket_number",
        )


def validate_contact(name: str | None, email: str | None, phone: str | None) -> None:
    require(name, "contact name is required", field="contact_name")
    require(email, "contact email is required", field="contact_email")
    if not is_valid_email(email):
        raise validation_error("invalid email format", field="contact_email")
    require(phone, "contact phone is required", field="contact_phone")


def validate_us_address(address: str | None, city: str | None, state: str | None, zip_code: str | None) -> None:
    require(address, "address is required", field="pickup_address")
    require(city, "city is required", field="pickup_city")
    require(state, "state is required", field="pickup_state")
    if not is_valid_state(state):
        raise validation_error("invalid US state code", field="pickup_state")
    require(zip_code, "ZIP code is required", field="pickup_zip")
    if not is_valid_zip(zip_code):
        raise validation_error("ZIP code must be 5 digits", field="pickup_zip")


def parse_pickup_date(value: str | None, *, today: date | None = None) -> date:
    """Parse a ``YYYY-MM-DD`` pickup date; today is allowed, the past is not."""
    require(value, "pickup date is required", field="pickup_date")
    if not isinstance(value, str):
        raise validation_error("invalid date format", field="pickup_date")
    try:
        parsed = datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError as exc:
        raise validation_error("invalid date format", field="pickup_date") from exc
    if parsed < (today or date.today()):
        raise validation_error("pickup date must be in the future", field="pickup_date")
    return parsed


def validate_time_slot(value: str | None) -> None:
    require(value, "pickup time slot is required", field="pickup_time_slot")
    if value not in TIME_SLOTS:
        raise validation_error("invalid time slot", field="pickup_time_slot")


def validate_accessories(include_accessories: bool, description: str | None) -> None:
    if include_accessories and _blank(description):
        raise validation_error(
            "accessories description is required when including accessories",
            field="accessories_description",
        )


def validate_laptop_details(
    *,
    serial_number: str | None,
    brand: str | None,
    model: str | None,
    cpu: str | None,
    ram_gb: str | None,
    ssd_gb: str | None,
) -> None:
    require(serial_number, "laptop serial number is required", field="laptop_serial_number")
    require(brand, "laptop brand is required", field="laptop_brand")
    require_max_length(brand, 100, "laptop brand must be less than 100 characters", field="laptop_brand")
    require(model, "laptop model is required", field="laptop_model")
    require_max_length(model, 200, "laptop model must be less than 200 characters", field="laptop_model")
    require(cpu, "laptop CPU is required", field="laptop_cpu")
    require_max_length(cpu, 200, "laptop CPU must be less than 200 characters", field="laptop_cpu")
    require(ram_gb, "laptop RAM is required", field="laptop_ram_gb")
    require_max_length(ram_gb, 50, "laptop RAM must be less than 50 characters", field="laptop_ram_gb")
    require(ssd_gb, "laptop SSD is required", field="laptop_ssd_gb")
    require_max_length(ssd_gb, 50, "laptop SSD must be less than 50 characters", field="laptop_ssd_gb")


def _positive_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


def validate_bulk_dimensions(length, width, height, weight) -> None:
    for value in (length, width, height, weight):
        if not _positive_number(value):
            raise validation_error(
                "bulk dimensions (length, width, height, weight) are required and must be positive",
                field="bulk_dimensions",
            )


def validate_courier(value: str | None) -> None:
    if not is_valid_courier(value):
        allowed = ", ".join(courier.value for courier in Courier)
        raise validation_error(f"invalid courier: must be one of {allowed}", field="courier_name")
