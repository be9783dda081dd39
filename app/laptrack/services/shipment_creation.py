"""Shipment creation.

``route_creation_request`` picks the procedure for a raw creation payload;
each ``create_*`` method then validates, writes the shipment together with
its laptop link and pickup form in one transaction, and only afterwards
records the audit event and sends notifications.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ValidationError

from app.laptrack.core.error_catalog import AppError, ErrorCatalog, validation_error
from app.laptrack.core.scope import resolve_client_company
from app.laptrack.db.models import Laptop, PickupForm, Shipment, SoftwareEngineer
from app.laptrack.repos.laptops import LaptopRepository
from app.laptrack.schemas.shipments import (
    BulkToWarehouseCreate,
    MinimalBulkCreate,
    SingleFullJourneyCreate,
    WarehouseToEngineerCreate,
)
from app.laptrack.services import validation
from app.laptrack.services.audit import AuditService, audit_payload
from app.laptrack.services.notifier import NotificationKind, Notifier, dispatch_notification
from app.laptrack.services.shipment_links import atomic, ensure_no_active_shipment, link_laptop
from app.laptrack.services.statuses import LaptopStatus, ShipmentType, is_valid_shipment_type
from app.laptrack.services.transitions import ENGINEER_FORBIDDEN, ENGINEER_REQUIRED, rules_for

LEGACY_ROUTE = "legacy"

_REQUEST_MODELS: dict[str, type[BaseModel]] = {
    ShipmentType.SINGLE_FULL_JOURNEY.value: SingleFullJourneyCreate,
    ShipmentType.BULK_TO_WAREHOUSE.value: BulkToWarehouseCreate,
    ShipmentType.WAREHOUSE_TO_ENGINEER.value: WarehouseToEngineerCreate,
    LEGACY_ROUTE: SingleFullJourneyCreate,
}

_W2E_SOURCE_STATUSES = frozenset({LaptopStatus.AVAILABLE.value, LaptopStatus.AT_WAREHOUSE.value})


@dataclass(frozen=True)
class CreationRequest:
    route: str
    data: BaseModel

    @property
    def is_legacy(self) -> bool:
        return self.route == LEGACY_ROUTE


def detect_route(payload: dict[str, Any]) -> str:
    raw_type = payload.get("shipment_type")
    if raw_type in (None, ""):
        if payload.get("number_of_laptops") not in (None, ""):
            return LEGACY_ROUTE
        return ShipmentType.SINGLE_FULL_JOURNEY.value
    if not is_valid_shipment_type(raw_type):
        raise validation_error("invalid shipment type", field="shipment_type")
    return raw_type


def _pydantic_errors(exc: ValidationError) -> list[dict]:
    return [
        {
            "field": ".".join(str(item) for item in error.get("loc", ())) or None,
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]


def route_creation_request(payload: dict[str, Any]) -> CreationRequest:
    if not isinstance(payload, dict):
        raise validation_error("request body must be an object")
    route = detect_route(payload)
    data = dict(payload)
    if route == LEGACY_ROUTE:
        data["shipment_type"] = ShipmentType.SINGLE_FULL_JOURNEY.value
    try:
        parsed = _REQUEST_MODELS[route].model_validate(data)
    except ValidationError as exc:
        raise AppError(
            ErrorCatalog.VALIDATION_ERROR,
            details={"message": "invalid shipment request", "errors": _pydantic_errors(exc)},
        ) from exc
    return CreationRequest(route=route, data=parsed)


def pickup_datetime(value: date) -> datetime:
    return datetime.combine(value, time.min)


def validate_pickup_details(data) -> date:
    validation.validate_contact(data.contact_name, data.contact_email, data.contact_phone)
    validation.validate_us_address(data.pickup_address, data.pickup_city, data.pickup_state, data.pickup_zip)
    pickup_date = validation.parse_pickup_date(data.pickup_date)
    validation.validate_time_slot(data.pickup_time_slot)
    validation.validate_accessories(data.include_accessories, data.accessories_description)
    return pickup_date


def validate_bulk_details(data) -> None:
    if data.number_of_laptops is None or data.number_of_laptops < 2:
        raise validation_error("bulk shipments must have at least 2 laptops", field="number_of_laptops")
    validation.validate_bulk_dimensions(data.bulk_length, data.bulk_width, data.bulk_height, data.bulk_weight)


def pickup_form_snapshot(data: BaseModel, *, jira_ticket_number: str | None = None) -> dict:
    snapshot = data.model_dump(
        mode="json",
        exclude={"shipment_type", "client_company_id", "software_engineer_id", "jira_ticket_number", "notes"},
    )
    if jira_ticket_number:
        snapshot["jira_ticket_number"] = jira_ticket_number
    return snapshot


def shipment_snapshot(shipment: Shipment) -> dict:
    return {
        "id": str(shipment.id),
        "shipment_type": shipment.shipment_type,
        "status": shipment.status,
        "client_company_id": str(shipment.client_company_id),
        "software_engineer_id": str(shipment.software_engineer_id) if shipment.software_engineer_id else None,
        "laptop_count": shipment.laptop_count,
        "jira_ticket_number": shipment.jira_ticket_number,
        "courier_name": shipment.courier_name,
        "tracking_number": shipment.tracking_number,
        "second_tracking_number": shipment.second_tracking_number,
    }


class ShipmentCreationService:
    def __init__(self, db, notifier: Notifier | None = None, *, trace_id: str | None = None) -> None:
        self.db = db
        self.notifier = notifier
        self.trace_id = trace_id
        self.laptops = LaptopRepository(db)

    def create(self, payload: dict[str, Any], *, actor) -> Shipment:
        return self.create_routed(route_creation_request(payload), actor=actor)

    def create_routed(self, request: CreationRequest, *, actor) -> Shipment:
        if request.route == ShipmentType.BULK_TO_WAREHOUSE.value:
            return self.create_bulk_to_warehouse(request.data, actor=actor)
        if request.route == ShipmentType.WAREHOUSE_TO_ENGINEER.value:
            return self.create_warehouse_to_engineer(request.data, actor=actor)
        return self.create_single_full_journey(request.data, actor=actor, legacy=request.is_legacy)

    def _resolve_engineer(self, engineer_id: UUID | None) -> SoftwareEngineer | None:
        if engineer_id is None:
            return None
        engineer = self.db.get(SoftwareEngineer, engineer_id)
        if engineer is None:
            raise validation_error("software engineer not found", field="software_engineer_id")
        return engineer

    def create_single_full_journey(self, data: SingleFullJourneyCreate, *, actor, legacy: bool = False) -> Shipment:
        rules = rules_for(ShipmentType.SINGLE_FULL_JOURNEY)
        company = resolve_client_company(self.db, actor, data.client_company_id)
        validation.validate_jira_ticket(data.jira_ticket_number)
        if data.number_of_laptops != 1:
            raise validation_error(
                "single full journey shipments must have exactly 1 laptop",
                field="number_of_laptops",
            )
        pickup_date = validate_pickup_details(data)
        validation.validate_laptop_details(
            serial_number=data.laptop_serial_number,
            brand=data.laptop_brand,
            model=data.laptop_model,
            cpu=data.laptop_cpu,
            ram_gb=data.laptop_ram_gb,
            ssd_gb=data.laptop_ssd_gb,
        )
        engineer = self._resolve_engineer(data.software_engineer_id)
        serial_number = data.laptop_serial_number.strip()
        if self.laptops.get_by_serial(serial_number) is not None:
            raise AppError(
                ErrorCatalog.DUPLICATE_SERIAL_NUMBER,
                details={"message": "a laptop with this serial number already exists", "serial_number": serial_number},
            )

        with atomic(self.db):
            shipment = Shipment(
                shipment_type=ShipmentType.SINGLE_FULL_JOURNEY.value,
                status=rules.initial_status,
                client_company_id=company.id,
                software_engineer_id=engineer.id if engineer else None,
                laptop_count=1,
                jira_ticket_number=data.jira_ticket_number,
                notes=data.notes or data.special_instructions,
                pickup_scheduled_date=pickup_datetime(pickup_date),
                created_by_user_id=actor.id,
            )
            self.db.add(shipment)
            self.db.flush()

            laptop = Laptop(
                serial_number=serial_number,
                sku=data.laptop_sku,
                brand=data.laptop_brand,
                model=data.laptop_model,
                cpu=data.laptop_cpu,
                ram_gb=data.laptop_ram_gb,
                ssd_gb=data.laptop_ssd_gb,
                status=LaptopStatus.IN_TRANSIT_TO_WAREHOUSE.value,
                client_company_id=company.id,
                software_engineer_id=engineer.id if engineer else None,
            )
            self.db.add(laptop)
            self.db.flush()
            link_laptop(self.db, shipment, laptop)
            self.db.add(
                PickupForm(
                    shipment_id=shipment.id,
                    submitted_by_user_id=actor.id,
                    form_data=pickup_form_snapshot(data, jira_ticket_number=data.jira_ticket_number),
                )
            )

        self._after_create(
            shipment,
            actor=actor,
            metadata={"legacy_form": legacy, "laptop_id": str(laptop.id), "serial_number": serial_number},
        )
        dispatch_notification(self.notifier, NotificationKind.PICKUP_CONFIRMATION, shipment.id)
        return shipment

    def create_bulk_to_warehouse(self, data: BulkToWarehouseCreate, *, actor) -> Shipment:
        rules = rules_for(ShipmentType.BULK_TO_WAREHOUSE)
        company = resolve_client_company(self.db, actor, data.client_company_id)
        validation.validate_jira_ticket(data.jira_ticket_number)
        if rules.engineer_policy == ENGINEER_FORBIDDEN and data.software_engineer_id is not None:
            raise validation_error(
                "bulk shipments cannot have software engineer assigned",
                field="software_engineer_id",
            )
        validate_bulk_details(data)
        pickup_date = validate_pickup_details(data)

        with atomic(self.db):
            shipment = Shipment(
                shipment_type=ShipmentType.BULK_TO_WAREHOUSE.value,
                status=rules.initial_status,
                client_company_id=company.id,
                laptop_count=data.number_of_laptops,
                jira_ticket_number=data.jira_ticket_number,
                notes=data.notes or data.special_instructions,
                pickup_scheduled_date=pickup_datetime(pickup_date),
                created_by_user_id=actor.id,
            )
            self.db.add(shipment)
            self.db.flush()
            self.db.add(
                PickupForm(
                    shipment_id=shipment.id,
                    submitted_by_user_id=actor.id,
                    form_data=pickup_form_snapshot(data, jira_ticket_number=data.jira_ticket_number),
                )
            )

        self._after_create(shipment, actor=actor, metadata={"declared_laptop_count": data.number_of_laptops})
        dispatch_notification(self.notifier, NotificationKind.PICKUP_CONFIRMATION, shipment.id)
        return shipment

    def create_minimal_bulk(self, data: MinimalBulkCreate, *, actor) -> Shipment:
        """Open a bulk shipment from a JIRA ticket alone; the client fills in the pickup form later."""
        rules = rules_for(ShipmentType.BULK_TO_WAREHOUSE)
        company = resolve_client_company(self.db, actor, data.client_company_id)
        validation.validate_jira_ticket(data.jira_ticket_number)
        laptop_count = data.laptop_count if data.laptop_count is not None else 1
        if laptop_count < 1:
            raise validation_error("laptop count must be at least 1", field="laptop_count")

        with atomic(self.db):
            shipment = Shipment(
                shipment_type=ShipmentType.BULK_TO_WAREHOUSE.value,
                status=rules.initial_status,
                client_company_id=company.id,
                laptop_count=laptop_count,
                jira_ticket_number=data.jira_ticket_number,
                notes=data.notes,
                created_by_user_id=actor.id,
            )
            self.db.add(shipment)
            self.db.flush()

        self._after_create(shipment, actor=actor, metadata={"minimal": True, "declared_laptop_count": laptop_count})
        return shipment

    def create_warehouse_to_engineer(self, data: WarehouseToEngineerCreate, *, actor) -> Shipment:
        rules = rules_for(ShipmentType.WAREHOUSE_TO_ENGINEER)
        if data.laptop_id is None:
            raise validation_error("laptop selection is required", field="laptop_id")
        if data.number_of_laptops != 1:
            raise validation_error(
                "warehouse to engineer shipments must have exactly 1 laptop",
                field="number_of_laptops",
            )
        if rules.engineer_policy == ENGINEER_REQUIRED and data.software_engineer_id is None:
            validation.require(data.engineer_name, "software engineer is required", field="software_engineer_id")
        validation.require(data.delivery_address, "address is required", field="delivery_address")
        validation.require(data.delivery_city, "city is required", field="delivery_city")
        validation.require(data.delivery_country, "country is required", field="delivery_country")
        validation.validate_jira_ticket(data.jira_ticket_number)
        if data.engineer_email and not validation.is_valid_email(data.engineer_email):
            raise validation_error("invalid email format", field="engineer_email")
        if data.courier_name:
            validation.validate_courier(data.courier_name)
        engineer = self._resolve_engineer(data.software_engineer_id)

        with atomic(self.db):
            laptop = self.laptops.get(data.laptop_id, for_update=True)
            if laptop is None:
                raise AppError(ErrorCatalog.NOT_FOUND, details={"message": "laptop not found"})
            company_id = data.client_company_id or laptop.client_company_id
            if company_id is None:
                previous = self.laptops.latest_shipment(laptop.id)
                company_id = previous.client_company_id if previous else None
            company = resolve_client_company(self.db, actor, company_id)
            if laptop.status not in _W2E_SOURCE_STATUSES:
                raise validation_error(
                    f"laptop must be available or at warehouse (current status: {laptop.status})",
                    field="laptop_id",
                )
            if self.laptops.count_reception_reports(laptop.id) == 0:
                raise validation_error(
                    "laptop must have a reception report before it can ship to an engineer",
                    field="laptop_id",
                )
            ensure_no_active_shipment(self.db, laptop)

            now = datetime.utcnow()
            shipment = Shipment(
                shipment_type=ShipmentType.WAREHOUSE_TO_ENGINEER.value,
                status=rules.initial_status,
                client_company_id=company.id,
                software_engineer_id=engineer.id if engineer else None,
                laptop_count=1,
                jira_ticket_number=data.jira_ticket_number,
                courier_name=data.courier_name,
                tracking_number=data.tracking_number,
                notes=data.notes or data.special_instructions,
                delivery_details={
                    "engineer_name": engineer.name if engineer else data.engineer_name,
                    "engineer_email": engineer.email if engineer else data.engineer_email,
                    "engineer_phone": engineer.phone if engineer else data.engineer_phone,
                    "delivery_address": data.delivery_address,
                    "delivery_city": data.delivery_city,
                    "delivery_state": data.delivery_state,
                    "delivery_zip": data.delivery_zip,
                    "delivery_country": data.delivery_country,
                    "special_instructions": data.special_instructions,
                },
                released_warehouse_at=now,
                created_by_user_id=actor.id,
            )
            self.db.add(shipment)
            self.db.flush()
            link_laptop(self.db, shipment, laptop)
            laptop.status = rules.laptop_status_for(rules.initial_status)
            if laptop.client_company_id is None:
                laptop.client_company_id = company.id
            if engineer is not None:
                laptop.software_engineer_id = engineer.id

        self._after_create(shipment, actor=actor, metadata={"laptop_id": str(laptop.id)})
        dispatch_notification(self.notifier, NotificationKind.RELEASE_NOTIFICATION, shipment.id)
        return shipment

    def _after_create(self, shipment: Shipment, *, actor, metadata: dict) -> None:
        AuditService(self.db).record_event(
            audit_payload(
                actor,
                action="shipment.create",
                entity_type="shipment",
                entity_id=shipment.id,
                trace_id=self.trace_id,
                after=shipment_snapshot(shipment),
                metadata=metadata,
            )
        )
