"""Changes to existing shipments: edits, pickup forms, engineers and bulk intake."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update

from app.laptrack.core.error_catalog import AppError, ErrorCatalog, validation_error
from app.laptrack.core.scope import enforce_company_scope
from app.laptrack.db.models import Laptop, PickupForm, Shipment, ShipmentLaptop, SoftwareEngineer
from app.laptrack.repos.laptops import LaptopRepository
from app.laptrack.repos.shipments import ShipmentRepository
from app.laptrack.schemas.shipments import PickupFormSubmitRequest, ShipmentEditRequest
from app.laptrack.services import validation
from app.laptrack.services.audit import AuditService, audit_payload
from app.laptrack.services.edit_guard import REASON_DELIVERED, ensure_editable
from app.laptrack.services.notifier import NotificationKind, Notifier, dispatch_notification
from app.laptrack.services.shipment_creation import (
    pickup_datetime,
    pickup_form_snapshot,
    shipment_snapshot,
    validate_bulk_details,
    validate_pickup_details,
)
from app.laptrack.services.shipment_links import atomic, ensure_no_active_shipment, link_laptop
from app.laptrack.services.statuses import LaptopStatus, ShipmentStatus, ShipmentType, status_value
from app.laptrack.services.transitions import ENGINEER_FORBIDDEN, rules_for

PICKUP_FORM_FIELDS = frozenset(PickupFormSubmitRequest.model_fields)

# Fields a warehouse-to-engineer shipment keeps inline instead of in a pickup form.
DELIVERY_FIELDS = frozenset(
    {
        "engineer_name",
        "engineer_email",
        "engineer_phone",
        "delivery_address",
        "delivery_city",
        "delivery_state",
        "delivery_zip",
        "delivery_country",
        "special_instructions",
    }
)

# Only receivable laptops join a bulk box; bulk status changes never move them.
BULK_INTAKE_LAPTOP_STATUSES = frozenset({LaptopStatus.IN_TRANSIT_TO_WAREHOUSE.value})


REQUIRED_FORM_TEXT = {
    "contact_name": "contact name is required",
    "contact_email": "contact email is required",
    "contact_phone": "contact phone is required",
    "pickup_address": "address is required",
    "pickup_city": "city is required",
    "pickup_state": "state is required",
    "pickup_zip": "ZIP code is required",
    "pickup_date": "pickup date is required",
    "pickup_time_slot": "pickup time slot is required",
}
OPTIONAL_FORM_TEXT = ("special_instructions", "accessories_description")
BULK_DIMENSION_FIELDS = ("bulk_length", "bulk_width", "bulk_height", "bulk_weight")


def _check_optional_text(changes: dict, fields) -> None:
    for field in fields:
        value = changes.get(field)
        if value is not None and not isinstance(value, str):
            raise validation_error(f"{field} must be a string", field=field)


def validate_pickup_form_changes(shipment: Shipment, changes: dict, current: dict | None = None) -> None:
    """Check a partial pickup form edit against the snapshot it will be merged into.

    Every supplied key gets the same check creation applies; cross-field rules
    (accessories, bulk dimensions) run on the merged result.
    """
    merged = {**(current or {}), **changes}
    for field, message in REQUIRED_FORM_TEXT.items():
        if field in changes:
            validation.require_text(changes[field], message, field=field)
    _check_optional_text(changes, OPTIONAL_FORM_TEXT)

    if "contact_email" in changes and not validation.is_valid_email(changes["contact_email"]):
        raise validation_error("invalid email format", field="contact_email")
    if "pickup_state" in changes and not validation.is_valid_state(changes["pickup_state"]):
        raise validation_error("invalid US state code", field="pickup_state")
    if "pickup_zip" in changes and not validation.is_valid_zip(changes["pickup_zip"]):
        raise validation_error("ZIP code must be 5 digits", field="pickup_zip")
    if "pickup_date" in changes:
        validation.parse_pickup_date(changes["pickup_date"])
    if "pickup_time_slot" in changes:
        validation.validate_time_slot(changes["pickup_time_slot"])

    if "include_accessories" in changes and not isinstance(changes["include_accessories"], bool):
        raise validation_error("include_accessories must be true or false", field="include_accessories")
    if "include_accessories" in changes or "accessories_description" in changes:
        validation.validate_accessories(bool(merged.get("include_accessories")), merged.get("accessories_description"))

    is_bulk = shipment.shipment_type == ShipmentType.BULK_TO_WAREHOUSE.value
    if "number_of_laptops" in changes:
        count = changes["number_of_laptops"]
        if not isinstance(count, int) or isinstance(count, bool):
            raise validation_error("number of laptops must be an integer", field="number_of_laptops")
        if is_bulk and count < 2:
            raise validation_error("bulk shipments must have at least 2 laptops", field="number_of_laptops")
        if not is_bulk and count != 1:
            raise validation_error("single full journey shipments must have exactly 1 laptop", field="number_of_laptops")
    if "number_of_boxes" in changes:
        boxes = changes["number_of_boxes"]
        if boxes is not None and (not isinstance(boxes, int) or isinstance(boxes, bool) or boxes < 1):
            raise validation_error("number of boxes must be a positive integer", field="number_of_boxes")
    if any(field in changes for field in BULK_DIMENSION_FIELDS):
        if is_bulk:
            validation.validate_bulk_dimensions(*(merged.get(field) for field in BULK_DIMENSION_FIELDS))
        else:
            supplied = [changes[field] for field in BULK_DIMENSION_FIELDS if field in changes]
            validation.validate_bulk_dimensions(*supplied)


class ShipmentEditingService:
    def __init__(self, db, notifier: Notifier | None = None, *, trace_id: str | None = None) -> None:
        self.db = db
        self.notifier = notifier
        self.trace_id = trace_id
        self.shipments = ShipmentRepository(db)
        self.laptops = LaptopRepository(db)

    def _locked_shipment(self, shipment_id: UUID, actor) -> Shipment:
        shipment = self.shipments.get(shipment_id, for_update=True)
        if shipment is None:
            raise AppError(ErrorCatalog.NOT_FOUND, details={"message": "shipment not found"})
        enforce_company_scope(actor, shipment.client_company_id)
        return shipment

    def _engineer(self, engineer_id: UUID) -> SoftwareEngineer:
        engineer = self.db.get(SoftwareEngineer, engineer_id)
        if engineer is None:
            raise validation_error("software engineer not found", field="software_engineer_id")
        return engineer

    def _apply_engineer(self, shipment: Shipment, engineer: SoftwareEngineer) -> int:
        shipment.software_engineer_id = engineer.id
        if shipment.shipment_type == ShipmentType.WAREHOUSE_TO_ENGINEER.value:
            details = dict(shipment.delivery_details or {})
            details.update(engineer_name=engineer.name, engineer_email=engineer.email, engineer_phone=engineer.phone)
            shipment.delivery_details = details
        if not rules_for(shipment.shipment_type).propagates_engineer:
            return 0
        linked = select(ShipmentLaptop.laptop_id).where(ShipmentLaptop.shipment_id == shipment.id)
        result = self.db.execute(
            update(Laptop)
            .where(Laptop.id.in_(linked))
            .values(software_engineer_id=engineer.id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    def _audit(self, actor, action: str, shipment: Shipment, *, before: dict | None, metadata: dict | None) -> None:
        AuditService(self.db).record_event(
            audit_payload(
                actor,
                action=action,
                entity_type="shipment",
                entity_id=shipment.id,
                trace_id=self.trace_id,
                before=before,
                after=shipment_snapshot(shipment),
                metadata=metadata,
            )
        )

    def edit_shipment(self, shipment_id: UUID, data: ShipmentEditRequest, *, actor) -> Shipment:
        changes = data.model_dump(exclude_unset=True)
        ignored: list[str] = []
        propagated = 0
        with atomic(self.db):
            shipment = self._locked_shipment(shipment_id, actor)
            ensure_editable(self.db, shipment)
            before = shipment_snapshot(shipment)
            rules = rules_for(shipment.shipment_type)

            if changes.get("software_engineer_id") is not None:
                if rules.engineer_policy == ENGINEER_FORBIDDEN:
                    ignored.append("software_engineer_id")
                else:
                    propagated = self._apply_engineer(shipment, self._engineer(data.software_engineer_id))
            if changes.get("courier_name"):
                validation.validate_courier(data.courier_name)
                shipment.courier_name = data.courier_name
            if "second_tracking_number" in changes:
                shipment.second_tracking_number = data.second_tracking_number
            if "notes" in changes:
                shipment.notes = data.notes
            if data.pickup_form:
                self._merge_form_fields(shipment, data.pickup_form, actor=actor)

        self._audit(
            actor,
            "shipment.edit",
            shipment,
            before=before,
            metadata={"fields": sorted(changes), "ignored_fields": ignored, "laptops_updated": propagated},
        )
        return shipment

    def _merge_form_fields(self, shipment: Shipment, fields: dict, *, actor) -> None:
        if shipment.shipment_type == ShipmentType.WAREHOUSE_TO_ENGINEER.value:
            unknown = sorted(set(fields) - DELIVERY_FIELDS)
            if unknown:
                raise validation_error("unknown delivery fields", fields=unknown)
            _check_optional_text(fields, DELIVERY_FIELDS)
            if fields.get("engineer_email") and not validation.is_valid_email(fields["engineer_email"]):
                raise validation_error("invalid email format", field="engineer_email")
            details = dict(shipment.delivery_details or {})
            details.update(fields)
            shipment.delivery_details = details
            return

        unknown = sorted(set(fields) - PICKUP_FORM_FIELDS)
        if unknown:
            raise validation_error("unknown pickup form fields", fields=unknown)
        form = self.shipments.get_pickup_form(shipment.id)
        validate_pickup_form_changes(shipment, fields, form.form_data)
        merged = dict(form.form_data or {})
        merged.update(fields)
        form.form_data = merged
        form.submitted_by_user_id = actor.id
        if "number_of_laptops" in fields and shipment.shipment_type == ShipmentType.BULK_TO_WAREHOUSE.value:
            shipment.laptop_count = fields["number_of_laptops"]

    def submit_pickup_form(self, shipment_id: UUID, data: PickupFormSubmitRequest, *, actor) -> Shipment:
        """Create or replace the pickup form of a single or bulk shipment."""
        with atomic(self.db):
            shipment = self._locked_shipment(shipment_id, actor)
            if status_value(shipment.status) == ShipmentStatus.DELIVERED.value:
                raise AppError(ErrorCatalog.SHIPMENT_NOT_EDITABLE, details={"message": REASON_DELIVERED})
            if shipment.shipment_type == ShipmentType.WAREHOUSE_TO_ENGINEER.value:
                raise validation_error("warehouse to engineer shipments do not use pickup forms")
            before = shipment_snapshot(shipment)
            pickup_date = validate_pickup_details(data)
            if shipment.shipment_type == ShipmentType.BULK_TO_WAREHOUSE.value:
                validate_bulk_details(data)
                shipment.laptop_count = data.number_of_laptops
            elif data.number_of_laptops not in (None, 1):
                raise validation_error(
                    "single full journey shipments must have exactly 1 laptop",
                    field="number_of_laptops",
                )
            if shipment.pickup_scheduled_date is None:
                shipment.pickup_scheduled_date = pickup_datetime(pickup_date)

            snapshot = pickup_form_snapshot(data, jira_ticket_number=shipment.jira_ticket_number)
            form = self.shipments.get_pickup_form(shipment.id)
            created = form is None
            if created:
                self.db.add(PickupForm(shipment_id=shipment.id, submitted_by_user_id=actor.id, form_data=snapshot))
            else:
                form.form_data = snapshot
                form.submitted_by_user_id = actor.id

        self._audit(actor, "shipment.pickup_form", shipment, before=before, metadata={"created": created})
        if created:
            dispatch_notification(self.notifier, NotificationKind.PICKUP_CONFIRMATION, shipment.id)
        return shipment

    def assign_engineer(self, shipment_id: UUID, engineer_id: UUID, *, actor) -> Shipment:
        with atomic(self.db):
            shipment = self._locked_shipment(shipment_id, actor)
            if rules_for(shipment.shipment_type).engineer_policy == ENGINEER_FORBIDDEN:
                raise validation_error(
                    "bulk shipments cannot have software engineer assigned",
                    field="software_engineer_id",
                )
            ensure_editable(self.db, shipment)
            before = shipment_snapshot(shipment)
            engineer = self._engineer(engineer_id)
            propagated = self._apply_engineer(shipment, engineer)

        self._audit(
            actor,
            "shipment.assign_engineer",
            shipment,
            before=before,
            metadata={"software_engineer_id": str(engineer_id), "laptops_updated": propagated},
        )
        return shipment

    def add_laptop_to_bulk(self, shipment_id: UUID, laptop_id: UUID, *, actor) -> Shipment:
        with atomic(self.db):
            shipment = self._locked_shipment(shipment_id, actor)
            if shipment.shipment_type != ShipmentType.BULK_TO_WAREHOUSE.value:
                raise AppError(
                    ErrorCatalog.NOT_BULK_SHIPMENT,
                    details={"message": "laptops can only be added to bulk shipments"},
                )
            laptop = self.laptops.get(laptop_id, for_update=True)
            if laptop is None:
                raise AppError(ErrorCatalog.NOT_FOUND, details={"message": "laptop not found"})
            if laptop.client_company_id is None:
                laptop.client_company_id = shipment.client_company_id
            elif laptop.client_company_id != shipment.client_company_id:
                raise AppError(
                    ErrorCatalog.COMPANY_MISMATCH,
                    details={
                        "message": "laptop belongs to a different client company than the shipment",
                        "laptop_id": str(laptop.id),
                    },
                )
            if laptop.status not in BULK_INTAKE_LAPTOP_STATUSES:
                raise validation_error(
                    f"laptop cannot be added to a bulk shipment (current status: {laptop.status})",
                    field="laptop_id",
                )
            if any(link.laptop_id == laptop.id for link in self.shipments.get_links(shipment.id)):
                raise AppError(
                    ErrorCatalog.LAPTOP_ALREADY_IN_ACTIVE_SHIPMENT,
                    details={"message": "laptop is already part of this shipment"},
                )
            ensure_no_active_shipment(self.db, laptop, exclude_shipment_id=shipment.id)
            link_laptop(self.db, shipment, laptop)

        self._audit(
            actor,
            "shipment.add_laptop",
            shipment,
            before=None,
            metadata={"laptop_id": str(laptop_id)},
        )
        return shipment
