from __future__ import annotations

from uuid import UUID

from app.laptrack.core.error_catalog import AppError, ErrorCatalog, validation_error
from app.laptrack.core.scope import enforce_company_scope, is_client
from app.laptrack.db.models import ClientCompany, Laptop
from app.laptrack.repos.laptops import LaptopRepository
from app.laptrack.schemas.shipments import LaptopCreateRequest
from app.laptrack.services import validation
from app.laptrack.services.audit import AuditService, audit_payload
from app.laptrack.services.shipment_links import atomic
from app.laptrack.services.statuses import LaptopStatus, is_valid_laptop_status, status_value

# Statuses a laptop may be registered with; later ones are reached through shipments.
REGISTRATION_STATUSES = frozenset(
    {
        LaptopStatus.AVAILABLE.value,
        LaptopStatus.IN_TRANSIT_TO_WAREHOUSE.value,
        LaptopStatus.AT_WAREHOUSE.value,
    }
)


def laptop_snapshot(laptop: Laptop) -> dict:
    return {
        "id": str(laptop.id),
        "serial_number": laptop.serial_number,
        "status": laptop.status,
        "client_company_id": str(laptop.client_company_id) if laptop.client_company_id else None,
        "software_engineer_id": str(laptop.software_engineer_id) if laptop.software_engineer_id else None,
    }


class LaptopService:
    def __init__(self, db, *, trace_id: str | None = None) -> None:
        self.db = db
        self.trace_id = trace_id
        self.repo = LaptopRepository(db)

    def get_laptop(self, laptop_id: UUID, *, actor) -> Laptop:
        laptop = self.repo.get(laptop_id)
        if laptop is None:
            raise AppError(ErrorCatalog.NOT_FOUND, details={"message": "laptop not found"})
        if is_client(actor):
            enforce_company_scope(actor, laptop.client_company_id)
        return laptop

    def register_laptop(self, data: LaptopCreateRequest, *, actor) -> Laptop:
        serial_number = (data.serial_number or "").strip()
        validation.require(serial_number, "laptop serial number is required", field="serial_number")
        validation.require_max_length(data.brand, 100, "laptop brand must be less than 100 characters", field="brand")
        validation.require_max_length(data.model, 200, "laptop model must be less than 200 characters", field="model")
        if not is_valid_laptop_status(data.status):
            raise validation_error("invalid laptop status", field="status")
        laptop_status = status_value(data.status)
        if laptop_status not in REGISTRATION_STATUSES:
            raise validation_error(
                f"laptops cannot be registered as {laptop_status}",
                field="status",
            )
        if data.client_company_id is not None and self.db.get(ClientCompany, data.client_company_id) is None:
            raise validation_error("client company not found", field="client_company_id")
        if self.repo.get_by_serial(serial_number) is not None:
            raise AppError(
                ErrorCatalog.DUPLICATE_SERIAL_NUMBER,
                details={"message": "a laptop with this serial number already exists", "serial_number": serial_number},
            )

        with atomic(self.db):
            laptop = Laptop(
                serial_number=serial_number,
                sku=data.sku,
                brand=data.brand,
                model=data.model,
                cpu=data.cpu,
                ram_gb=data.ram_gb,
                ssd_gb=data.ssd_gb,
                status=laptop_status,
                client_company_id=data.client_company_id,
                notes=data.notes,
            )
            self.db.add(laptop)

        AuditService(self.db).record_event(
            audit_payload(
                actor,
                action="laptop.create",
                entity_type="laptop",
                entity_id=laptop.id,
                trace_id=self.trace_id,
                after=laptop_snapshot(laptop),
            )
        )
        return laptop
