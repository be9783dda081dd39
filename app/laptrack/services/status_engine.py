"""Shipment status transitions.

A status update moves a shipment exactly one stage forward along its
type's lifecycle, stamps the stage timestamp on first arrival and carries
the new stage over to linked laptops through the per-type sync table. The
shipment change and the laptop changes commit together; metrics, the audit
event and notifications follow the commit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from app.laptrack.core.error_catalog import AppError, ErrorCatalog, validation_error
from app.laptrack.core.logging import log_json
from app.laptrack.core.metrics import metrics
from app.laptrack.core.scope import enforce_company_scope
from app.laptrack.db.models import Shipment
from app.laptrack.repos.shipments import ShipmentRepository
from app.laptrack.services import validation
from app.laptrack.services.audit import AuditService, audit_payload
from app.laptrack.services.notifier import STATUS_NOTIFICATIONS, Notifier, dispatch_notification
from app.laptrack.services.shipment_creation import shipment_snapshot
from app.laptrack.services.shipment_links import atomic, ensure_no_active_shipment, sync_link_activity
from app.laptrack.services.statuses import (
    ShipmentStatus,
    is_active_shipment_status,
    is_valid_shipment_status,
    status_value,
)
from app.laptrack.services.transitions import (
    ETA_STAGES,
    STAGE_TIMESTAMPS,
    allowed_next_statuses,
    is_transition_allowed,
    rules_for,
)

logger = logging.getLogger(__name__)


@dataclass
class StatusUpdateResult:
    shipment: Shipment
    previous_status: str
    synced_laptop_ids: list[str] = field(default_factory=list)
    notified: bool = False


class StatusTransitionEngine:
    def __init__(self, db, notifier: Notifier | None = None, *, trace_id: str | None = None) -> None:
        self.db = db
        self.notifier = notifier
        self.trace_id = trace_id
        self.repo = ShipmentRepository(db)

    def update_status(
        self,
        shipment_id: UUID,
        new_status: str,
        *,
        actor,
        courier_name: str | None = None,
        tracking_number: str | None = None,
        eta: datetime | None = None,
    ) -> StatusUpdateResult:
        if not is_valid_shipment_status(new_status):
            raise validation_error("invalid status", field="status", status=new_status)
        new_status = status_value(new_status)
        if new_status == ShipmentStatus.PICKUP_SCHEDULED.value:
            validation.require(
                tracking_number,
                "tracking number is required when scheduling a pickup",
                field="tracking_number",
            )
            validation.validate_courier(courier_name)
        elif courier_name:
            validation.validate_courier(courier_name)

        synced: list[str] = []
        with atomic(self.db):
            shipment = self.repo.get(shipment_id, for_update=True)
            if shipment is None:
                raise AppError(ErrorCatalog.NOT_FOUND, details={"message": "shipment not found"})
            enforce_company_scope(actor, shipment.client_company_id)
            previous_status = shipment.status
            if not is_transition_allowed(shipment.shipment_type, previous_status, new_status):
                raise AppError(
                    ErrorCatalog.INVALID_STATUS_TRANSITION,
                    details={
                        "message": f"cannot move shipment from {previous_status} to {new_status}",
                        "current_status": previous_status,
                        "requested_status": new_status,
                        "allowed": allowed_next_statuses(shipment.shipment_type, previous_status),
                    },
                )
            before = shipment_snapshot(shipment)

            shipment.status = new_status
            timestamp_field = STAGE_TIMESTAMPS.get(new_status)
            if timestamp_field and getattr(shipment, timestamp_field) is None:
                setattr(shipment, timestamp_field, datetime.utcnow())
            if courier_name:
                shipment.courier_name = courier_name
            if tracking_number:
                shipment.tracking_number = tracking_number
            if eta is not None and new_status in ETA_STAGES:
                shipment.eta_to_engineer = eta

            laptops = self.repo.get_laptops(shipment.id, for_update=True)
            if is_active_shipment_status(new_status) and not is_active_shipment_status(previous_status):
                for laptop in laptops:
                    ensure_no_active_shipment(self.db, laptop, exclude_shipment_id=shipment.id)

            laptop_status = rules_for(shipment.shipment_type).laptop_status_for(new_status)
            if laptop_status is not None:
                for laptop in laptops:
                    if laptop.status != laptop_status:
                        laptop.status = laptop_status
                        synced.append(str(laptop.id))
            self.db.flush()
            sync_link_activity(self.db, shipment)

        metrics.record_status_transition(shipment_type=shipment.shipment_type, status=new_status)
        if synced:
            metrics.record_laptop_sync(shipment_type=shipment.shipment_type, count=len(synced))
        log_json(
            logger,
            {
                "event": "shipment_status_changed",
                "trace_id": self.trace_id,
                "shipment_id": str(shipment.id),
                "shipment_type": shipment.shipment_type,
                "from": previous_status,
                "to": new_status,
                "synced_laptops": len(synced),
            },
        )
        AuditService(self.db).record_event(
            audit_payload(
                actor,
                action="shipment.status_update",
                entity_type="shipment",
                entity_id=shipment.id,
                trace_id=self.trace_id,
                before=before,
                after=shipment_snapshot(shipment),
                metadata={"from": previous_status, "to": new_status, "synced_laptop_ids": synced},
            )
        )

        notified = False
        kind = STATUS_NOTIFICATIONS.get(new_status)
        if kind is not None:
            notified = dispatch_notification(self.notifier, kind, shipment.id)
        return StatusUpdateResult(
            shipment=shipment,
            previous_status=previous_status,
            synced_laptop_ids=synced,
            notified=notified,
        )
