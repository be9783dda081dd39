from __future__ import annotations

from typing import NamedTuple

from app.laptrack.core.error_catalog import AppError, ErrorCatalog
from app.laptrack.repos.shipments import ShipmentRepository
from app.laptrack.services.statuses import ShipmentStatus, status_value
from app.laptrack.services.transitions import rules_for

REASON_DELIVERED = "Cannot edit delivered shipment"
REASON_NO_PICKUP_FORM = "Cannot edit shipment without pickup form"


class EditDecision(NamedTuple):
    allowed: bool
    reason: str | None


def can_edit(shipment, *, has_pickup_form: bool) -> EditDecision:
    if status_value(shipment.status) == ShipmentStatus.DELIVERED.value:
        return EditDecision(False, REASON_DELIVERED)
    if rules_for(shipment.shipment_type).edit_requires_pickup_form and not has_pickup_form:
        return EditDecision(False, REASON_NO_PICKUP_FORM)
    return EditDecision(True, None)


def edit_decision(db, shipment) -> EditDecision:
    return can_edit(shipment, has_pickup_form=ShipmentRepository(db).has_pickup_form(shipment.id))


def ensure_editable(db, shipment) -> None:
    decision = edit_decision(db, shipment)
    if not decision.allowed:
        raise AppError(ErrorCatalog.SHIPMENT_NOT_EDITABLE, details={"message": decision.reason})
