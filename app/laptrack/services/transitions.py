"""Per-type lifecycle rules for shipments.

Every shipment type owns one ``ShipmentTypeRules`` entry: the ordered stages
it walks through, the laptop status each stage implies for linked laptops,
and the editing/engineer policies that depend on the type. The table is
checked against ``ShipmentType`` at import time so a new type cannot be added
without a matching entry.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from app.laptrack.services.statuses import LaptopStatus, ShipmentStatus, ShipmentType, status_value

S = ShipmentStatus
L = LaptopStatus

ENGINEER_FORBIDDEN = "forbidden"
ENGINEER_OPTIONAL = "optional"
ENGINEER_REQUIRED = "required"


@dataclass(frozen=True)
class ShipmentTypeRules:
    shipment_type: ShipmentType
    stages: tuple[ShipmentStatus, ...]
    laptop_sync: Mapping[str, str] = field(default_factory=dict)
    engineer_policy: str = ENGINEER_OPTIONAL
    propagates_engineer: bool = False
    edit_requires_pickup_form: bool = True

    @property
    def initial_status(self) -> str:
        return self.stages[0].value

    def next_status(self, current: str) -> str | None:
        values = [stage.value for stage in self.stages]
        current = status_value(current)
        if current not in values:
            return None
        index = values.index(current)
        if index + 1 >= len(values):
            return None
        return values[index + 1]

    def laptop_status_for(self, shipment_status: str) -> str | None:
        return self.laptop_sync.get(status_value(shipment_status))


def _sync(pairs: dict) -> Mapping[str, str]:
    return MappingProxyType({status_value(key): status_value(value) for key, value in pairs.items()})


TYPE_RULES: Mapping[str, ShipmentTypeRules] = MappingProxyType(
    {
        ShipmentType.SINGLE_FULL_JOURNEY.value: ShipmentTypeRules(
            shipment_type=ShipmentType.SINGLE_FULL_JOURNEY,
            stages=(
                S.PENDING_PICKUP,
                S.PICKUP_SCHEDULED,
                S.PICKED_UP_FROM_CLIENT,
                S.IN_TRANSIT_TO_WAREHOUSE,
                S.AT_WAREHOUSE,
                S.RELEASED_FROM_WAREHOUSE,
                S.IN_TRANSIT_TO_ENGINEER,
                S.DELIVERED,
            ),
            laptop_sync=_sync(
                {
                    S.PICKED_UP_FROM_CLIENT: L.IN_TRANSIT_TO_WAREHOUSE,
                    S.IN_TRANSIT_TO_WAREHOUSE: L.IN_TRANSIT_TO_WAREHOUSE,
                    S.AT_WAREHOUSE: L.AT_WAREHOUSE,
                    S.RELEASED_FROM_WAREHOUSE: L.IN_TRANSIT_TO_ENGINEER,
                    S.IN_TRANSIT_TO_ENGINEER: L.IN_TRANSIT_TO_ENGINEER,
                    S.DELIVERED: L.DELIVERED,
                }
            ),
            engineer_policy=ENGINEER_OPTIONAL,
            propagates_engineer=True,
            edit_requires_pickup_form=True,
        ),
        # Laptops in a bulk box are received one by one, so the box status never
        # moves them; each laptop advances through its own reception report.
        ShipmentType.BULK_TO_WAREHOUSE.value: ShipmentTypeRules(
            shipment_type=ShipmentType.BULK_TO_WAREHOUSE,
            stages=(
                S.PENDING_PICKUP,
                S.PICKUP_SCHEDULED,
                S.PICKED_UP_FROM_CLIENT,
                S.IN_TRANSIT_TO_WAREHOUSE,
                S.AT_WAREHOUSE,
            ),
            laptop_sync=_sync({}),
            engineer_policy=ENGINEER_FORBIDDEN,
            propagates_engineer=False,
            edit_requires_pickup_form=True,
        ),
        ShipmentType.WAREHOUSE_TO_ENGINEER.value: ShipmentTypeRules(
            shipment_type=ShipmentType.WAREHOUSE_TO_ENGINEER,
            stages=(
                S.RELEASED_FROM_WAREHOUSE,
                S.IN_TRANSIT_TO_ENGINEER,
                S.DELIVERED,
            ),
            laptop_sync=_sync(
                {
                    S.RELEASED_FROM_WAREHOUSE: L.IN_TRANSIT_TO_ENGINEER,
                    S.IN_TRANSIT_TO_ENGINEER: L.IN_TRANSIT_TO_ENGINEER,
                    S.DELIVERED: L.DELIVERED,
                }
            ),
            engineer_policy=ENGINEER_REQUIRED,
            propagates_engineer=False,
            edit_requires_pickup_form=False,
        ),
    }
)

_missing = {member.value for member in ShipmentType} - set(TYPE_RULES)
if _missing:
    raise RuntimeError(f"shipment types without lifecycle rules: {sorted(_missing)}")

# Shipment field stamped the first time a shipment reaches a stage.
STAGE_TIMESTAMPS: Mapping[str, str] = MappingProxyType(
    {
        S.PICKUP_SCHEDULED.value: "pickup_scheduled_date",
        S.PICKED_UP_FROM_CLIENT.value: "picked_up_at",
        S.AT_WAREHOUSE.value: "arrived_warehouse_at",
        S.RELEASED_FROM_WAREHOUSE.value: "released_warehouse_at",
        S.DELIVERED.value: "delivered_at",
    }
)

# Stages at which an ETA to the engineer may be supplied.
ETA_STAGES = frozenset({S.RELEASED_FROM_WAREHOUSE.value, S.IN_TRANSIT_TO_ENGINEER.value})


def rules_for(shipment_type: str) -> ShipmentTypeRules:
    try:
        return TYPE_RULES[status_value(shipment_type)]
    except KeyError as exc:
        raise ValueError(f"unknown shipment type: {shipment_type}") from exc


def is_transition_allowed(shipment_type: str, current: str, requested: str) -> bool:
    return rules_for(shipment_type).next_status(current) == status_value(requested)


def allowed_next_statuses(shipment_type: str, current: str) -> list[str]:
    next_status = rules_for(shipment_type).next_status(current)
    return [next_status] if next_status else []
