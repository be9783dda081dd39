"""Closed vocabularies for shipments, laptops and reception reports.

Shipment and laptop statuses share some spellings but are separate types;
moving a value from one vocabulary to the other always goes through an
explicit table (see ``services.transitions``).
"""

from enum import Enum


class ShipmentType(str, Enum):
    SINGLE_FULL_JOURNEY = "single_full_journey"
    BULK_TO_WAREHOUSE = "bulk_to_warehouse"
    WAREHOUSE_TO_ENGINEER = "warehouse_to_engineer"


class ShipmentStatus(str, Enum):
    PENDING_PICKUP = "pending_pickup"
    PICKUP_SCHEDULED = "pickup_scheduled"
    PICKED_UP_FROM_CLIENT = "picked_up_from_client"
    IN_TRANSIT_TO_WAREHOUSE = "in_transit_to_warehouse"
    AT_WAREHOUSE = "at_warehouse"
    RELEASED_FROM_WAREHOUSE = "released_from_warehouse"
    IN_TRANSIT_TO_ENGINEER = "in_transit_to_engineer"
    DELIVERED = "delivered"


class LaptopStatus(str, Enum):
    AVAILABLE = "available"
    IN_TRANSIT_TO_WAREHOUSE = "in_transit_to_warehouse"
    AT_WAREHOUSE = "at_warehouse"
    IN_TRANSIT_TO_ENGINEER = "in_transit_to_engineer"
    DELIVERED = "delivered"
    RETIRED = "retired"


class ReceptionReportStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"


class UserRole(str, Enum):
    LOGISTICS = "logistics"
    CLIENT = "client"
    WAREHOUSE = "warehouse"
    PROJECT_MANAGER = "project_manager"


class Courier(str, Enum):
    UPS = "UPS"
    FEDEX = "FedEx"
    DHL = "DHL"


# Shipment statuses in which a laptop link no longer blocks other shipments.
INACTIVE_SHIPMENT_STATUSES = frozenset({ShipmentStatus.AT_WAREHOUSE.value, ShipmentStatus.DELIVERED.value})


def _members(enum_cls) -> frozenset[str]:
    return frozenset(member.value for member in enum_cls)


def status_value(value):
    """Plain string form of an enum member; other values pass through."""
    return getattr(value, "value", value)


_SHIPMENT_TYPES = _members(ShipmentType)
_SHIPMENT_STATUSES = _members(ShipmentStatus)
_LAPTOP_STATUSES = _members(LaptopStatus)
_COURIERS = _members(Courier)


def is_valid_shipment_type(value) -> bool:
    value = status_value(value)
    return isinstance(value, str) and value in _SHIPMENT_TYPES


def is_valid_shipment_status(value) -> bool:
    value = status_value(value)
    return isinstance(value, str) and value in _SHIPMENT_STATUSES


def is_valid_laptop_status(value) -> bool:
    value = status_value(value)
    return isinstance(value, str) and value in _LAPTOP_STATUSES


def is_valid_courier(value) -> bool:
    value = status_value(value)
    return isinstance(value, str) and value in _COURIERS


def is_active_shipment_status(status: str) -> bool:
    return status_value(status) not in INACTIVE_SHIPMENT_STATUSES
