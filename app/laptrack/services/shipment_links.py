"""Laptop-to-shipment links.

A laptop may sit in at most one active shipment. The application checks
this under row locks to report a precise conflict, and the partial unique
index ``uq_shipment_laptops_active_laptop`` backs it up when two requests
race past the check.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from app.laptrack.core.error_catalog import AppError, ErrorCatalog
from app.laptrack.db.models import Laptop, Shipment, ShipmentLaptop
from app.laptrack.repos.laptops import LaptopRepository
from app.laptrack.services.statuses import is_active_shipment_status

_ACTIVE_LINK_INDEX = "uq_shipment_laptops_active_laptop"


def conflict_from_integrity_error(exc: IntegrityError) -> AppError | None:
    message = str(getattr(exc, "orig", exc)).lower()
    if "uq_shipment_laptops_pair" in message or "shipment_laptops.shipment_id" in message:
        return AppError(
            ErrorCatalog.LAPTOP_ALREADY_IN_ACTIVE_SHIPMENT,
            details={"message": "laptop is already part of this shipment"},
        )
    if _ACTIVE_LINK_INDEX in message or "shipment_laptops.laptop_id" in message:
        return AppError(
            ErrorCatalog.LAPTOP_ALREADY_IN_ACTIVE_SHIPMENT,
            details={"message": "laptop is already linked to an active shipment"},
        )
    if "serial_number" in message:
        return AppError(
            ErrorCatalog.DUPLICATE_SERIAL_NUMBER,
            details={"message": "a laptop with this serial number already exists"},
        )
    return None


@contextmanager
def atomic(db) -> Iterator[None]:
    """Commit the block as one transaction; roll everything back on failure."""
    try:
        yield
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        conflict = conflict_from_integrity_error(exc)
        if conflict is None:
            raise
        raise conflict from exc
    except Exception:
        db.rollback()
        raise


def ensure_no_active_shipment(db, laptop: Laptop, *, exclude_shipment_id=None) -> None:
    active = LaptopRepository(db).active_shipments(laptop.id, exclude_shipment_id=exclude_shipment_id)
    if active:
        raise AppError(
            ErrorCatalog.LAPTOP_ALREADY_IN_ACTIVE_SHIPMENT,
            details={
                "message": "laptop is already linked to an active shipment",
                "laptop_id": str(laptop.id),
                "shipment_ids": [str(shipment.id) for shipment in active],
            },
        )


def link_laptop(db, shipment: Shipment, laptop: Laptop) -> ShipmentLaptop:
    ensure_no_active_shipment(db, laptop, exclude_shipment_id=shipment.id)
    link = ShipmentLaptop(
        shipment_id=shipment.id,
        laptop_id=laptop.id,
        is_active=is_active_shipment_status(shipment.status),
    )
    db.add(link)
    return link


def sync_link_activity(db, shipment: Shipment) -> None:
    db.execute(
        update(ShipmentLaptop)
        .where(ShipmentLaptop.shipment_id == shipment.id)
        .values(is_active=is_active_shipment_status(shipment.status))
    )
