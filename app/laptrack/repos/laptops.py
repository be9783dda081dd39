from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select

from app.laptrack.db.models import Laptop, ReceptionReport, Shipment, ShipmentLaptop
from app.laptrack.services.statuses import INACTIVE_SHIPMENT_STATUSES


class LaptopRepository:
    def __init__(self, db):
        self.db = db

    def get(self, laptop_id: UUID, *, for_update: bool = False) -> Laptop | None:
        stmt = select(Laptop).where(Laptop.id == laptop_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalars().first()

    def get_by_serial(self, serial_number: str) -> Laptop | None:
        stmt = select(Laptop).where(Laptop.serial_number == serial_number)
        return self.db.execute(stmt).scalars().first()

    def active_shipments(self, laptop_id: UUID, *, exclude_shipment_id: UUID | None = None) -> list[Shipment]:
        """Shipments linked to the laptop whose status still claims it."""
        stmt = (
            select(Shipment)
            .join(ShipmentLaptop, ShipmentLaptop.shipment_id == Shipment.id)
            .where(
                ShipmentLaptop.laptop_id == laptop_id,
                Shipment.status.not_in(sorted(INACTIVE_SHIPMENT_STATUSES)),
            )
            .with_for_update()
        )
        if exclude_shipment_id is not None:
            stmt = stmt.where(Shipment.id != exclude_shipment_id)
        return self.db.execute(stmt).scalars().all()

    def latest_shipment(self, laptop_id: UUID) -> Shipment | None:
        stmt = (
            select(Shipment)
            .join(ShipmentLaptop, ShipmentLaptop.shipment_id == Shipment.id)
            .where(ShipmentLaptop.laptop_id == laptop_id)
            .order_by(ShipmentLaptop.created_at.desc())
        )
        return self.db.execute(stmt).scalars().first()

    def count_reception_reports(self, laptop_id: UUID) -> int:
        stmt = select(func.count()).select_from(ReceptionReport).where(ReceptionReport.laptop_id == laptop_id)
        return int(self.db.execute(stmt).scalar_one() or 0)
