from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select

from app.laptrack.db.models import Laptop, PickupForm, Shipment, ShipmentLaptop


@dataclass(frozen=True)
class ShipmentQueryFilters:
    client_company_id: UUID | None = None
    status: str | None = None
    shipment_type: str | None = None


class ShipmentRepository:
    def __init__(self, db):
        self.db = db

    def get(self, shipment_id: UUID, *, for_update: bool = False) -> Shipment | None:
        stmt = select(Shipment).where(Shipment.id == shipment_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalars().first()

    def list_shipments(self, filters: ShipmentQueryFilters) -> list[Shipment]:
        stmt = select(Shipment)
        if filters.client_company_id:
            stmt = stmt.where(Shipment.client_company_id == filters.client_company_id)
        if filters.status:
            stmt = stmt.where(Shipment.status == filters.status)
        if filters.shipment_type:
            stmt = stmt.where(Shipment.shipment_type == filters.shipment_type)
        return self.db.execute(stmt.order_by(Shipment.created_at.desc())).scalars().all()

    def get_laptops(self, shipment_id: UUID, *, for_update: bool = False) -> list[Laptop]:
        stmt = (
            select(Laptop)
            .join(ShipmentLaptop, ShipmentLaptop.laptop_id == Laptop.id)
            .where(ShipmentLaptop.shipment_id == shipment_id)
            .order_by(ShipmentLaptop.created_at.asc())
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalars().all()

    def get_links(self, shipment_id: UUID) -> list[ShipmentLaptop]:
        stmt = select(ShipmentLaptop).where(ShipmentLaptop.shipment_id == shipment_id)
        return self.db.execute(stmt).scalars().all()

    def get_pickup_form(self, shipment_id: UUID) -> PickupForm | None:
        stmt = select(PickupForm).where(PickupForm.shipment_id == shipment_id)
        return self.db.execute(stmt).scalars().first()

    def has_pickup_form(self, shipment_id: UUID) -> bool:
        return self.get_pickup_form(shipment_id) is not None

    def link_laptop(self, shipment: Shipment, laptop: Laptop, *, is_active: bool = True) -> ShipmentLaptop:
        link = ShipmentLaptop(shipment_id=shipment.id, laptop_id=laptop.id, is_active=is_active)
        self.db.add(link)
        return link
