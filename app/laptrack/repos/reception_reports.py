from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from app.laptrack.db.models import ReceptionReport


class ReceptionReportRepository:
    def __init__(self, db):
        self.db = db

    def get(self, report_id: UUID, *, for_update: bool = False) -> ReceptionReport | None:
        stmt = select(ReceptionReport).where(ReceptionReport.id == report_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalars().first()

    def list_for_laptop(self, laptop_id: UUID) -> list[ReceptionReport]:
        stmt = (
            select(ReceptionReport)
            .where(ReceptionReport.laptop_id == laptop_id)
            .order_by(ReceptionReport.received_at.desc())
        )
        return self.db.execute(stmt).scalars().all()

    def open_report(self, laptop_id: UUID) -> ReceptionReport | None:
        stmt = select(ReceptionReport).where(
            ReceptionReport.laptop_id == laptop_id,
            ReceptionReport.status == "pending",
        )
        return self.db.execute(stmt).scalars().first()
