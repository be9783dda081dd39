"""Warehouse reception reports.

A report records one laptop's arrival at the warehouse with three photos.
Photos are staged before the report row is written and only promoted into
the uploads directory after the commit; every failure path discards the
staged files so no partial submission is left behind.

The report is already committed when photos are promoted. A photo that
fails to move is discarded and its field listed under
``unpromoted_photos`` in the audit entry; the report keeps the URL, which
then has no file behind it. A crash between commit and promotion leaves
the photo orphaned in staging.
"""

from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from app.laptrack.core.error_catalog import AppError, ErrorCatalog, validation_error
from app.laptrack.core.logging import log_json
from app.laptrack.db.models import Laptop, ReceptionReport
from app.laptrack.repos.laptops import LaptopRepository
from app.laptrack.repos.reception_reports import ReceptionReportRepository
from app.laptrack.services.audit import AuditService, audit_payload
from app.laptrack.services.file_storage import FileStorageError, LocalFileStorage, StagedFile, UploadPayload
from app.laptrack.services.laptops import laptop_snapshot
from app.laptrack.services.shipment_links import atomic
from app.laptrack.services.statuses import LaptopStatus, ReceptionReportStatus

logger = logging.getLogger(__name__)

PHOTO_FIELDS = ("photo_serial_number", "photo_external_condition", "photo_working_condition")
PHOTO_CATEGORY = "reception-reports"

RECEIVABLE_LAPTOP_STATUSES = frozenset(
    {LaptopStatus.IN_TRANSIT_TO_WAREHOUSE.value, LaptopStatus.AT_WAREHOUSE.value}
)


def report_snapshot(report: ReceptionReport) -> dict:
    return {
        "id": str(report.id),
        "laptop_id": str(report.laptop_id),
        "shipment_id": str(report.shipment_id) if report.shipment_id else None,
        "status": report.status,
        "approved_by": str(report.approved_by) if report.approved_by else None,
        "photos": [getattr(report, name) for name in PHOTO_FIELDS],
    }


class ReceptionReportService:
    def __init__(self, db, storage: LocalFileStorage | None = None, *, trace_id: str | None = None) -> None:
        self.db = db
        self.storage = storage
        self.trace_id = trace_id
        self.laptops = LaptopRepository(db)
        self.reports = ReceptionReportRepository(db)

    def _check_receivable(self, laptop: Laptop) -> None:
        if laptop.status not in RECEIVABLE_LAPTOP_STATUSES:
            raise validation_error(
                f"laptop must be in transit to or at the warehouse (current status: {laptop.status})",
                field="laptop_id",
            )
        if self.reports.open_report(laptop.id) is not None:
            raise validation_error("laptop already has a pending reception report", field="laptop_id")

    def _stage_photos(self, photos: dict[str, UploadPayload | None]) -> list[StagedFile]:
        staged: list[StagedFile] = []
        try:
            for name in PHOTO_FIELDS:
                upload = photos.get(name)
                if upload is None or not upload.data:
                    raise validation_error(f"{name} is required", field=name)
                try:
                    staged.append(self.storage.stage_upload(upload, category=PHOTO_CATEGORY))
                except FileStorageError as exc:
                    raise validation_error(str(exc), field=name) from exc
        except AppError:
            self._discard(staged)
            raise
        return staged

    def _discard(self, staged: list[StagedFile]) -> None:
        for item in staged:
            self.storage.discard(item)

    def submit(
        self,
        laptop_id: UUID,
        *,
        notes: str | None,
        photos: dict[str, UploadPayload | None],
        actor,
    ) -> ReceptionReport:
        laptop = self.laptops.get(laptop_id)
        if laptop is None:
            raise AppError(ErrorCatalog.NOT_FOUND, details={"message": "laptop not found"})
        self._check_receivable(laptop)

        staged = self._stage_photos(photos)
        urls = {item.field_name: item.relative_url for item in staged}
        try:
            with atomic(self.db):
                laptop = self.laptops.get(laptop_id, for_update=True)
                self._check_receivable(laptop)
                shipment = self.laptops.latest_shipment(laptop.id)
                report = ReceptionReport(
                    laptop_id=laptop.id,
                    shipment_id=shipment.id if shipment else None,
                    client_company_id=laptop.client_company_id
                    or (shipment.client_company_id if shipment else None),
                    tracking_number=shipment.tracking_number if shipment else None,
                    warehouse_user_id=actor.id,
                    received_at=datetime.utcnow(),
                    notes=notes,
                    status=ReceptionReportStatus.PENDING.value,
                    **urls,
                )
                self.db.add(report)
        except Exception:
            self._discard(staged)
            raise

        unpromoted: list[str] = []
        for item in staged:
            try:
                self.storage.promote(item)
            except OSError:
                logger.exception(
                    "Failed to promote staged upload",
                    extra={"report_id": str(report.id), "field": item.field_name},
                )
                self.storage.discard(item)
                unpromoted.append(item.field_name)

        log_json(
            logger,
            {
                "event": "reception_report_submitted",
                "trace_id": self.trace_id,
                "report_id": str(report.id),
                "laptop_id": str(report.laptop_id),
            },
        )
        AuditService(self.db).record_event(
            audit_payload(
                actor,
                action="reception_report.create",
                entity_type="reception_report",
                entity_id=report.id,
                trace_id=self.trace_id,
                after=report_snapshot(report),
                metadata={"unpromoted_photos": unpromoted} if unpromoted else None,
            )
        )
        return report

    def approve(self, report_id: UUID, *, actor) -> ReceptionReport:
        with atomic(self.db):
            report = self.reports.get(report_id, for_update=True)
            if report is None:
                raise AppError(ErrorCatalog.NOT_FOUND, details={"message": "reception report not found"})
            if report.status == ReceptionReportStatus.APPROVED.value:
                raise AppError(
                    ErrorCatalog.REPORT_ALREADY_APPROVED,
                    details={"message": "reception report is already approved", "report_id": str(report.id)},
                )
            before = report_snapshot(report)
            report.status = ReceptionReportStatus.APPROVED.value
            report.approved_by = actor.id
            report.approved_at = datetime.utcnow()

            laptop = self.laptops.get(report.laptop_id, for_update=True)
            laptop_before = laptop.status
            if laptop.status in RECEIVABLE_LAPTOP_STATUSES:
                laptop.status = LaptopStatus.AT_WAREHOUSE.value

        AuditService(self.db).record_event(
            audit_payload(
                actor,
                action="reception_report.approve",
                entity_type="reception_report",
                entity_id=report.id,
                trace_id=self.trace_id,
                before=before,
                after=report_snapshot(report),
                metadata={
                    "laptop": laptop_snapshot(laptop),
                    "laptop_status_before": laptop_before,
                    "laptop_status_changed": laptop_before != laptop.status,
                },
            )
        )
        return report
