from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class ReceptionReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    laptop_id: UUID
    shipment_id: UUID | None = None
    client_company_id: UUID | None = None
    tracking_number: str | None = None
    warehouse_user_id: UUID
    received_at: datetime
    notes: str | None = None
    photo_serial_number: str
    photo_external_condition: str
    photo_working_condition: str
    status: str
    approved_by: UUID | None = None
    approved_at: datetime | None = None


class ReceptionReportListResponse(BaseModel):
    rows: list[ReceptionReportResponse]
