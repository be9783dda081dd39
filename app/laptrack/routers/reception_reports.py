from uuid import UUID

from fastapi import APIRouter, Depends, Request

from app.laptrack.core.deps import require_roles
from app.laptrack.db.session import get_db
from app.laptrack.schemas.reception_reports import ReceptionReportResponse
from app.laptrack.services.reception_reports import ReceptionReportService
from app.laptrack.services.statuses import UserRole

router = APIRouter()


@router.post("/laptrack/reception-reports/{report_id}/approve", response_model=ReceptionReportResponse)
def approve_reception_report(
    request: Request,
    report_id: UUID,
    current_user=Depends(require_roles(UserRole.LOGISTICS)),
    db=Depends(get_db),
):
    service = ReceptionReportService(db, trace_id=getattr(request.state, "trace_id", ""))
    report = service.approve(report_id, actor=current_user)
    return ReceptionReportResponse.model_validate(report)
