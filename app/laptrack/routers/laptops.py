from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from app.laptrack.core.deps import require_active_user, require_roles
from app.laptrack.db.session import get_db
from app.laptrack.repos.reception_reports import ReceptionReportRepository
from app.laptrack.schemas.reception_reports import ReceptionReportListResponse, ReceptionReportResponse
from app.laptrack.schemas.shipments import LaptopCreateRequest, LaptopResponse
from app.laptrack.services.file_storage import UploadPayload, get_file_storage
from app.laptrack.services.laptops import LaptopService
from app.laptrack.services.reception_reports import ReceptionReportService
from app.laptrack.services.statuses import UserRole

router = APIRouter()


def _trace_id(request: Request) -> str:
    return getattr(request.state, "trace_id", "")


async def _read_upload(field_name: str, upload: UploadFile | None) -> UploadPayload | None:
    if upload is None:
        return None
    return UploadPayload(
        field_name=field_name,
        filename=upload.filename,
        content_type=upload.content_type,
        data=await upload.read(),
    )


@router.post("/laptrack/laptops", response_model=LaptopResponse, status_code=201)
def register_laptop(
    request: Request,
    payload: LaptopCreateRequest,
    current_user=Depends(require_roles(UserRole.LOGISTICS, UserRole.WAREHOUSE)),
    db=Depends(get_db),
):
    laptop = LaptopService(db, trace_id=_trace_id(request)).register_laptop(payload, actor=current_user)
    return LaptopResponse.model_validate(laptop)


@router.get("/laptrack/laptops/{laptop_id}", response_model=LaptopResponse)
def get_laptop(
    laptop_id: UUID,
    current_user=Depends(require_active_user),
    db=Depends(get_db),
):
    return LaptopResponse.model_validate(LaptopService(db).get_laptop(laptop_id, actor=current_user))


@router.get("/laptrack/laptops/{laptop_id}/reception-reports", response_model=ReceptionReportListResponse)
def list_reception_reports(
    laptop_id: UUID,
    current_user=Depends(require_active_user),
    db=Depends(get_db),
):
    LaptopService(db).get_laptop(laptop_id, actor=current_user)
    rows = ReceptionReportRepository(db).list_for_laptop(laptop_id)
    return ReceptionReportListResponse(rows=[ReceptionReportResponse.model_validate(row) for row in rows])


@router.post(
    "/laptrack/laptops/{laptop_id}/reception-reports",
    response_model=ReceptionReportResponse,
    status_code=201,
)
async def submit_reception_report(
    request: Request,
    laptop_id: UUID,
    notes: str | None = Form(None),
    photo_serial_number: UploadFile | None = File(None),
    photo_external_condition: UploadFile | None = File(None),
    photo_working_condition: UploadFile | None = File(None),
    current_user=Depends(require_roles(UserRole.WAREHOUSE)),
    db=Depends(get_db),
    storage=Depends(get_file_storage),
):
    photos = {
        "photo_serial_number": await _read_upload("photo_serial_number", photo_serial_number),
        "photo_external_condition": await _read_upload("photo_external_condition", photo_external_condition),
        "photo_working_condition": await _read_upload("photo_working_condition", photo_working_condition),
    }
    service = ReceptionReportService(db, storage, trace_id=_trace_id(request))
    report = service.submit(laptop_id, notes=notes, photos=photos, actor=current_user)
    return ReceptionReportResponse.model_validate(report)
