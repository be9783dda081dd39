from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Request

from app.laptrack.core.deps import require_active_user, require_roles
from app.laptrack.core.error_catalog import AppError, ErrorCatalog, validation_error
from app.laptrack.core.scope import enforce_company_scope, is_client
from app.laptrack.db.models import Shipment
from app.laptrack.db.session import get_db
from app.laptrack.repos.shipments import ShipmentQueryFilters, ShipmentRepository
from app.laptrack.schemas.shipments import (
    AddLaptopRequest,
    AssignEngineerRequest,
    LaptopResponse,
    MinimalBulkCreate,
    PickupFormResponse,
    PickupFormSubmitRequest,
    ShipmentEditRequest,
    ShipmentListResponse,
    ShipmentResponse,
    StatusUpdateRequest,
)
from app.laptrack.services.edit_guard import can_edit
from app.laptrack.services.notifier import get_notifier
from app.laptrack.services.shipment_creation import ShipmentCreationService, route_creation_request
from app.laptrack.services.shipment_editing import ShipmentEditingService
from app.laptrack.services.status_engine import StatusTransitionEngine
from app.laptrack.services.statuses import (
    ShipmentType,
    UserRole,
    is_valid_shipment_status,
    is_valid_shipment_type,
)
from app.laptrack.services.transitions import allowed_next_statuses

router = APIRouter()

_CREATORS = (UserRole.LOGISTICS, UserRole.CLIENT)
_STATUS_UPDATERS = (UserRole.LOGISTICS, UserRole.WAREHOUSE)
_EDITORS = (UserRole.LOGISTICS, UserRole.CLIENT)


def _trace_id(request: Request) -> str:
    return getattr(request.state, "trace_id", "")


def _shipment_response(db, shipment: Shipment) -> ShipmentResponse:
    repo = ShipmentRepository(db)
    form = repo.get_pickup_form(shipment.id)
    decision = can_edit(shipment, has_pickup_form=form is not None)
    response = ShipmentResponse.model_validate(shipment, from_attributes=True)
    return response.model_copy(
        update={
            "laptops": [LaptopResponse.model_validate(laptop) for laptop in repo.get_laptops(shipment.id)],
            "pickup_form": PickupFormResponse.model_validate(form) if form is not None else None,
            "can_edit": decision.allowed,
            "edit_block_reason": decision.reason,
            "allowed_next_statuses": allowed_next_statuses(shipment.shipment_type, shipment.status),
        }
    )


def _load_visible_shipment(db, shipment_id: UUID, current_user) -> Shipment:
    shipment = ShipmentRepository(db).get(shipment_id)
    if shipment is None:
        raise AppError(ErrorCatalog.NOT_FOUND, details={"message": "shipment not found"})
    enforce_company_scope(current_user, shipment.client_company_id)
    return shipment


@router.get("/laptrack/shipments", response_model=ShipmentListResponse)
def list_shipments(
    status: str | None = None,
    shipment_type: str | None = None,
    client_company_id: UUID | None = None,
    current_user=Depends(require_active_user),
    db=Depends(get_db),
):
    if status is not None and not is_valid_shipment_status(status):
        raise validation_error("invalid status", field="status")
    if shipment_type is not None and not is_valid_shipment_type(shipment_type):
        raise validation_error("invalid shipment type", field="shipment_type")
    if is_client(current_user):
        if client_company_id is not None:
            enforce_company_scope(current_user, client_company_id)
        client_company_id = current_user.client_company_id
    filters = ShipmentQueryFilters(client_company_id=client_company_id, status=status, shipment_type=shipment_type)
    rows = ShipmentRepository(db).list_shipments(filters)
    return ShipmentListResponse(rows=[_shipment_response(db, shipment) for shipment in rows])


@router.post("/laptrack/shipments", response_model=ShipmentResponse, status_code=201)
def create_shipment(
    request: Request,
    payload: dict[str, Any] = Body(...),
    current_user=Depends(require_roles(*_CREATORS)),
    db=Depends(get_db),
    notifier=Depends(get_notifier),
):
    creation = route_creation_request(payload)
    if creation.route == ShipmentType.WAREHOUSE_TO_ENGINEER.value and current_user.role != UserRole.LOGISTICS.value:
        raise AppError(
            ErrorCatalog.PERMISSION_DENIED,
            details={"message": "only logistics can ship laptops from the warehouse"},
        )
    service = ShipmentCreationService(db, notifier, trace_id=_trace_id(request))
    shipment = service.create_routed(creation, actor=current_user)
    return _shipment_response(db, shipment)


@router.post("/laptrack/shipments/bulk/minimal", response_model=ShipmentResponse, status_code=201)
def create_minimal_bulk_shipment(
    request: Request,
    payload: MinimalBulkCreate,
    current_user=Depends(require_roles(UserRole.LOGISTICS)),
    db=Depends(get_db),
):
    service = ShipmentCreationService(db, trace_id=_trace_id(request))
    shipment = service.create_minimal_bulk(payload, actor=current_user)
    return _shipment_response(db, shipment)


@router.get("/laptrack/shipments/{shipment_id}", response_model=ShipmentResponse)
def get_shipment(
    shipment_id: UUID,
    current_user=Depends(require_active_user),
    db=Depends(get_db),
):
    return _shipment_response(db, _load_visible_shipment(db, shipment_id, current_user))


@router.post("/laptrack/shipments/{shipment_id}/status", response_model=ShipmentResponse)
def update_shipment_status(
    request: Request,
    shipment_id: UUID,
    payload: StatusUpdateRequest,
    current_user=Depends(require_roles(*_STATUS_UPDATERS)),
    db=Depends(get_db),
    notifier=Depends(get_notifier),
):
    engine = StatusTransitionEngine(db, notifier, trace_id=_trace_id(request))
    result = engine.update_status(
        shipment_id,
        payload.status,
        actor=current_user,
        courier_name=payload.courier_name,
        tracking_number=payload.tracking_number,
        eta=payload.eta,
    )
    return _shipment_response(db, result.shipment)


@router.patch("/laptrack/shipments/{shipment_id}", response_model=ShipmentResponse)
def edit_shipment(
    request: Request,
    shipment_id: UUID,
    payload: ShipmentEditRequest,
    current_user=Depends(require_roles(*_EDITORS)),
    db=Depends(get_db),
):
    service = ShipmentEditingService(db, trace_id=_trace_id(request))
    shipment = service.edit_shipment(shipment_id, payload, actor=current_user)
    return _shipment_response(db, shipment)


@router.put("/laptrack/shipments/{shipment_id}/pickup-form", response_model=ShipmentResponse)
def submit_pickup_form(
    request: Request,
    shipment_id: UUID,
    payload: PickupFormSubmitRequest,
    current_user=Depends(require_roles(*_EDITORS)),
    db=Depends(get_db),
    notifier=Depends(get_notifier),
):
    service = ShipmentEditingService(db, notifier, trace_id=_trace_id(request))
    shipment = service.submit_pickup_form(shipment_id, payload, actor=current_user)
    return _shipment_response(db, shipment)


@router.post("/laptrack/shipments/{shipment_id}/engineer", response_model=ShipmentResponse)
def assign_engineer(
    request: Request,
    shipment_id: UUID,
    payload: AssignEngineerRequest,
    current_user=Depends(require_roles(UserRole.LOGISTICS)),
    db=Depends(get_db),
):
    service = ShipmentEditingService(db, trace_id=_trace_id(request))
    shipment = service.assign_engineer(shipment_id, payload.software_engineer_id, actor=current_user)
    return _shipment_response(db, shipment)


@router.post("/laptrack/shipments/{shipment_id}/laptops", response_model=ShipmentResponse)
def add_laptop_to_bulk_shipment(
    request: Request,
    shipment_id: UUID,
    payload: AddLaptopRequest,
    current_user=Depends(require_roles(UserRole.LOGISTICS)),
    db=Depends(get_db),
):
    service = ShipmentEditingService(db, trace_id=_trace_id(request))
    shipment = service.add_laptop_to_bulk(shipment_id, payload.laptop_id, actor=current_user)
    return _shipment_response(db, shipment)
