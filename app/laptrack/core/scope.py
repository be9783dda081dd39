from uuid import UUID

from app.laptrack.core.error_catalog import AppError, ErrorCatalog, validation_error
from app.laptrack.db.models import ClientCompany
from app.laptrack.services.statuses import UserRole


def is_client(user) -> bool:
    return user is not None and user.role == UserRole.CLIENT.value


def enforce_company_scope(user, client_company_id) -> None:
    """Client users only ever see and act on their own company."""
    if not is_client(user):
        return
    if user.client_company_id is None or client_company_id is None:
        raise AppError(ErrorCatalog.COMPANY_SCOPE_DENIED)
    if UUID(str(user.client_company_id)) != UUID(str(client_company_id)):
        raise AppError(ErrorCatalog.COMPANY_SCOPE_DENIED)


def resolve_client_company(db, user, requested_id) -> ClientCompany:
    company_id = requested_id
    if is_client(user):
        if requested_id is not None:
            enforce_company_scope(user, requested_id)
        company_id = user.client_company_id
    if company_id is None:
        raise validation_error("client company is required", field="client_company_id")
    company = db.get(ClientCompany, UUID(str(company_id)))
    if company is None:
        raise validation_error("client company not found", field="client_company_id")
    return company
