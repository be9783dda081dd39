from fastapi import APIRouter, Depends, Request
from fastapi.security import OAuth2PasswordRequestForm

from app.laptrack.core.error_catalog import AppError
from app.laptrack.db.session import get_db
from app.laptrack.repos.users import UserRepository
from app.laptrack.schemas.auth import LoginRequest, OAuth2TokenResponse, TokenResponse
from app.laptrack.services.audit import AuditEventPayload, AuditService
from app.laptrack.services.auth import AuthService

router = APIRouter()


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login (JSON)",
    description="Login for JSON clients using email or username_or_email.",
)
def login(request: Request, payload: LoginRequest, db=Depends(get_db)):
    service = AuthService(db)
    identifier = payload.email or payload.username_or_email
    trace_id = getattr(request.state, "trace_id", "")

    try:
        user, token = service.login(identifier, payload.password)
    except AppError as exc:
        candidates = UserRepository(db).list_by_username_or_email(identifier)
        if candidates:
            candidate = candidates[0]
            AuditService(db).record_event(
                AuditEventPayload(
                    user_id=str(candidate.id),
                    trace_id=trace_id or None,
                    actor=identifier,
                    actor_role=candidate.role,
                    action="auth.login.failed",
                    entity_type="user",
                    entity_id=str(candidate.id),
                    before=None,
                    after=None,
                    metadata={"error_code": exc.error.code},
                    result="failure",
                )
            )
        raise

    AuditService(db).record_event(
        AuditEventPayload(
            user_id=str(user.id),
            trace_id=trace_id or None,
            actor=user.username,
            actor_role=user.role,
            action="auth.login",
            entity_type="user",
            entity_id=str(user.id),
            before=None,
            after=None,
            metadata=None,
            result="success",
        )
    )
    return TokenResponse(access_token=token, role=user.role, trace_id=trace_id)


@router.post(
    "/token",
    response_model=OAuth2TokenResponse,
    summary="OAuth2 Token (Swagger/Auth)",
    description="OAuth2 Password Flow endpoint for Swagger Authorize using form-data username/password.",
)
def oauth2_token(form_data: OAuth2PasswordRequestForm = Depends(), db=Depends(get_db)):
    _, token = AuthService(db).login(form_data.username, form_data.password)
    return OAuth2TokenResponse(access_token=token)
