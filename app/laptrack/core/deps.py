from fastapi import Depends
from jose import JWTError
from pydantic import ValidationError

from app.laptrack.core.error_catalog import AppError, ErrorCatalog
from app.laptrack.core.security import TokenData, decode_token, oauth2_scheme
from app.laptrack.db.session import get_db
from app.laptrack.repos.users import UserRepository


def get_current_token_data(token: str = Depends(oauth2_scheme)) -> TokenData:
    try:
        payload = decode_token(token)
        return TokenData(**payload)
    except (JWTError, ValidationError, TypeError) as exc:
        raise AppError(ErrorCatalog.INVALID_TOKEN) from exc


def get_current_user(token_data: TokenData = Depends(get_current_token_data), db=Depends(get_db)):
    user_id = token_data.sub
    if not user_id:
        raise AppError(ErrorCatalog.INVALID_TOKEN)

    repo = UserRepository(db)
    user = repo.get_by_id(user_id)
    if user is None:
        raise AppError(ErrorCatalog.INVALID_TOKEN)
    return user


def require_active_user(user=Depends(get_current_user)):
    if not user.is_active:
        raise AppError(ErrorCatalog.USER_INACTIVE)
    return user


def require_roles(*roles: str):
    """Allow the request only when the active user's role is one of ``roles``."""
    allowed = {getattr(role, "value", role) for role in roles}

    def dependency(current_user=Depends(require_active_user)):
        if current_user.role not in allowed:
            raise AppError(
                ErrorCatalog.PERMISSION_DENIED,
                details={"message": f"requires role: {', '.join(sorted(allowed))}"},
            )
        return current_user

    return dependency


__all__ = [
    "get_current_token_data",
    "get_current_user",
    "require_active_user",
    "require_roles",
]
