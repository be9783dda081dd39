from jose import JWTError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from app.laptrack.core.security import decode_token


class UserContextMiddleware(BaseHTTPMiddleware):
    """Expose the caller's identity on ``request.state`` for logging.

    Nothing is enforced here; a bad token is rejected later by the route's
    auth dependency.
    """

    async def dispatch(self, request: Request, call_next):
        request.state.user_id = None
        request.state.role = None
        request.state.client_company_id = None

        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.lower().startswith("bearer "):
            token = auth_header.split(" ", 1)[1]
            try:
                payload = decode_token(token)
            except JWTError:
                payload = {}
            request.state.user_id = payload.get("sub")
            request.state.role = payload.get("role")
            request.state.client_company_id = payload.get("client_company_id")

        return await call_next(request)
