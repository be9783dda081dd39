from fastapi import FastAPI

from app.laptrack.api import api_router
from app.laptrack.core.config import settings
from app.laptrack.core.errors import setup_exception_handlers
from app.laptrack.core.logging import configure_logging
from app.laptrack.middleware.observability import ObservabilityMiddleware
from app.laptrack.middleware.trace import TraceIdMiddleware
from app.laptrack.middleware.user_context import UserContextMiddleware


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title=settings.APP_NAME)
    app.add_middleware(UserContextMiddleware)
    app.add_middleware(TraceIdMiddleware)
    app.add_middleware(ObservabilityMiddleware)
    setup_exception_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()
