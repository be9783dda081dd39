from fastapi import APIRouter

from app.laptrack.core.config import settings
from app.laptrack.routers.auth import router as auth_router
from app.laptrack.routers.health import router as health_router
from app.laptrack.routers.laptops import router as laptops_router
from app.laptrack.routers.metrics import router as metrics_router
from app.laptrack.routers.reception_reports import router as reception_reports_router
from app.laptrack.routers.shipments import router as shipments_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(auth_router, prefix="/laptrack/auth", tags=["auth"])
api_router.include_router(shipments_router, tags=["shipments"])
api_router.include_router(laptops_router, tags=["laptops"])
api_router.include_router(reception_reports_router, tags=["reception-reports"])
if settings.METRICS_ENABLED:
    api_router.include_router(metrics_router, tags=["ops"])
