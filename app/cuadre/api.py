from fastapi import APIRouter

from app.cuadre.core.config import settings
from app.cuadre.routers.audit import router as audit_router
from app.cuadre.routers.cash_sessions import router as cash_sessions_router
from app.cuadre.routers.health import router as health_router
from app.cuadre.routers.metrics import router as metrics_router
from app.cuadre.routers.reports import router as reports_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(cash_sessions_router, tags=["cash-sessions"])
api_router.include_router(reports_router, tags=["reports"])
api_router.include_router(audit_router, tags=["audit"])
if settings.METRICS_ENABLED:
    api_router.include_router(metrics_router, tags=["ops"])
