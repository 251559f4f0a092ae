from fastapi import APIRouter

from app.tally.core.config import settings
from app.tally.routers.auth import router as auth_router
from app.tally.routers.health import router as health_router
from app.tally.routers.metrics import router as metrics_router
from app.tally.routers.stock_counts import router as stock_counts_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(auth_router, prefix="/tally/auth", tags=["auth"])
api_router.include_router(stock_counts_router, tags=["stock-counts"])
if settings.METRICS_ENABLED:
    api_router.include_router(metrics_router, tags=["ops"])
