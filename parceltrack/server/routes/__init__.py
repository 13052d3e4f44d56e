"""Route registration for the ParcelTrack API."""

from fastapi import FastAPI

from .cron import router as cron_router
from .health import router as health_router
from .tracking import router as tracking_router


def register_routes(app: FastAPI):
    app.include_router(health_router)
    app.include_router(tracking_router)
    app.include_router(cron_router)
