"""Stale refresh trigger and scheduler status routes."""

import logging

from fastapi import APIRouter, Depends

from ..app import require_app, verify_api_key
from ..models import RefreshRunResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/api/cron/refresh",
    response_model=RefreshRunResponse,
    dependencies=[Depends(verify_api_key)],
)
async def trigger_refresh():
    """Run the stale refresh job now."""
    app = require_app()
    logger.info("Manual stale refresh triggered")
    result = await app.scheduler.run_now()
    return RefreshRunResponse(
        success=True,
        message="Refresh job completed.",
        result=result.to_dict(),
    )


@router.get("/api/cron/status", dependencies=[Depends(verify_api_key)])
async def cron_status():
    """Get refresh scheduler status."""
    app = require_app()
    return app.scheduler.status()
