"""Tracking lookup, carrier detection and cache management routes."""

import logging

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse

from ...router import SUPPORTED_FORMATS, get_tracking_url, normalize_tracking_number
from ..app import require_app, verify_api_key
from ..models import (
    CacheStatsResponse,
    DetectResponse,
    ErrorResponse,
    MessageResponse,
    TrackResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/track/cache/stats", response_model=CacheStatsResponse)
async def cache_stats():
    """Counts of cached shipments by status and carrier."""
    app = require_app()
    stats = await app.service.get_cache_stats()
    return CacheStatsResponse(data=stats.to_dict())


@router.delete(
    "/api/track/cache/{tracking_number}",
    response_model=MessageResponse,
    dependencies=[Depends(verify_api_key)],
)
async def invalidate_cache(tracking_number: str):
    """Drop a cached shipment. Unknown tracking numbers are not an error."""
    app = require_app()
    await app.service.invalidate_cache(tracking_number)
    return MessageResponse(message=f"Cache invalidated for {tracking_number}")


@router.get(
    "/api/track/detect/{tracking_number}",
    response_model=DetectResponse,
    responses={400: {"model": ErrorResponse}},
)
async def detect(tracking_number: str):
    """Detect the carrier for a tracking number without calling it."""
    app = require_app()
    carrier = app.service.detect_carrier(tracking_number)
    if carrier is None:
        return JSONResponse(
            status_code=400,
            content={
                "status": "ERROR",
                "message": "Unable to detect carrier for tracking number",
                "error_code": "CARRIER_UNDETERMINED",
                "tracking_number": tracking_number,
                "supported_formats": SUPPORTED_FORMATS,
            },
        )

    return DetectResponse(
        tracking_number=normalize_tracking_number(tracking_number),
        carrier=carrier.value,
        supported=carrier in app.registry,
        tracking_url=get_tracking_url(carrier, tracking_number),
    )


@router.get("/api/track/{tracking_number}/raw")
async def track_raw(tracking_number: str):
    """Raw carrier payload, passed through untouched. Never cached."""
    app = require_app()
    payload = await app.service.fetch_raw(tracking_number)
    return Response(content=payload, media_type="application/json")


@router.get(
    "/api/track/{tracking_number}",
    response_model=TrackResponse,
    response_model_exclude_unset=True,
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def track(tracking_number: str, refresh: bool = False, debug: bool = False):
    """Track a shipment, served from cache while valid.

    ``refresh=true`` forces a carrier call; ``debug=true`` also attaches
    the raw carrier payload.
    """
    app = require_app()
    detected = app.service.detect_carrier(tracking_number)

    if refresh:
        shipment = await app.service.refresh_shipment(tracking_number, include_raw=debug)
    else:
        shipment = await app.service.get_shipment(tracking_number, include_raw=debug)

    return {
        "status": "OK",
        "carrier": shipment.carrier.value,
        "detected_carrier": detected.value if detected else None,
        "data": shipment.to_dict(),
    }
