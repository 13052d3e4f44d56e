"""Liveness route."""

import time

from fastapi import APIRouter

from ...models import utc_now

router = APIRouter()

_STARTED = time.monotonic()


@router.get("/health")
async def health():
    return {
        "status": "ok",
        "timestamp": utc_now().isoformat(),
        "uptime": round(time.monotonic() - _STARTED, 3),
    }
