"""FastAPI app creation, global state, API key check and error mapping."""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, Security
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader

from ..app import ParcelTrack
from ..errors import ParcelTrackError

logger = logging.getLogger(__name__)

_config_path = os.getenv("PARCELTRACK_CONFIG", "config.yaml")

_app: Optional[ParcelTrack] = None


def _load_app() -> ParcelTrack:
    """Build ParcelTrack from the config file if present, else from the environment."""
    if os.path.exists(_config_path):
        logger.info(f"ParcelTrack loaded from {_config_path}")
        return ParcelTrack(_config_path)
    logger.info(f"Config not found: {_config_path}. Using environment variables.")
    return ParcelTrack()


def require_app() -> ParcelTrack:
    """Raise 503 if the app has not been initialized yet."""
    if _app is None or not _app.initialized:
        raise HTTPException(503, "ParcelTrack is not initialized")
    return _app


def set_app(new_app: Optional[ParcelTrack]):
    """Set the global _app instance."""
    global _app
    _app = new_app


# ── Optional API key authentication ──

_API_KEY = os.getenv("PARCELTRACK_API_KEY")
_api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(
    request: Request,
    api_key_header_value: Optional[str] = Security(_api_key_header),
):
    """Verify API key from Authorization: Bearer <key> or X-API-Key header.

    When PARCELTRACK_API_KEY is not set, all requests are allowed (dev mode).
    When set, a valid key is required on mutating and cron endpoints.
    """
    if _API_KEY is None:
        # Dev mode: no authentication required
        return None

    # Check X-API-Key header first
    if api_key_header_value and api_key_header_value == _API_KEY:
        return api_key_header_value

    # Check Authorization: Bearer <key>
    auth_header = request.headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:]
        if token == _API_KEY:
            return token

    raise HTTPException(401, "Invalid or missing API key")


async def _parceltrack_error_handler(request: Request, exc: ParcelTrackError) -> JSONResponse:
    status_code = exc.http_status if 400 <= exc.http_status < 600 else 500
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def create_api(parceltrack: Optional[ParcelTrack] = None) -> FastAPI:
    """Create and configure the FastAPI app with routes.

    Args:
        parceltrack: Application to serve. When omitted it is built from
            PARCELTRACK_CONFIG (or the environment) at startup.
    """

    @asynccontextmanager
    async def lifespan(_api: FastAPI):
        instance = parceltrack or _load_app()
        await instance.initialize()
        set_app(instance)
        try:
            yield
        finally:
            await instance.shutdown()
            set_app(None)

    _api = FastAPI(title="ParcelTrack", version="0.1.0", lifespan=lifespan)
    _api.add_exception_handler(ParcelTrackError, _parceltrack_error_handler)

    if _API_KEY is None:
        logger.warning(
            "PARCELTRACK_API_KEY is not set. API endpoints are unauthenticated. "
            "Set PARCELTRACK_API_KEY environment variable to enable authentication."
        )

    from .routes import register_routes
    register_routes(_api)
    return _api
