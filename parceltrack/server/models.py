"""Pydantic response models for the ParcelTrack API."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class ShipmentEventModel(BaseModel):
    timestamp: Optional[str] = None
    location: str
    description: str
    status: str


class ShipmentModel(BaseModel):
    tracking_number: str
    carrier: str
    status: str
    estimated_delivery: Optional[str] = None
    current_location: Optional[str] = None
    events: List[ShipmentEventModel] = []
    raw: Optional[Any] = None


class TrackResponse(BaseModel):
    status: str = "OK"
    carrier: str
    detected_carrier: Optional[str] = None
    data: ShipmentModel


class DetectResponse(BaseModel):
    status: str = "OK"
    tracking_number: str
    carrier: str
    supported: bool
    tracking_url: Optional[str] = None


class CacheStatsResponse(BaseModel):
    status: str = "OK"
    data: Dict[str, Any]


class MessageResponse(BaseModel):
    status: str = "OK"
    message: str


class RefreshRunResponse(BaseModel):
    success: bool
    message: str
    result: Dict[str, int]


class ErrorResponse(BaseModel):
    status: str = "ERROR"
    message: str
    error_code: Optional[str] = None
