"""Pydantic response schemas for regions, projects and pins."""
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, List, Optional
from pydantic import BaseModel, PlainSerializer

from app.models.pin import COORDINATE_SCALE

# Coordinates cross the wire as fixed-precision strings, e.g. "40.71280000"
Coordinate = Annotated[
    Decimal,
    PlainSerializer(lambda v: f"{v:.{COORDINATE_SCALE}f}", return_type=str, when_used="always"),
]


class RegionResponse(BaseModel):
    """Region response schema."""
    id: int
    name: str
    created_at: datetime
    updated_at: datetime
    projects: Optional[List["ProjectResponse"]] = None

    class Config:
        from_attributes = True


class ProjectResponse(BaseModel):
    """Project response schema."""
    id: int
    region_id: int
    name: str
    geo_json: Any
    created_at: datetime
    updated_at: datetime
    region: Optional[RegionResponse] = None
    pins: Optional[List["PinResponse"]] = None

    class Config:
        from_attributes = True


class PinResponse(BaseModel):
    """Pin response schema."""
    id: int
    project_id: int
    latitude: Coordinate
    longitude: Coordinate
    created_at: datetime
    updated_at: datetime
    project: Optional[ProjectResponse] = None

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    version: str
    service: str


# Update forward references
RegionResponse.model_rebuild()
ProjectResponse.model_rebuild()
PinResponse.model_rebuild()
