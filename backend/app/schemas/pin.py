"""Pydantic schemas for Pin requests."""
from decimal import Decimal
from pydantic import BaseModel, Field


class PinCoordinates(BaseModel):
    """Latitude/longitude pair, both required and range checked (inclusive)."""
    latitude: Decimal = Field(..., ge=-90, le=90)
    longitude: Decimal = Field(..., ge=-180, le=180)


class PinCreate(PinCoordinates):
    """Pin creation schema."""


class PinUpdate(PinCoordinates):
    """Pin update schema. Coordinates are replaced together, never partially."""
