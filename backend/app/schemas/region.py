"""Pydantic schemas for Region requests."""
from typing import Any
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError


class RegionBase(BaseModel):
    """Base region schema."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255)

    @field_validator("name", mode="before")
    @classmethod
    def name_not_null(cls, value: Any) -> Any:
        if value is None:
            raise PydanticCustomError("required", "name is required")
        return value


class RegionCreate(RegionBase):
    """Region creation schema."""


class RegionUpdate(RegionBase):
    """Region update schema (rename only, name always required)."""


class RegionDeleteOptions(BaseModel):
    """Optional JSON body accepted by region deletion."""
    force_delete: bool = False
