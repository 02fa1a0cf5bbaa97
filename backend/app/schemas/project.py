"""Pydantic schemas for Project requests."""
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError


def _check_geo_json(value: Any) -> Any:
    if value is None:
        raise PydanticCustomError("required", "geo_json is required")
    if not isinstance(value, (dict, list)):
        raise PydanticCustomError("array", "geo_json must be an object or array")
    return value


class ProjectCreate(BaseModel):
    """Project creation schema."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255)
    geo_json: Any

    @field_validator("name", mode="before")
    @classmethod
    def name_not_null(cls, value: Any) -> Any:
        if value is None:
            raise PydanticCustomError("required", "name is required")
        return value

    @field_validator("geo_json", mode="before")
    @classmethod
    def geo_json_is_structured(cls, value: Any) -> Any:
        return _check_geo_json(value)


class ProjectUpdate(BaseModel):
    """Project update schema. Absent fields are left unchanged."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    geo_json: Optional[Any] = None

    @field_validator("name", mode="before")
    @classmethod
    def name_not_null(cls, value: Any) -> Any:
        if value is None:
            raise PydanticCustomError("required", "name is required when present")
        return value

    @field_validator("geo_json", mode="before")
    @classmethod
    def geo_json_is_structured(cls, value: Any) -> Any:
        if value is None:
            raise PydanticCustomError("array", "geo_json must be an object or array")
        return _check_geo_json(value)
