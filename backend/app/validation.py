"""Validation layer for region, project and pin payloads.

Each validator returns a ``ValidationResult`` carrying either the parsed
payload or a field -> messages map. Messages are fixed per field and rule
(e.g. "Latitude must be between -90 and 90 degrees.") so clients can key UI
behaviour on them.

Shape checks come from the pydantic request schemas; the pydantic error type is
mapped to a rule name and the rule to the message. Region name uniqueness needs
the data store and is checked by ``validate_region_create`` /
``validate_region_update``, which the controllers call inside the mutation's
transaction.
"""
from dataclasses import dataclass, field
from typing import Any, Generic, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import ValidationFailed
from app.models import Region
from app.schemas.pin import PinCreate, PinUpdate
from app.schemas.project import ProjectCreate, ProjectUpdate
from app.schemas.region import RegionCreate, RegionUpdate

M = TypeVar("M", bound=BaseModel)

REGION_MESSAGES = {
    "name.required": "Region name is required.",
    "name.string": "Region name must be a string.",
    "name.max": "Region name cannot exceed 255 characters.",
    "name.unique": "A region with this name already exists.",
}

PROJECT_MESSAGES = {
    "name.required": "Project name is required.",
    "name.string": "Project name must be a string.",
    "name.max": "Project name cannot exceed 255 characters.",
    "geo_json.required": "Geo JSON data is required.",
    "geo_json.array": "Geo JSON must be an array.",
}

PIN_MESSAGES = {
    "latitude.required": "Latitude is required.",
    "latitude.numeric": "Latitude must be a number.",
    "latitude.between": "Latitude must be between -90 and 90 degrees.",
    "longitude.required": "Longitude is required.",
    "longitude.numeric": "Longitude must be a number.",
    "longitude.between": "Longitude must be between -180 and 180 degrees.",
}

# pydantic error type -> rule name
_RULE_BY_ERROR_TYPE = {
    "missing": "required",
    "required": "required",
    "string_too_short": "required",
    "string_too_long": "max",
    "string_type": "string",
    "greater_than_equal": "between",
    "less_than_equal": "between",
    "array": "array",
}

# rule used when a field fails with an error type not listed above
_FALLBACK_RULE = {
    "name": "string",
    "geo_json": "array",
    "latitude": "numeric",
    "longitude": "numeric",
}


@dataclass
class ValidationResult(Generic[M]):
    """Outcome of validating one payload."""

    data: Optional[M] = None
    errors: dict[str, list[str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, field_name: str, message: str) -> None:
        messages = self.errors.setdefault(field_name, [])
        if message not in messages:
            messages.append(message)

    def raise_for_errors(self) -> M:
        """Return the parsed payload or raise ``ValidationFailed`` with every field error."""
        if self.errors:
            raise ValidationFailed(self.errors)
        return self.data


def _message_for(messages: dict[str, str], field_name: str, error_type: str) -> str:
    rule = _RULE_BY_ERROR_TYPE.get(error_type) or _FALLBACK_RULE.get(field_name, "invalid")
    return messages.get(f"{field_name}.{rule}", f"The {field_name} field is invalid.")


def _parse(schema: Type[M], payload: Any, messages: dict[str, str]) -> ValidationResult[M]:
    result: ValidationResult[M] = ValidationResult()
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        result.add_error("body", "Request body must be a JSON object.")
        return result
    try:
        result.data = schema.model_validate(payload)
    except ValidationError as e:
        for error in e.errors():
            loc = error.get("loc") or ("body",)
            field_name = str(loc[0])
            result.add_error(field_name, _message_for(messages, field_name, error["type"]))
    return result


async def _region_name_taken(db: AsyncSession, name: str, exclude_id: Optional[int] = None) -> bool:
    query = select(Region.id).where(Region.name == name)
    if exclude_id is not None:
        query = query.where(Region.id != exclude_id)
    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none() is not None


async def validate_region_create(db: AsyncSession, payload: Any) -> ValidationResult[RegionCreate]:
    result = _parse(RegionCreate, payload, REGION_MESSAGES)
    if result.ok and await _region_name_taken(db, result.data.name):
        result.add_error("name", REGION_MESSAGES["name.unique"])
    return result


async def validate_region_update(
    db: AsyncSession, payload: Any, region_id: int
) -> ValidationResult[RegionUpdate]:
    """Like create, but the region may keep its own current name."""
    result = _parse(RegionUpdate, payload, REGION_MESSAGES)
    if result.ok and await _region_name_taken(db, result.data.name, exclude_id=region_id):
        result.add_error("name", REGION_MESSAGES["name.unique"])
    return result


def validate_project_create(payload: Any) -> ValidationResult[ProjectCreate]:
    return _parse(ProjectCreate, payload, PROJECT_MESSAGES)


def validate_project_update(payload: Any) -> ValidationResult[ProjectUpdate]:
    return _parse(ProjectUpdate, payload, PROJECT_MESSAGES)


def validate_pin_create(payload: Any) -> ValidationResult[PinCreate]:
    return _parse(PinCreate, payload, PIN_MESSAGES)


def validate_pin_update(payload: Any) -> ValidationResult[PinUpdate]:
    # Same rules as create: both coordinates are always required
    return _parse(PinUpdate, payload, PIN_MESSAGES)
