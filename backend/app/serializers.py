"""Map ORM entities to client-facing JSON structures.

Relations are included only when they were loaded on the entity (eagerly or by
an earlier access); an unloaded relation is omitted from the output, never
lazily fetched. Back-references to the parent are not followed when
serializing children, so nested output is always a tree.
"""
from typing import Any, Iterable

from sqlalchemy import inspect

from app.models import Pin, Project, Region
from app.schemas.resources import PinResponse, ProjectResponse, RegionResponse


def _is_loaded(entity: Any, relation: str) -> bool:
    return relation not in inspect(entity).unloaded


def region_response(region: Region, *, include_projects: bool = True) -> RegionResponse:
    data = {
        "id": region.id,
        "name": region.name,
        "created_at": region.created_at,
        "updated_at": region.updated_at,
    }
    if include_projects and _is_loaded(region, "projects"):
        data["projects"] = [
            project_response(p, include_region=False) for p in region.projects
        ]
    return RegionResponse(**data)


def project_response(
    project: Project,
    *,
    include_region: bool = True,
    include_pins: bool = True,
) -> ProjectResponse:
    data = {
        "id": project.id,
        "region_id": project.region_id,
        "name": project.name,
        "geo_json": project.geo_json,
        "created_at": project.created_at,
        "updated_at": project.updated_at,
    }
    if include_region and _is_loaded(project, "region") and project.region is not None:
        data["region"] = region_response(project.region, include_projects=False)
    if include_pins and _is_loaded(project, "pins"):
        data["pins"] = [pin_response(p, include_project=False) for p in project.pins]
    return ProjectResponse(**data)


def pin_response(pin: Pin, *, include_project: bool = True) -> PinResponse:
    data = {
        "id": pin.id,
        "project_id": pin.project_id,
        "latitude": pin.latitude,
        "longitude": pin.longitude,
        "created_at": pin.created_at,
        "updated_at": pin.updated_at,
    }
    if include_project and _is_loaded(pin, "project") and pin.project is not None:
        data["project"] = project_response(pin.project, include_pins=False)
    return PinResponse(**data)


def dump(response) -> dict[str, Any]:
    """JSON-compatible dict with unloaded relations left out."""
    return response.model_dump(mode="json", exclude_unset=True)


def serialize_region(region: Region) -> dict[str, Any]:
    return dump(region_response(region))


def serialize_project(project: Project) -> dict[str, Any]:
    return dump(project_response(project))


def serialize_pin(pin: Pin) -> dict[str, Any]:
    return dump(pin_response(pin))


def serialize_many(entities: Iterable[Any], serializer) -> list[dict[str, Any]]:
    return [serializer(entity) for entity in entities]
