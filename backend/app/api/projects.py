"""Project API endpoints."""
from typing import Any

from fastapi import APIRouter, Body, Depends, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.api.deps import get_transaction_runner
from app.api.regions import get_region_or_404
from app.errors import NotFound
from app.models import Project
from app.schemas.resources import MessageResponse
from app.serializers import serialize_many, serialize_project
from app.services.read_cache import cache_key_for
from app.services.transactions import TransactionRunner
from app.utils.audit import log_audit_event
from app.validation import validate_project_create, validate_project_update

router = APIRouter(tags=["Projects"])


async def get_project_or_404(
    db: AsyncSession,
    project_id: int,
    *,
    with_region: bool = False,
    with_pins: bool = False,
    refresh: bool = False,
) -> Project:
    query = select(Project).where(Project.id == project_id)
    if with_region:
        query = query.options(selectinload(Project.region))
    if with_pins:
        query = query.options(selectinload(Project.pins))
    if refresh:
        query = query.execution_options(populate_existing=True)
    result = await db.execute(query)
    project = result.scalar_one_or_none()
    if project is None:
        raise NotFound("Project")
    return project


@router.get("/regions/{region_id}/projects")
async def list_region_projects(
    region_id: int,
    request: Request,
    runner: TransactionRunner = Depends(get_transaction_runner),
):
    """List the projects of a region, each with its pins."""
    async def operation(db: AsyncSession):
        await get_region_or_404(db, region_id)
        result = await db.execute(
            select(Project)
            .where(Project.region_id == region_id)
            .options(selectinload(Project.pins))
            .order_by(Project.id)
        )
        return serialize_many(result.scalars().all(), serialize_project)

    return await runner.run_read(operation, cache_key_for(request))


@router.post("/regions/{region_id}/projects", status_code=status.HTTP_201_CREATED)
async def create_project(
    region_id: int,
    payload: Any = Body(None),
    runner: TransactionRunner = Depends(get_transaction_runner),
):
    """Create a project under a region."""
    data = validate_project_create(payload).raise_for_errors()

    async def operation(db: AsyncSession):
        await get_region_or_404(db, region_id)
        project = Project(region_id=region_id, name=data.name, geo_json=data.geo_json)
        db.add(project)
        await db.flush()

        project = await get_project_or_404(db, project.id, with_pins=True, refresh=True)
        return serialize_project(project)

    project = await runner.run_mutation(operation, name="create project")
    log_audit_event(
        "project_created",
        details={
            "project_id": project["id"],
            "project_name": project["name"],
            "region_id": region_id,
        },
    )
    return project


@router.get("/projects/{project_id}")
async def get_project(
    project_id: int,
    request: Request,
    runner: TransactionRunner = Depends(get_transaction_runner),
):
    """Get a project with its region and pins."""
    async def operation(db: AsyncSession):
        project = await get_project_or_404(db, project_id, with_region=True, with_pins=True)
        return serialize_project(project)

    return await runner.run_read(operation, cache_key_for(request))


@router.put("/projects/{project_id}")
async def update_project(
    project_id: int,
    payload: Any = Body(None),
    runner: TransactionRunner = Depends(get_transaction_runner),
):
    """Partially update a project; absent fields are left unchanged."""
    data = validate_project_update(payload).raise_for_errors()
    update_data = data.model_dump(exclude_unset=True)

    async def operation(db: AsyncSession):
        project = await get_project_or_404(db, project_id)
        for field, value in update_data.items():
            setattr(project, field, value)
        await db.flush()

        project = await get_project_or_404(
            db, project_id, with_region=True, with_pins=True, refresh=True
        )
        return serialize_project(project)

    project = await runner.run_mutation(operation, name="update project")
    log_audit_event(
        "project_updated",
        details={"project_id": project_id, "updated_fields": sorted(update_data.keys())},
    )
    return project


@router.delete("/projects/{project_id}", response_model=MessageResponse)
async def delete_project(
    project_id: int,
    runner: TransactionRunner = Depends(get_transaction_runner),
):
    """Delete a project. Its pins go with it through the foreign key cascade."""
    async def operation(db: AsyncSession):
        project = await get_project_or_404(db, project_id)
        await db.delete(project)

    await runner.run_mutation(operation, name="delete project")
    log_audit_event("project_deleted", details={"project_id": project_id})
    return {"message": "Project deleted successfully"}
