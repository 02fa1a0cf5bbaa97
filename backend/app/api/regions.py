"""Regions API endpoints."""
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, status
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.api.deps import get_transaction_runner
from app.errors import BusinessRuleViolation, NotFound
from app.models import Pin, Project, Region
from app.schemas.region import RegionDeleteOptions
from app.schemas.resources import MessageResponse
from app.serializers import serialize_many, serialize_region
from app.services.read_cache import cache_key_for
from app.services.transactions import TransactionRunner
from app.utils.audit import log_audit_event
from app.validation import validate_region_create, validate_region_update

router = APIRouter(prefix="/regions", tags=["Regions"])


async def get_region_or_404(
    db: AsyncSession,
    region_id: int,
    *,
    with_projects: bool = False,
    refresh: bool = False,
) -> Region:
    query = select(Region).where(Region.id == region_id)
    if with_projects:
        query = query.options(selectinload(Region.projects).selectinload(Project.pins))
    if refresh:
        query = query.execution_options(populate_existing=True)
    result = await db.execute(query)
    region = result.scalar_one_or_none()
    if region is None:
        raise NotFound("Region")
    return region


@router.get("")
async def list_regions(
    request: Request,
    runner: TransactionRunner = Depends(get_transaction_runner),
):
    """List all regions with their projects and pins."""
    async def operation(db: AsyncSession):
        result = await db.execute(
            select(Region)
            .options(selectinload(Region.projects).selectinload(Project.pins))
            .order_by(Region.id)
        )
        return serialize_many(result.scalars().all(), serialize_region)

    return await runner.run_read(operation, cache_key_for(request))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_region(
    payload: Any = Body(None),
    runner: TransactionRunner = Depends(get_transaction_runner),
):
    """Create a region. Names are unique across all regions."""
    async def operation(db: AsyncSession):
        data = (await validate_region_create(db, payload)).raise_for_errors()
        region = Region(name=data.name)
        db.add(region)
        await db.flush()
        return serialize_region(region)

    region = await runner.run_mutation(operation, name="create region")
    log_audit_event(
        "region_created",
        details={"region_id": region["id"], "region_name": region["name"]},
    )
    return region


@router.get("/{region_id}")
async def get_region(
    region_id: int,
    request: Request,
    runner: TransactionRunner = Depends(get_transaction_runner),
):
    """Get a region with its projects and pins."""
    async def operation(db: AsyncSession):
        region = await get_region_or_404(db, region_id, with_projects=True)
        return serialize_region(region)

    return await runner.run_read(operation, cache_key_for(request))


@router.put("/{region_id}")
async def update_region(
    region_id: int,
    payload: Any = Body(None),
    runner: TransactionRunner = Depends(get_transaction_runner),
):
    """Rename a region. Keeping the current name is allowed."""
    previous_name = None

    async def operation(db: AsyncSession):
        nonlocal previous_name
        region = await get_region_or_404(db, region_id)
        data = (await validate_region_update(db, payload, region_id)).raise_for_errors()
        previous_name = region.name
        region.name = data.name
        await db.flush()

        region = await get_region_or_404(db, region_id, with_projects=True, refresh=True)
        return serialize_region(region)

    region = await runner.run_mutation(operation, name="update region")
    log_audit_event(
        "region_updated",
        details={
            "region_id": region_id,
            "previous_name": previous_name,
            "new_name": region["name"],
        },
    )
    return region


@router.delete("/{region_id}", response_model=MessageResponse)
async def delete_region(
    region_id: int,
    force_delete: bool = Query(False, description="Also delete all projects and pins of the region"),
    options: Optional[RegionDeleteOptions] = Body(None),
    runner: TransactionRunner = Depends(get_transaction_runner),
):
    """Delete a region.

    A region that still owns projects is only deleted with ``force_delete``;
    then its pins, its projects and the region itself are removed in that
    order, all in one transaction.
    """
    force = force_delete or bool(options and options.force_delete)

    async def operation(db: AsyncSession):
        region = await get_region_or_404(db, region_id)

        project_count = (
            await db.execute(
                select(func.count(Project.id)).where(Project.region_id == region_id)
            )
        ).scalar_one()

        removed = {"projects": 0, "pins": 0}
        if project_count:
            if not force:
                raise BusinessRuleViolation(
                    "Cannot delete region because it has associated projects. "
                    "Use force_delete=true to delete the region and all associated data."
                )
            project_ids = select(Project.id).where(Project.region_id == region_id)
            pin_result = await db.execute(
                delete(Pin)
                .where(Pin.project_id.in_(project_ids))
                .execution_options(synchronize_session=False)
            )
            project_result = await db.execute(
                delete(Project)
                .where(Project.region_id == region_id)
                .execution_options(synchronize_session=False)
            )
            removed = {"projects": project_result.rowcount, "pins": pin_result.rowcount}

        await db.delete(region)
        return removed

    removed = await runner.run_mutation(operation, name="delete region")
    log_audit_event(
        "region_deleted",
        details={
            "region_id": region_id,
            "force_delete": force,
            "deleted_projects": removed["projects"],
            "deleted_pins": removed["pins"],
        },
    )

    if removed["projects"]:
        return {"message": "Region and all associated data deleted successfully"}
    return {"message": "Region deleted successfully"}
