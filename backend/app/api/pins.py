"""Pin API endpoints."""
import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.api.deps import get_transaction_runner
from app.api.projects import get_project_or_404
from app.errors import NotFound
from app.models import Pin, Project
from app.schemas.resources import MessageResponse
from app.serializers import serialize_many, serialize_pin
from app.services.read_cache import cache_key_for
from app.services.transactions import TransactionRunner
from app.utils.audit import log_audit_event
from app.validation import validate_pin_create, validate_pin_update

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Pins"])


async def get_pin_or_404(
    db: AsyncSession,
    pin_id: int,
    *,
    with_project: bool = False,
    refresh: bool = False,
) -> Pin:
    query = select(Pin).where(Pin.id == pin_id)
    if with_project:
        query = query.options(selectinload(Pin.project).selectinload(Project.region))
    if refresh:
        query = query.execution_options(populate_existing=True)
    result = await db.execute(query)
    pin = result.scalar_one_or_none()
    if pin is None:
        raise NotFound("Pin")
    return pin


@router.get("/projects/{project_id}/pins")
async def list_project_pins(
    project_id: int,
    request: Request,
    runner: TransactionRunner = Depends(get_transaction_runner),
):
    """List the pins of a project."""
    async def operation(db: AsyncSession):
        await get_project_or_404(db, project_id)
        result = await db.execute(
            select(Pin).where(Pin.project_id == project_id).order_by(Pin.id)
        )
        return serialize_many(result.scalars().all(), serialize_pin)

    return await runner.run_read(operation, cache_key_for(request))


@router.post("/projects/{project_id}/pins", status_code=status.HTTP_201_CREATED)
async def create_pin(
    project_id: int,
    payload: Any = Body(None),
    runner: TransactionRunner = Depends(get_transaction_runner),
):
    """Drop a pin on a project. Coordinates are stored with 8 fractional digits."""
    data = validate_pin_create(payload).raise_for_errors()

    async def operation(db: AsyncSession):
        await get_project_or_404(db, project_id)
        pin = Pin(project_id=project_id)
        pin.set_coordinates(data.latitude, data.longitude)
        db.add(pin)
        await db.flush()
        return serialize_pin(pin)

    pin = await runner.run_mutation(operation, name="create pin")
    log_audit_event(
        "pin_created",
        details={
            "pin_id": pin["id"],
            "project_id": project_id,
            "latitude": pin["latitude"],
            "longitude": pin["longitude"],
        },
    )
    return pin


@router.get("/pins/{pin_id}")
async def get_pin(
    pin_id: int,
    request: Request,
    runner: TransactionRunner = Depends(get_transaction_runner),
):
    """Get a pin with its project (and the project's region)."""
    async def operation(db: AsyncSession):
        pin = await get_pin_or_404(db, pin_id, with_project=True)
        return serialize_pin(pin)

    return await runner.run_read(operation, cache_key_for(request))


@router.put("/pins/{pin_id}")
async def update_pin(
    pin_id: int,
    payload: Any = Body(None),
    runner: TransactionRunner = Depends(get_transaction_runner),
):
    """Move a pin. Both coordinates are required."""
    data = validate_pin_update(payload).raise_for_errors()

    async def operation(db: AsyncSession):
        pin = await get_pin_or_404(db, pin_id)
        pin.set_coordinates(data.latitude, data.longitude)
        await db.flush()

        pin = await get_pin_or_404(db, pin_id, with_project=True, refresh=True)
        return serialize_pin(pin)

    pin = await runner.run_mutation(operation, name="update pin")
    log_audit_event(
        "pin_updated",
        details={
            "pin_id": pin_id,
            "latitude": pin["latitude"],
            "longitude": pin["longitude"],
        },
    )
    return pin


@router.delete("/pins/{pin_id}", response_model=MessageResponse)
async def delete_pin(
    pin_id: int,
    runner: TransactionRunner = Depends(get_transaction_runner),
):
    """Delete a pin."""
    async def operation(db: AsyncSession):
        pin = await get_pin_or_404(db, pin_id)
        logger.info(f"Deleting pin {pin_id}")
        await db.delete(pin)

    await runner.run_mutation(operation, name="delete pin")
    log_audit_event("pin_deleted", details={"pin_id": pin_id})
    return {"message": "Pin deleted successfully"}
