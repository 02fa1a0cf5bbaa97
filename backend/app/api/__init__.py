"""API router aggregation."""
from fastapi import APIRouter

from app.api.health import router as health_router
from app.api.regions import router as regions_router
from app.api.projects import router as projects_router
from app.api.pins import router as pins_router

router = APIRouter()

router.include_router(health_router)
router.include_router(regions_router)
router.include_router(projects_router)
router.include_router(pins_router)
