"""Health check endpoint."""
from datetime import datetime, timezone

from fastapi import APIRouter

from app.config import get_settings
from app.schemas.resources import HealthResponse

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Liveness probe with service name, version and current UTC time."""
    settings = get_settings()
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
        version=settings.APP_VERSION,
        service=settings.APP_NAME,
    )
