"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.api import router as api_router
from app.database import create_tables, engine
from app.errors import register_exception_handlers
from app.services.read_cache import create_read_cache

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info(f"Starting {settings.APP_NAME}...")
    if settings.DB_AUTO_CREATE:
        await create_tables()
    app.state.read_cache = create_read_cache()
    yield
    # Shutdown
    logger.info(f"Shutting down {settings.APP_NAME}...")
    await app.state.read_cache.close()
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    description="Regions, map projects and pins management API",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include API routers
app.include_router(api_router, prefix=settings.API_PREFIX)
