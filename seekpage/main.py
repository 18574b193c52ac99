"""FastAPI application serving keyset-paginated document listings."""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, get_settings
from .db.connection import db_manager, get_db_pool
from .errors import register_exception_handlers
from .errors.problem_details import ServiceUnavailableError
from .routes import documents_router

logger = logging.getLogger(__name__)

SERVICE_NAME = "Seekpage Document API"
SERVICE_VERSION = "1.0.0"
API_PREFIX = "/v1"


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=settings.log_level, format=settings.log_format)
    logging.getLogger().setLevel(settings.log_level)


async def ping_database() -> None:
    """Run a trivial query on a pooled connection."""
    pool = await get_db_pool()
    async with pool.acquire() as conn:
        await conn.execute("SELECT 1")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the connection pool on startup and close it on shutdown."""
    logger.info(f"Starting {SERVICE_NAME} {SERVICE_VERSION}")
    try:
        await db_manager.initialize()
        await ping_database()
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise
    logger.info("Database connectivity verified")

    yield

    logger.info(f"Shutting down {SERVICE_NAME}")
    try:
        await db_manager.close()
    except Exception as e:
        logger.error(f"Error while closing database pool: {e}")


def create_app(settings: Settings = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=SERVICE_NAME,
        description="Keyset-paginated listing of JSON documents",
        version=SERVICE_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan
    )

    # Link carries the pagination cursors, so browsers must be allowed to read it
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        expose_headers=["Link"],
    )

    register_exception_handlers(app)
    app.include_router(documents_router, prefix=API_PREFIX)

    @app.get("/health", tags=["Health"])
    async def health_check() -> Dict[str, Any]:
        """Readiness check including database connectivity."""
        try:
            await ping_database()
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            raise ServiceUnavailableError(
                detail="Database connection failed",
                database_error=str(e)
            )
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "database": "connected"
        }

    @app.get("/live", tags=["Health"])
    async def liveness_check() -> Dict[str, str]:
        return {"status": "alive", "service": SERVICE_NAME}

    @app.get("/", tags=["Root"])
    async def root() -> Dict[str, str]:
        """Service metadata and entry points."""
        return {
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "docs": "/docs",
            "health": "/health",
            "documents": f"{API_PREFIX}{documents_router.prefix}"
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "seekpage.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
