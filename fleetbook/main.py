"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from fleetbook.api.v1.router import api_router
from fleetbook.config import settings
from fleetbook.core.exceptions import AppException
from fleetbook.core.immutability import register_immutability_enforcement
from fleetbook.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from fleetbook.database import close_db, engine, init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    if settings.debug:
        await init_db()
    logger.info(
        f"{settings.app_name} {settings.app_version} up in {settings.environment} "
        f"(auto-approve bookings: {settings.auto_approve_bookings})"
    )
    yield
    await close_db()
    logger.info(f"{settings.app_name} stopped")


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Render an AppException with its status code and body."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    elif exc.status_code == 409:
        logger.info(f"{request.method} {request.url.path} refused: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_content(),
        headers=exc.headers,
    )


def _add_middleware(app: FastAPI) -> None:
    # Added last runs first: security headers wrap everything, gzip is innermost
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)


async def _database_status() -> str:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("Health check could not reach the database", exc_info=True)
        return "unavailable"
    return "ok"


def create_application() -> FastAPI:
    """Build the fleet booking API."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    register_immutability_enforcement()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Fleet Booking - vehicle and driver reservations with manager approval",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )
    app.add_exception_handler(AppException, app_exception_handler)
    _add_middleware(app)
    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/health")
    async def health_check() -> dict:
        database = await _database_status()
        return {
            "status": "healthy" if database == "ok" else "degraded",
            "database": database,
            "version": settings.app_version,
            "environment": settings.environment,
            "timestamp": datetime.now(UTC).isoformat(),
        }

    @app.get("/")
    async def root() -> dict:
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "bookings": f"{settings.api_prefix}/bookings",
            "vehicles": f"{settings.api_prefix}/vehicles",
            "drivers": f"{settings.api_prefix}/drivers",
        }

    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "fleetbook.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=1 if settings.debug else settings.workers,
    )
