"""
FastAPI Application Entry Point

Aamis Kitchen Storefront - cloud-kitchen ordering backend.
Supports both Mock services (development) and Real APIs (production).

Endpoints:
    - /api/auth/*: OTP phone login
    - /api/kitchens, /api/categories, /api/products, /api/delivery-slots: Catalog
    - /api/delivery-fee: Distance-based delivery quote
    - /api/orders: Checkout and order history
    - /api/users/me: Profile
    - /api/admin/*: Catalog CRUD, order workflow, dashboard
    - /api/ondc/*: ONDC seller endpoints
    - /gateway/*: API gateway to the microservices
    - GET /health: System health check

Author: Khalil Bannouri
Version: 4.0.0
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis import asyncio as aioredis
from redis.exceptions import RedisError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Internal imports
from app.core.config import get_settings, setup_logging
from app.database import engine, get_db, init_db
from app.routers import admin, auth, catalog, gateway, kitchens, ondc, orders, pricing, users
from app.schemas import ErrorResponse, HealthResponse
from app.services.auth import get_auth_service
from app.services.gateway import get_service_client, reset_service_client
from app.services.geo import get_geo_service
from app.services.notifications import get_notification_service
from app.services.ondc import get_ondc_service

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    await init_db()
    logger.info("✅ Database initialized")

    logger.info(f"✅ Geo Service: {get_geo_service().provider_name}")
    logger.info(f"✅ Notification Service: {get_notification_service().provider_name}")
    logger.info(f"✅ Auth Service: {get_auth_service().provider_name}")
    logger.info(f"✅ ONDC Service: {get_ondc_service().provider_name}")

    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await get_service_client().aclose()
    reset_service_client()
    await engine.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Cloud-kitchen storefront backend: catalog, delivery slots, OTP login, "
        "checkout, admin, ONDC and an API gateway. Mock providers in development, "
        "real APIs in staging and production."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(kitchens.router)
app.include_router(catalog.router)
app.include_router(pricing.router)
app.include_router(orders.router)
app.include_router(users.router)
app.include_router(admin.router)
app.include_router(ondc.router)
app.include_router(gateway.router)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍛 Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db)
) -> HealthResponse:
    """Verify all system components are operational."""

    # Check database
    db_status = "healthy"
    try:
        await db.execute(select(1))
    except SQLAlchemyError as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    # Check Redis
    redis_status = "healthy"
    client = aioredis.from_url(settings.redis_url, socket_timeout=2, socket_connect_timeout=2)
    try:
        await client.ping()
    except (RedisError, OSError) as e:
        redis_status = f"unhealthy: {str(e)}"
        logger.error(f"Redis health check failed: {e}")
    finally:
        await client.aclose()

    geo_status = "healthy" if await get_geo_service().health_check() else "unhealthy"
    notification_status = "healthy" if await get_notification_service().health_check() else "unhealthy"
    auth_status = "healthy" if await get_auth_service().health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy"
        for s in [db_status, redis_status, geo_status, notification_status, auth_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        environment=settings.env_mode.value,
        database=db_status,
        redis=redis_status,
        geo_service=geo_status,
        notification_service=notification_status,
        auth_service=auth_status,
        timestamp=datetime.now(timezone.utc),
    )


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and parameters are client errors (400)."""
    logger.info(f"Validation error on {request.method} {request.url.path}")

    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "Validation error",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="Internal Server Error",
            detail=str(exc) if settings.debug else "An unexpected error occurred",
        ).model_dump(),
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host=settings.api_host, port=settings.api_port, reload=settings.debug)
