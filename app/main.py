"""
Quota Gateway - Main Application
FastAPI application for quota-enforced object storage with direct uploads.
"""
from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from app.core.config import settings
from app.core.errors import GatewayError
from app.core.logging import setup_logging
from app.core.redis_client import check_redis_connection
from app.api import api_router, scheduled_router
from app.api.deps import get_object_store, get_redis
from app.middleware import MetricsMiddleware
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from app.metrics import app_info, app_uptime_seconds

setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

logger = logging.getLogger(__name__)

_app_start_time = time.time()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log the effective storage target and flag missing signing credentials."""
    logger.info("Starting Quota Gateway...")
    logger.info(f"Version: {settings.APP_VERSION}")
    logger.info(f"Bucket: {settings.S3_BUCKET} @ {settings.S3_ENDPOINT}")

    app_info.labels(version=settings.APP_VERSION).set(1)

    if not settings.signing_configured:
        logger.warning("S3 credentials are not configured: /api/upload-urls will fail with 500")

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down Quota Gateway...")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Quota-enforced object storage gateway with presigned direct uploads, "
                "pin/access metadata and a retention sweep.",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(MetricsMiddleware)


@app.exception_handler(GatewayError)
async def gateway_exception_handler(request: Request, exc: GatewayError):
    """Render gateway errors as {ok: false, message, reason}."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are client errors (400)."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "ok": False,
            "message": "Malformed request.",
            "reason": "invalid",
            "details": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "ok": False,
            "message": str(exc) if settings.LOG_LEVEL == "DEBUG" else "An unexpected error occurred",
        },
    )


@app.get("/health", tags=["health"])
def health_check(redis_client=Depends(get_redis), store=Depends(get_object_store)):
    """
    Health check of the gateway and its backing services.

    Returns overall status (healthy/degraded) with Redis and object store status.
    """
    health = {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "services": {},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if check_redis_connection(redis_client):
        health["services"]["redis"] = {"status": "healthy"}
    else:
        health["services"]["redis"] = {"status": "unhealthy"}
        health["status"] = "degraded"

    try:
        if store.ping():
            health["services"]["object_store"] = {"status": "healthy"}
        else:
            health["services"]["object_store"] = {"status": "unhealthy", "error": "bucket missing"}
            health["status"] = "degraded"
    except Exception as e:
        health["services"]["object_store"] = {"status": "unhealthy", "error": str(e)}
        health["status"] = "degraded"

    return health


# Include API routers
app.include_router(api_router, prefix="/api")
app.include_router(scheduled_router)


@app.get("/metrics", tags=["monitoring"])
async def metrics():
    """
    Prometheus metrics endpoint.

    Metrics include:
    - API request counts and durations
    - Usage counter and quota ceiling
    - Storage operations and drift events
    - Admission rejections and presigned URLs issued
    - Retention sweep passes
    """
    app_uptime_seconds.set(time.time() - _app_start_time)

    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        log_level=settings.LOG_LEVEL.lower(),
    )
