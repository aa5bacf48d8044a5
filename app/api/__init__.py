"""
API router aggregation.
"""
from fastapi import APIRouter
from app.api.endpoints import files, quota, scheduled, uploads

api_router = APIRouter()

# Include quota endpoint
api_router.include_router(quota.router, tags=["quota"])

# Include upload endpoints (presigned + server-mediated)
api_router.include_router(uploads.router, tags=["uploads"])

# Include per-object endpoints
api_router.include_router(files.router, tags=["files"])

# Sweep trigger lives outside the /api prefix
scheduled_router = scheduled.router

__all__ = ["api_router", "scheduled_router"]
