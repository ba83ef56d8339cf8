"""API v1 router."""

from fastapi import APIRouter

from beacon.api.v1.analytics import router as analytics_router
from beacon.api.v1.auth import router as auth_router

router = APIRouter()

# Include sub-routers
router.include_router(auth_router, prefix="/auth", tags=["auth"])
router.include_router(analytics_router, prefix="/analytics", tags=["analytics"])
