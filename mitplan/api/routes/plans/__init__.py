"""Plan API routes package."""

from fastapi import APIRouter

from mitplan.api.routes.plans.availability import router as availability_router
from mitplan.api.routes.plans.sessions import router as sessions_router

router = APIRouter(tags=["plans"])
router.include_router(sessions_router, prefix="/api/plans")
router.include_router(availability_router, prefix="/api/plans")
