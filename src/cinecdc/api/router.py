"""Main API router."""

from fastapi import APIRouter
from cinecdc.api.bookings import router as bookings_router
from cinecdc.api.changes import router as changes_router
from cinecdc.api.insights import router as insights_router
from cinecdc.api.stages import router as stages_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(bookings_router)
api_router.include_router(changes_router)
api_router.include_router(insights_router)
api_router.include_router(stages_router)
