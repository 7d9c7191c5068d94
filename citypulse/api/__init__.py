"""API endpoints for the CityPulse ticketing service."""

from fastapi import APIRouter
from .auth import router as auth_router
from .organizers import router as organizers_router
from .events import router as events_router
from .bookings import router as bookings_router
from .coupons import router as coupons_router
from .notifications import router as notifications_router
from .reviews import router as reviews_router

# Create main API router
api_router = APIRouter(prefix="/api/v1")

api_router.include_router(auth_router)
api_router.include_router(organizers_router)
api_router.include_router(events_router)
api_router.include_router(bookings_router)
api_router.include_router(coupons_router)
api_router.include_router(notifications_router)
api_router.include_router(reviews_router)

__all__ = ["api_router"]
