"""Main API router that includes all endpoint routers."""

from fastapi import APIRouter

from bookingdesk.api.v1 import bookings, notifications, verification

api_router = APIRouter()

# Bookings
api_router.include_router(bookings.router, prefix="/bookings", tags=["Bookings"])

# Check-in verification
api_router.include_router(verification.router, prefix="/verification", tags=["Verification"])

# Notifications
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
