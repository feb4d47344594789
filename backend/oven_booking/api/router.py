"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from oven_booking.api.routes import admin, bookings, ovens, users

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(users.router)
api_router.include_router(ovens.router)
api_router.include_router(bookings.router)
api_router.include_router(admin.router)
