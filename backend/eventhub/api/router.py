"""
Versioned API router: auth, event moderation/CRUD and the booking engine.
"""

from fastapi import APIRouter
from eventhub.api.routes import auth, events, bookings

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(events.router)
api_router.include_router(bookings.router)
