"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from app.api.routes import users, cinemas, screenings, reservations

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(users.router)
api_router.include_router(cinemas.router)
api_router.include_router(screenings.router)
api_router.include_router(reservations.router)
