"""
API routers module.

This module contains all API route definitions organized by domain.
"""
from api.routers.health import router as health_router
from api.routers.patients import router as patients_router
from api.routers.measurements import router as measurements_router
from api.routers.timers import router as timers_router
from api.routers.meta import router as meta_router

__all__ = [
    "health_router",
    "patients_router",
    "measurements_router",
    "timers_router",
    "meta_router",
]
