"""API route aggregation.

All routers registered here get mounted in main.py.
"""

from fastapi import APIRouter

from todobridge.api.health import router as health_router
from todobridge.api.todos import router as todos_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(todos_router, tags=["todos"])
