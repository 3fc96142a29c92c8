"""
API module for FastAPI routes.
"""
from fastapi import APIRouter

from tribunal.api.routes import appeals, health, reports, sanctions

api_router = APIRouter()

# Include all route modules
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(reports.router)
api_router.include_router(sanctions.router)
api_router.include_router(appeals.router)
