"""
API v1 router.
"""
from fastapi import APIRouter

from app.api.v1.endpoints import activity, audits, forms, health, issues, manager

api_router = APIRouter()

# Health check endpoint (no prefix, so it's /api/v1/health)
api_router.include_router(health.router, tags=["health"])

api_router.include_router(audits.router, prefix="/audits", tags=["audits"])
api_router.include_router(manager.router, prefix="/manager", tags=["manager"])
api_router.include_router(forms.router, prefix="/forms", tags=["forms"])
api_router.include_router(issues.router, prefix="/issues", tags=["issues"])
api_router.include_router(activity.router, prefix="/activity", tags=["activity"])
