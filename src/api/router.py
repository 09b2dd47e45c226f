"""
API router - aggregates all route modules.
"""
from fastapi import APIRouter
from src.api.availability import router as availability_router
from src.api.cron import router as cron_router
from src.api.admin import router as admin_router
from src.api.health import router as health_router

api_router = APIRouter()
api_router.include_router(availability_router)
api_router.include_router(cron_router)
api_router.include_router(admin_router)
api_router.include_router(health_router)
