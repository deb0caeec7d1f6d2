"""Top-level API router."""

from fastapi import APIRouter

from app.api.routes.finance import router as finance_router
from app.api.routes.health import router as health_router
from app.api.routes.partners import router as partners_router
from app.api.routes.projects import router as projects_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(partners_router)
api_router.include_router(projects_router)
api_router.include_router(finance_router)
