"""Central API router aggregating all domain routers."""

from fastapi import APIRouter

from app.account.router import router as account_router
from app.admin.router import router as admin_router
from app.auth.router import router as auth_router
from app.health.router import router as health_router

api_router = APIRouter()

api_router.include_router(health_router)
api_router.include_router(auth_router)
api_router.include_router(account_router)
api_router.include_router(admin_router)
