"""Module: api."""

# backend/filhos/api/v1/api.py
from fastapi import APIRouter

# Core operational routes (health/auth/push).
from filhos.api.v1.routes.health import router as health_router
from filhos.api.v1.routes.auth import router as auth_router
from filhos.api.v1.routes.push import router as push_router

# Domain routes used by frontend pages and dashboards.
from filhos.api.v1.routes.children import router as children_router
from filhos.api.v1.routes.vaccines import router as vaccines_router
from filhos.api.v1.routes.dashboard import router as dashboard_router
from filhos.api.v1.routes.invites import router as invites_router
from filhos.api.v1.routes.health_events import router as health_events_router
from filhos.api.v1.routes.milestones import router as milestones_router
from filhos.api.v1.routes.diary import router as diary_router



api_router = APIRouter()

# Register operational endpoints first for service-level concerns.
api_router.include_router(health_router, prefix="/health", tags=["health"])
api_router.include_router(auth_router, prefix="/auth", tags=["auth"])
api_router.include_router(push_router, prefix="/push", tags=["push"])

# Register business/domain endpoints consumed by the application UI.
# Vaccine routes carry full paths because they span /vaccines and /children.
api_router.include_router(vaccines_router, tags=["vaccines"])
api_router.include_router(children_router, prefix="/children", tags=["children"])
api_router.include_router(dashboard_router, prefix="/dashboard", tags=["dashboard"])

# Sharing and journal routes also span /children and their own resources.
api_router.include_router(invites_router, tags=["sharing"])
api_router.include_router(health_events_router, tags=["health-records"])
api_router.include_router(milestones_router, tags=["milestones"])
api_router.include_router(diary_router, tags=["diary"])
