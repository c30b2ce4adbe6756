"""API route modules."""

from fastapi import APIRouter

from workassign.entrypoints.api.routes.audit import router as audit_router
from workassign.entrypoints.api.routes.projects import router as projects_router
from workassign.entrypoints.api.routes.tasks import router as tasks_router
from workassign.entrypoints.api.routes.teams import router as teams_router
from workassign.entrypoints.api.routes.users import router as users_router

# Create main API router
api_router = APIRouter()

# Include all route modules
api_router.include_router(tasks_router)
api_router.include_router(teams_router)
api_router.include_router(projects_router)
api_router.include_router(users_router)
api_router.include_router(audit_router)

__all__ = ["api_router"]
