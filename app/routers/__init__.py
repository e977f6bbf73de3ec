"""API routers."""

from app.routers.auth import router as auth_router
from app.routers.functions import router as functions_router
from app.routers.projects import router as projects_router
from app.routers.storage import router as storage_router

__all__ = ["auth_router", "functions_router", "projects_router", "storage_router"]
