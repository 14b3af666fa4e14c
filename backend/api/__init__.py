from fastapi import APIRouter

# Subrouters are imported and re-exported for convenience
from .events import router as events_router  # noqa: F401
from .users import router as users_router  # noqa: F401
from .teams import router as teams_router  # noqa: F401
from .projects import router as projects_router  # noqa: F401
from .notifications import router as notifications_router  # noqa: F401

__all__ = [
    "APIRouter",
    "events_router",
    "users_router",
    "teams_router",
    "projects_router",
    "notifications_router",
]
