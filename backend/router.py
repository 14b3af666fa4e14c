from fastapi import APIRouter

# Compose modular sub-routers
from api import (
    events_router,
    users_router,
    teams_router,
    projects_router,
    notifications_router,
)


router = APIRouter()

# main.py applies the `/api` prefix
router.include_router(events_router)
router.include_router(users_router)
router.include_router(teams_router)
router.include_router(projects_router)
router.include_router(notifications_router)
