from fastapi import APIRouter

from app.api.v1.endpoints import health, leads, notifications, tasks

router = APIRouter(prefix="/api/v1")

router.include_router(tasks.router)
router.include_router(notifications.router)
router.include_router(leads.router)
router.include_router(health.router)
