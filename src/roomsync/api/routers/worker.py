"""Worker/internal routes (APP_ROLE=worker)."""

from fastapi import APIRouter

from roomsync.api.routes import tasks_email, tasks_notifications

router = APIRouter()


@router.get("/tasks/health")
def tasks_health() -> dict:
    return {"status": "ok", "subsystem": "tasks"}


router.include_router(tasks_notifications.router)
router.include_router(tasks_email.router)
