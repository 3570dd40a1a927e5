"""Public-facing routes (APP_ROLE=public)."""

from fastapi import APIRouter

from roomsync.api.routes import housekeeping, maintenance, reservations, rooms

router = APIRouter()


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


router.include_router(reservations.router)
router.include_router(housekeeping.router)
router.include_router(maintenance.router)
router.include_router(rooms.router)
