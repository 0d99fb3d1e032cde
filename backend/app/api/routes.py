from fastapi import APIRouter

from app.api.events import router as events_router
from app.api.presence import router as presence_router

router = APIRouter()

router.include_router(presence_router)
router.include_router(events_router)


@router.get("/", tags=["root"])
def read_root() -> dict[str, str]:
    return {"message": "Welcome to the Chatline realtime API"}
