from fastapi import APIRouter, Depends

from app.api.skills import router as skills_router
from app.core.dependencies import get_scheduler
from app.gateway.scheduler import SkillScheduler

api_router = APIRouter(prefix="/api")
api_router.include_router(skills_router)


@api_router.get("/health", tags=["health"])
async def health(scheduler: SkillScheduler = Depends(get_scheduler)):
    return {
        "status": "ok",
        "queue": scheduler.get_status(),
    }
