"""Skills suggestions API: job title in, skill list out.

The handler validates the title, submits a job to the admission queue and
holds the connection until the scheduler delivers. Every response carries
a usable skill list, even on errors.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.core.dependencies import get_scheduler
from app.data.skills import common_skills, fallback_skills
from app.gateway.scheduler import SkillScheduler
from app.schemas.skills import SkillsRequest, SkillsResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["skills"])

TITLE_REQUIRED = "Job title is required"


def skills_response(status_code: int, skills: list[str], error: str | None = None) -> JSONResponse:
    body = SkillsResponse(skills=skills, error=error)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def title_required_response() -> JSONResponse:
    return skills_response(400, common_skills(), TITLE_REQUIRED)


@router.post("/get-skills-suggestions", response_model=SkillsResponse)
async def get_skills_suggestions(
    body: SkillsRequest,
    scheduler: SkillScheduler = Depends(get_scheduler),
):
    """Suggest professional skills for a job title.

    200 with model-generated skills, 500 with fallback skills when the
    upstream failed or kept rate-limiting, 400 when the title is blank.
    """
    title = (body.job_title or "").strip()
    if not title:
        return title_required_response()

    try:
        responder = scheduler.submit(title)
    except Exception:
        logger.exception("Request handling error for %r", title)
        return skills_response(500, fallback_skills(title), "Failed to process request")

    delivery = await asyncio.shield(responder)
    if delivery.ok:
        return skills_response(200, delivery.skills)
    return skills_response(500, delivery.skills, "Failed to get suggestions")
