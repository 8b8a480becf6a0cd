"""FastAPI dependencies."""

from __future__ import annotations

from app.gateway.scheduler import SkillScheduler, build_scheduler

# Process-wide scheduler, created on first use and stopped at shutdown
_scheduler: SkillScheduler | None = None


async def get_scheduler() -> SkillScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = build_scheduler()
    return _scheduler


async def shutdown_scheduler() -> None:
    global _scheduler
    if _scheduler is not None:
        await _scheduler.stop()
        _scheduler = None
