from typing import Any, Callable, Optional

from apscheduler.jobstores.base import ConflictingIdError, JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger


def create_scheduler() -> AsyncIOScheduler:
    """One scheduler per AppContext; started lazily by the first job."""
    return AsyncIOScheduler()


def add_interval_job(
    scheduler: AsyncIOScheduler,
    func: Callable[..., Any],
    seconds: float,
    job_id: str,
    kwargs: Optional[dict[str, Any]] = None,
) -> bool:
    try:
        scheduler.add_job(
            func,
            trigger=IntervalTrigger(seconds=seconds),
            id=job_id,
            kwargs=kwargs or {},
            max_instances=1,
            coalesce=True,
        )
    except ConflictingIdError:
        logger.warning(f"[Scheduler] {job_id} existed")
        return False

    if not scheduler.running:
        scheduler.start()
    return True


def remove_job(scheduler: AsyncIOScheduler, job_id: str) -> None:
    try:
        scheduler.remove_job(job_id)
    except JobLookupError:
        logger.debug(f"[Scheduler] {job_id} already removed")
