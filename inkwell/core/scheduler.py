"""
Background jobs.

The only job is the publish sweep. It runs on an interval from process
start, never overlaps with itself (max_instances=1) and collapses missed runs
into one (coalesce=True). A failing tick is captured and logged; the next
tick simply tries again.

The scheduler is owned by the FastAPI lifespan: `start_scheduler` on
startup, `stop_scheduler` on shutdown, which stops new ticks and waits for
one that is already running. A stopped scheduler cannot be restarted (its
thread pool is shut down), so every start after a stop builds a new one.
"""

from datetime import datetime, timezone
from typing import Optional

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlmodel import Session

from inkwell.core.config import settings
from inkwell.core.context import generate_request_id, request_scope
from inkwell.core.db_utils import db_retry
from inkwell.core.errors import error_boundary
from inkwell.core.logging_config import get_logger
from inkwell.db import engine
from inkwell.services.sweeper import publish_due_posts

logger = get_logger(__name__)

PUBLISH_SWEEP_JOB_ID = "job_publish_scheduled_posts"

scheduler: Optional[AsyncIOScheduler] = None


def build_scheduler() -> AsyncIOScheduler:
    # A single worker thread: sweeps run one at a time, off the event loop
    return AsyncIOScheduler(
        executors={"default": ThreadPoolExecutor(max_workers=1)},
        timezone=timezone.utc,
    )


@db_retry(max_retries=2, base_delay=0.5)
def run_publish_sweep() -> int:
    with Session(engine) as session:
        return publish_due_posts(session)


def job_publish_scheduled_posts() -> None:
    """Publish overdue scheduled posts. Never raises."""
    with request_scope(generate_request_id("sweep"), source="sweeper"), error_boundary("publish_scheduled_posts"):
        promoted = run_publish_sweep()
        if promoted:
            logger.info("Publish sweep complete", promoted=promoted)


def start_scheduler() -> AsyncIOScheduler:
    global scheduler

    if scheduler is None or not scheduler.running:
        scheduler = build_scheduler()

    interval = max(1, settings.PUBLISH_SWEEP_INTERVAL_SECONDS)
    scheduler.add_job(
        job_publish_scheduled_posts,
        IntervalTrigger(seconds=interval),
        id=PUBLISH_SWEEP_JOB_ID,
        max_instances=1,
        misfire_grace_time=interval,
        coalesce=True,
        replace_existing=True,
        next_run_time=datetime.now(timezone.utc),  # First sweep at startup
    )

    if not scheduler.running:
        scheduler.start()
    logger.info("Scheduler started", job=PUBLISH_SWEEP_JOB_ID, interval_seconds=interval)
    return scheduler


def stop_scheduler(wait: bool = True) -> None:
    global scheduler

    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=wait)
        logger.info("Scheduler stopped")
    scheduler = None
