"""APScheduler job definitions and scheduler management.

Initializes a BackgroundScheduler with an IntervalTrigger running the
onboarding tick, and provides start/shutdown/status helpers for the
FastAPI lifespan.

A slow tick never delays the next one: overlapping instances are allowed
and each candidate is serialized by the per-candidate locks instead.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from onboardflow.core.config import settings
from onboardflow.services.tick import run_tick

logger = logging.getLogger(__name__)

TICK_JOB_ID = "onboarding_tick"
MAX_OVERLAPPING_TICKS = 3

# Module-level scheduler instance (singleton)
scheduler = BackgroundScheduler(timezone="UTC")


def _tick_job() -> None:
    """Wrapper that APScheduler calls on each interval tick."""
    run_tick(trigger="scheduler")


def start_scheduler() -> None:
    """Configure and start the background scheduler."""
    scheduler.add_job(
        _tick_job,
        IntervalTrigger(minutes=settings.TICK_INTERVAL_MINUTES),
        id=TICK_JOB_ID,
        replace_existing=True,
        max_instances=MAX_OVERLAPPING_TICKS,
        coalesce=False,
    )
    scheduler.start()
    logger.info(
        "scheduler_started",
        extra={
            "interval_minutes": settings.TICK_INTERVAL_MINUTES,
            "max_instances": MAX_OVERLAPPING_TICKS,
        },
    )


def shutdown_scheduler() -> None:
    """Shutdown the scheduler without waiting for running ticks."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("scheduler_stopped")


def is_scheduler_running() -> bool:
    """Check if the scheduler is currently running."""
    return scheduler.running
