"""
Periodic date check scheduling.

Wraps APScheduler's BackgroundScheduler: one interval job, first run
after an initial delay, at most one run in flight.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler

logger = logging.getLogger(__name__)

CHECK_JOB_ID = "date-check"


def create_scheduler(
    job: Callable[[], object],
    interval: float,
    initial_delay: float = 0.0,
) -> BackgroundScheduler:
    """
    Build a scheduler that runs ``job`` every ``interval`` seconds.

    The scheduler is returned unstarted. A run that comes due while the
    previous one is still going is skipped, and runs missed while the
    process was busy are collapsed into one.

    Args:
        job: Callable to run
        interval: Seconds between runs
        initial_delay: Seconds before the first run

    Returns:
        BackgroundScheduler: Scheduler with the job registered
    """
    if interval <= 0:
        raise ValueError("interval must be positive")

    scheduler = BackgroundScheduler(timezone=timezone.utc)
    first_run = datetime.now(timezone.utc) + timedelta(seconds=initial_delay)

    scheduler.add_job(
        job,
        trigger="interval",
        seconds=interval,
        id=CHECK_JOB_ID,
        name="IELTS date check",
        next_run_time=first_run,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=None,
    )

    logger.info(f"Scheduled date check every {interval:g}s (first run in {initial_delay:g}s)")
    return scheduler
