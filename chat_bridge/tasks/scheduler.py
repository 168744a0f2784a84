"""
APScheduler configuration for the background sweeps.
"""

from collections.abc import Awaitable, Callable

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from chat_bridge.core.config import settings
from chat_bridge.dependencies import (
    get_chat_rate_limiter,
    get_lookup_rate_limiter,
    get_session_store,
)

logger = structlog.get_logger()

Sweep = Callable[[], Awaitable[int]]


async def run_sweep(name: str, sweep: Sweep) -> int:
    """Run one sweep; a failure is logged and the next run still happens."""
    try:
        return await sweep()
    except Exception:
        logger.exception("Sweep job failed", job=name)
        return 0


def setup_scheduler(scheduler: AsyncIOScheduler) -> None:
    """Register the session and rate-window sweeps as interval jobs."""
    jobs: list[tuple[str, str, int, Sweep]] = [
        (
            "session_sweep",
            "Session Sweep",
            settings.session.sweep_interval_seconds,
            get_session_store().sweep,
        ),
        (
            "chat_rate_limit_sweep",
            "Chat Rate Limit Sweep",
            settings.rate_limit.sweep_interval_seconds,
            get_chat_rate_limiter().sweep,
        ),
        (
            "lookup_rate_limit_sweep",
            "Lookup Rate Limit Sweep",
            settings.rate_limit.sweep_interval_seconds,
            get_lookup_rate_limiter().sweep,
        ),
    ]
    for job_id, name, interval, sweep in jobs:
        scheduler.add_job(
            run_sweep,
            "interval",
            seconds=interval,
            args=[job_id, sweep],
            id=job_id,
            name=name,
            coalesce=True,
            max_instances=1,
            replace_existing=True,
        )


def start_scheduler() -> AsyncIOScheduler:
    """Create and start the scheduler on the running event loop."""
    scheduler = AsyncIOScheduler()
    setup_scheduler(scheduler)
    scheduler.start()
    logger.info("Scheduler started", jobs=[job.id for job in scheduler.get_jobs()])
    return scheduler


def shutdown_scheduler(scheduler: AsyncIOScheduler) -> None:
    """Shutdown the scheduler without waiting for running sweeps."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler shutdown complete")
