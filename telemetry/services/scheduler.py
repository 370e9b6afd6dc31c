"""Background job scheduler.

APScheduler jobs for the auto-resolve sweep and periodic rule reloads.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from telemetry.config import settings
from telemetry.logging_config import get_logger
from telemetry.services.alert_engine import AlertEngine

logger = get_logger(__name__)

AUTO_RESOLVE_JOB_ID = "auto_resolve"
RULE_RELOAD_JOB_ID = "rule_reload"

# Global scheduler instance
scheduler: AsyncIOScheduler | None = None


async def run_auto_resolve(engine: AlertEngine) -> None:
    """Scheduled job: one auto-resolve sweep."""
    try:
        await engine.auto_resolver.sweep()
    except Exception as e:
        logger.error("Unexpected error in auto-resolve sweep", error=str(e))


async def run_rule_reload(engine: AlertEngine) -> None:
    """Scheduled job: refresh the rule snapshot."""
    await engine.reload_rules()


def start_scheduler(engine: AlertEngine) -> AsyncIOScheduler:
    """Start the background job scheduler.

    Must be called from within the running event loop.

    Returns:
        The started scheduler instance
    """
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler already running")
        return scheduler

    scheduler = AsyncIOScheduler()

    if settings.auto_resolve_enabled:
        scheduler.add_job(
            run_auto_resolve,
            trigger=IntervalTrigger(seconds=settings.auto_resolve_interval_seconds),
            args=[engine],
            id=AUTO_RESOLVE_JOB_ID,
            name="Alert Auto-Resolve Sweep",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info(
            "Scheduled auto-resolve job",
            interval_seconds=settings.auto_resolve_interval_seconds,
        )

    if settings.rule_reload_enabled:
        scheduler.add_job(
            run_rule_reload,
            trigger=IntervalTrigger(seconds=settings.rule_reload_interval_seconds),
            args=[engine],
            id=RULE_RELOAD_JOB_ID,
            name="Alert Rule Reload",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info(
            "Scheduled rule reload job",
            interval_seconds=settings.rule_reload_interval_seconds,
        )

    scheduler.start()
    logger.info("Background scheduler started")

    return scheduler


def stop_scheduler() -> None:
    """Stop scheduling new jobs. Running jobs are not cancelled."""
    global scheduler

    if scheduler is None:
        return

    try:
        scheduler.shutdown(wait=False)
    finally:
        scheduler = None
    logger.info("Background scheduler stopped")


def get_scheduler() -> AsyncIOScheduler | None:
    return scheduler


@asynccontextmanager
async def scheduler_lifespan(engine: AlertEngine) -> AsyncGenerator[None, None]:
    """Run the scheduler for the duration of the block, then stop it and
    let the engine finish any in-flight sweep."""
    start_scheduler(engine)
    try:
        yield
    finally:
        try:
            stop_scheduler()
        finally:
            await engine.shutdown()
