"""Background sync scheduler using APScheduler."""

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from issue_brain.config import get_settings
from issue_brain.models import SyncResult
from issue_brain.sync.orchestrator import get_syncer
from issue_brain.utils.logging import get_logger

logger = get_logger(__name__)

_scheduler: BackgroundScheduler | None = None


def run_sync() -> SyncResult | None:
    """
    Run one issue sync, logging instead of raising on failure.

    Returns:
        The sync result, or None when the run aborted
    """
    try:
        return get_syncer().sync()
    except Exception as e:
        logger.error("sync_failed", error=str(e))
        return None


def start_scheduler(run_initial: bool = True) -> BackgroundScheduler:
    """
    Start the background sync scheduler.

    Args:
        run_initial: Run one sync immediately after starting

    Returns:
        The scheduler instance
    """
    global _scheduler

    if _scheduler is not None:
        logger.warning("scheduler_already_running")
        return _scheduler

    settings = get_settings()
    _scheduler = BackgroundScheduler()

    # A sync is never run concurrently with itself.
    _scheduler.add_job(
        run_sync,
        trigger=IntervalTrigger(minutes=settings.sync_interval_minutes),
        id="issue_sync",
        name="GitHub issue sync",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    _scheduler.start()
    logger.info(
        "scheduler_started",
        interval_minutes=settings.sync_interval_minutes,
    )

    if run_initial:
        logger.info("running_initial_sync")
        run_sync()

    return _scheduler


def stop_scheduler() -> None:
    """Stop the background sync scheduler."""
    global _scheduler

    if _scheduler is not None:
        _scheduler.shutdown(wait=False)
        _scheduler = None
        logger.info("scheduler_stopped")


def get_scheduler() -> BackgroundScheduler | None:
    """Get the current scheduler instance."""
    return _scheduler
