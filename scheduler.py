"""
scheduler.py

Responsibility: Sets up the APScheduler AsyncIOScheduler and registers the
background state refresh job. Exposes create/reschedule helpers.
Does NOT: contain resource logic, config reading, or HTTP calls directly.
Those are delegated to ResourceLifecycleService and its collaborators.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

import httpx
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlmodel import Session

from db.database import engine
from faxter.provider import Provider
from repositories.config_repository import ConfigRepository
from repositories.state_repository import StateRepository
from services.config_service import ConfigService
from services.lifecycle_service import ResourceLifecycleService
from services.log_service import LogService

logger = logging.getLogger(__name__)

# Job ID used to identify the refresh job in APScheduler
_JOB_ID = "state_refresh"

# Activity entries older than this are pruned after each refresh
_LOG_RETENTION_DAYS = 7


# ---------------------------------------------------------------------------
# Scheduler job
# ---------------------------------------------------------------------------


async def _refresh_job(http_client: httpx.AsyncClient, shutdown_event: asyncio.Event) -> None:
    """
    APScheduler job: refreshes every managed resource and prunes old activity.

    Opens a fresh DB session for each run. All resource logic is delegated to
    ResourceLifecycleService; this function only wires up collaborators.

    Args:
        http_client: The long-lived shared httpx.AsyncClient from app.state.
        shutdown_event: Set when the application is stopping.

    Returns:
        None
    """
    logger.debug("State refresh job triggered.")

    with Session(engine) as session:
        config_service = ConfigService(ConfigRepository(session))
        log_service = LogService(session)

        api_token = await config_service.get_api_token()
        if not api_token:
            logger.warning("No API token configured; skipping state refresh.")
            return

        provider = Provider.configure(
            http_client=http_client,
            api_token=api_token,
            base_url=await config_service.get_base_url(),
            poll_config=await config_service.get_poll_config(),
            cancel_signal=shutdown_event,
        )
        lifecycle = ResourceLifecycleService(provider, StateRepository(session), log_service)

        summary = await lifecycle.refresh_all()
        if summary.removed or summary.failed:
            log_service.log(
                f"Refresh: {summary.refreshed} refreshed, {summary.removed} removed, "
                f"{len(summary.failed)} failed.",
                level="WARNING" if summary.failed else "INFO",
            )

        log_service.delete_older_than(days=_LOG_RETENTION_DAYS)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def create_scheduler(
    http_client: httpx.AsyncClient,
    shutdown_event: asyncio.Event,
    interval_seconds: int = 600,
) -> AsyncIOScheduler:
    """
    Creates and returns a configured AsyncIOScheduler with the refresh job.

    The job runs immediately on startup (next_run_time=now) and then at the
    configured interval.

    Args:
        http_client: The shared httpx.AsyncClient to pass into the job.
        shutdown_event: The application shutdown event to pass into the job.
        interval_seconds: Seconds between refresh runs (default 600).

    Returns:
        A configured but not yet started AsyncIOScheduler.
    """
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        _refresh_job,
        trigger="interval",
        seconds=interval_seconds,
        id=_JOB_ID,
        kwargs={"http_client": http_client, "shutdown_event": shutdown_event},
        next_run_time=datetime.now(timezone.utc),
        max_instances=1,  # Prevent overlapping runs if a refresh takes too long
    )
    logger.info("State refresh job scheduled, interval: %ds.", interval_seconds)
    return scheduler


def reschedule(scheduler: AsyncIOScheduler, interval_seconds: int) -> None:
    """
    Changes the refresh job's interval without restarting the scheduler.

    Called by PUT /api/settings when a new refresh interval is saved.

    Args:
        scheduler: The running AsyncIOScheduler instance from app.state.
        interval_seconds: New interval in seconds.

    Returns:
        None
    """
    scheduler.reschedule_job(
        _JOB_ID,
        trigger="interval",
        seconds=interval_seconds,
    )
    logger.info("State refresh job rescheduled, new interval: %ds.", interval_seconds)
