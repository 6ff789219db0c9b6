"""
routes/api_routes.py

Responsibility: Lightweight JSON endpoints for operators: activity history,
provider settings, and the registered resource types.
Does NOT: create or modify Faxter resources.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from db.models import ActivityLog, ProviderConfig
from dependencies import get_config_service, get_log_service
from faxter.provider import RESOURCE_TYPES
from scheduler import reschedule
from services.config_service import ConfigService
from services.log_service import LogService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


class SettingsUpdate(BaseModel):
    """Partial settings update; omitted fields are left unchanged."""

    api_token: Optional[str] = None
    base_url: Optional[str] = None
    poll_timeout: Optional[int] = None
    poll_interval: Optional[int] = None
    refresh_interval: Optional[int] = None


def _settings_view(config: ProviderConfig) -> dict[str, Any]:
    # The token itself is never echoed back.
    return {
        "api_token_set": bool(config.api_token),
        "base_url": config.base_url,
        "poll_timeout": config.poll_timeout,
        "poll_interval": config.poll_interval,
        "refresh_interval": config.refresh_interval,
    }


# ---------------------------------------------------------------------------
# Activity log
# ---------------------------------------------------------------------------


def _entry_view(entry: ActivityLog) -> dict[str, Any]:
    return {
        "timestamp": entry.timestamp.isoformat(),
        "level": entry.level,
        "message": entry.message,
        "resource_type": entry.resource_type,
        "resource_id": entry.resource_id,
        "state_id": entry.state_id,
    }


@router.get("/logs/recent")
async def get_recent_logs(
    limit: int = Query(default=50, ge=1, le=500),
    resource_type: Optional[str] = Query(default=None),
    log_service: LogService = Depends(get_log_service),
) -> list[dict[str, Any]]:
    """
    Returns the most recent activity entries, newest first.

    Args:
        limit: Maximum number of entries (1 to 500).
        resource_type: Only entries about this resource type, e.g. "faxter_server".
        log_service: Provides recent log entries from the DB.

    Returns:
        A list of entry dicts (timestamp, level, message and the resource
        the entry is about, if any).
    """
    return [_entry_view(entry) for entry in log_service.get_recent(limit=limit, resource_type=resource_type)]


@router.get("/logs/resources/{state_id}")
async def get_resource_logs(
    state_id: int,
    limit: int = Query(default=50, ge=1, le=500),
    log_service: LogService = Depends(get_log_service),
) -> list[dict[str, Any]]:
    """
    Returns the activity of one managed resource, newest first.

    The history is keyed by state id, so it spans renames and is still
    available after the resource was deleted.
    """
    return [_entry_view(entry) for entry in log_service.get_for_state(state_id, limit=limit)]


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@router.get("/settings")
async def get_settings(
    config_service: ConfigService = Depends(get_config_service),
) -> dict[str, Any]:
    """Returns the current provider settings with the token masked."""
    return _settings_view(await config_service.get_config())


@router.put("/settings")
async def update_settings(
    request: Request,
    body: SettingsUpdate,
    config_service: ConfigService = Depends(get_config_service),
    log_service: LogService = Depends(get_log_service),
) -> dict[str, Any]:
    """
    Saves provider settings and reschedules the refresh job if its interval changed.

    Args:
        request: The incoming FastAPI request (for app.state.scheduler).
        body: The settings to change.
        config_service: Validates and saves the settings.
        log_service: Writes an activity entry on success.

    Returns:
        The saved settings with the token masked.

    Raises:
        HTTPException(422): If an interval or timeout is not positive.
    """
    try:
        config = await config_service.update_settings(**body.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    if body.refresh_interval is not None:
        scheduler = getattr(request.app.state, "scheduler", None)
        if scheduler is not None:
            reschedule(scheduler, interval_seconds=config.refresh_interval)

    log_service.log("Provider settings updated.", level="INFO")
    return _settings_view(config)


# ---------------------------------------------------------------------------
# Provider metadata
# ---------------------------------------------------------------------------


@router.get("/resource-types")
async def list_resource_types() -> list[str]:
    """Returns the resource type names this provider manages."""
    return sorted(RESOURCE_TYPES)
