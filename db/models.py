"""
db/models.py

Responsibility: Defines all SQLModel table models used by the application.
Does NOT: contain business logic, repositories, or session management.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def _timestamp_field(**kwargs: Any) -> Any:
    return Field(default_factory=utcnow, sa_type=DateTime(timezone=True), **kwargs)


# ---------------------------------------------------------------------------
# ProviderConfig: single-row provider configuration table
# ---------------------------------------------------------------------------


class ProviderConfig(SQLModel, table=True):
    """
    Stores the provider's runtime configuration as a single DB row.

    Only one row is expected; it is loaded and saved by ConfigRepository.
    An empty api_token means "fall back to the FAXTER_TOKEN environment variable".
    """

    id: Optional[int] = Field(default=None, primary_key=True)

    # Faxter API bearer token
    api_token: str = Field(default="")

    # Root URL of the Faxter REST API
    base_url: str = Field(default="https://api.faxter.com")

    # Seconds to wait for a new server to come online
    poll_timeout: int = Field(default=300)

    # Seconds between provisioning status checks
    poll_interval: int = Field(default=10)

    # Seconds between background state refresh runs
    refresh_interval: int = Field(default=600)


# ---------------------------------------------------------------------------
# ResourceState: persisted state of one managed resource
# ---------------------------------------------------------------------------


class ResourceState(SQLModel, table=True):
    """
    The recorded state of one managed Faxter resource.

    The row id is stable for the resource's lifetime; resource_id is the
    backend identifier and changes when a resource is renamed.

    Collaborators:
        - StateRepository: reads and writes these rows
        - ResourceLifecycleService: keeps them in sync with the backend
    """

    id: Optional[int] = Field(default=None, primary_key=True)

    # Provider resource type, e.g. "faxter_server"
    resource_type: str = Field(index=True)

    # Backend identifier (usually the resource name)
    resource_id: str = Field(index=True)

    # Project scope; empty for unscoped resources such as projects
    project: str = Field(default="")

    # JSON-encoded attribute dict, computed attributes included
    attributes_json: str = Field(default="{}")

    # Last lifecycle status reported by the backend, when it reports one
    status: str = Field(default="")

    # True when creation started but the resource never became ready
    tainted: bool = Field(default=False)

    created_at: datetime = _timestamp_field()
    updated_at: datetime = _timestamp_field()


# ---------------------------------------------------------------------------
# ActivityLog: operator-visible provider activity
# ---------------------------------------------------------------------------


class ActivityLog(SQLModel, table=True):
    """
    Represents a single line in the provider activity log.

    Written by LogService; read back through GET /api/logs/recent, and per
    resource through GET /api/logs/resources/{state_id}. Log level is stored as
    a plain string (e.g. "INFO", "WARNING", "ERROR").

    Entries about one resource carry its type and the ResourceState row id,
    which stays stable across renames. resource_id records the backend id at
    the time of the entry. All three are empty for provider-wide entries.
    """

    id: Optional[int] = Field(default=None, primary_key=True)

    timestamp: datetime = _timestamp_field(index=True)
    level: str = Field(default="INFO")

    message: str = Field(default="")

    resource_type: str = Field(default="", index=True)
    resource_id: str = Field(default="")
    state_id: Optional[int] = Field(default=None, index=True)
