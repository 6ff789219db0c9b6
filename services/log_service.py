"""
services/log_service.py

Responsibility: Writes provider activity entries to the database and reads
them back, either provider-wide or for one managed resource. Also handles
activity-log cleanup.
Does NOT: call the Faxter API, manage resource state, or read configuration.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from sqlmodel import Session, select

from db.models import ActivityLog, ResourceState, utcnow

logger = logging.getLogger(__name__)


class LogService:
    """
    Manages activity entries stored in the SQLite ActivityLog table.

    These entries record what the provider did to which resource (created,
    updated, removed, failed to provision). They are separate from Python's
    standard logging infrastructure, which every entry is also mirrored to.

    Collaborators:
        - Session: SQLModel DB session injected at construction time
    """

    def __init__(self, session: Session) -> None:
        """
        Initialises the log service with an active DB session.

        Args:
            session: An open SQLModel Session for the current request.
        """
        self._session = session

    def log(
        self,
        message: str,
        level: str = "INFO",
        resource_type: str = "",
        resource_id: str = "",
        state_id: Optional[int] = None,
    ) -> ActivityLog:
        """
        Writes a single activity entry to the database.

        Also emits the message to Python's standard logging so it appears
        in the uvicorn/container log stream.

        Args:
            message: The human-readable message.
            level: Severity string ("INFO", "WARNING", "ERROR").
            resource_type: Type of the resource the entry is about, if any.
            resource_id: Backend id of that resource at the time of the entry.
            state_id: ResourceState row id, when the resource has one.

        Returns:
            The persisted ActivityLog instance.
        """
        entry = ActivityLog(
            timestamp=utcnow(),
            level=level.upper(),
            message=message,
            resource_type=resource_type,
            resource_id=resource_id,
            state_id=state_id,
        )
        self._session.add(entry)
        self._session.commit()
        self._session.refresh(entry)

        _level_int = getattr(logging, level.upper(), logging.INFO)
        logger.log(_level_int, message)

        return entry

    def log_for(self, state: ResourceState, message: str, level: str = "INFO") -> ActivityLog:
        """Writes an activity entry about the resource recorded in state."""
        return self.log(
            message,
            level=level,
            resource_type=state.resource_type,
            resource_id=state.resource_id,
            state_id=state.id,
        )

    def get_recent(self, limit: int = 100, resource_type: Optional[str] = None) -> list[ActivityLog]:
        """
        Returns the most recent activity entries, newest first.

        Args:
            limit: Maximum number of entries to return.
            resource_type: Only return entries about resources of this type.

        Returns:
            A list of ActivityLog instances ordered by timestamp descending.
        """
        statement = select(ActivityLog)
        if resource_type is not None:
            statement = statement.where(ActivityLog.resource_type == resource_type)
        statement = statement.order_by(
            ActivityLog.timestamp.desc(), ActivityLog.id.desc()  # type: ignore[union-attr]
        ).limit(limit)
        return list(self._session.exec(statement).all())

    def get_for_state(self, state_id: int, limit: int = 100) -> list[ActivityLog]:
        """
        Returns the activity of one managed resource, newest first.

        Entries are matched by ResourceState row id, so the history survives
        renames and stays readable after the row itself is deleted.
        """
        statement = (
            select(ActivityLog)
            .where(ActivityLog.state_id == state_id)
            .order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())  # type: ignore[union-attr]
            .limit(limit)
        )
        return list(self._session.exec(statement).all())

    def delete_older_than(self, days: int) -> int:
        """
        Deletes all activity entries older than the given number of days.

        Args:
            days: Entries older than this many days will be deleted.

        Returns:
            The number of entries deleted.
        """
        cutoff = utcnow() - timedelta(days=days)
        statement = select(ActivityLog).where(ActivityLog.timestamp < cutoff)
        old_entries = list(self._session.exec(statement).all())

        for entry in old_entries:
            self._session.delete(entry)

        self._session.commit()
        logger.info("Activity log cleanup: deleted %d entries older than %d days.", len(old_entries), days)
        return len(old_entries)
