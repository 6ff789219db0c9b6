"""
repositories/state_repository.py

Responsibility: Provides low-level read/write access to the ResourceState
table in SQLite via SQLModel.
Does NOT: call the Faxter API or decide when state changes.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from sqlmodel import Session, select

from db.models import ResourceState, utcnow

logger = logging.getLogger(__name__)


class StateRepository:
    """
    Manages persistence of managed-resource state.

    One ResourceState row per managed resource. Attributes are stored as a
    JSON document and decoded here so callers always receive plain dicts.

    Collaborators:
        - Session: SQLModel DB session injected at construction time
    """

    def __init__(self, session: Session) -> None:
        """
        Initialises the repository with an active DB session.

        Args:
            session: An open SQLModel Session for the current request.
        """
        self._session = session

    # ---------------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------------

    def add(
        self,
        resource_type: str,
        resource_id: str,
        attributes: dict[str, Any],
        *,
        tainted: bool = False,
    ) -> ResourceState:
        """
        Inserts a new state row.

        Args:
            resource_type: Provider resource type, e.g. "faxter_server".
            resource_id: Backend identifier assigned at creation.
            attributes: Full attribute dict to record.
            tainted: True when creation did not complete.

        Returns:
            The persisted ResourceState with its id assigned.
        """
        state = ResourceState(resource_type=resource_type, resource_id=resource_id, tainted=tainted)
        self.set_attributes(state, attributes)
        self._session.add(state)
        self._session.commit()
        self._session.refresh(state)
        logger.debug("Recorded %s %s (state id=%s).", resource_type, resource_id, state.id)
        return state

    def get(self, state_id: int) -> Optional[ResourceState]:
        """Returns the state row with the given id, or None."""
        return self._session.get(ResourceState, state_id)

    def list_all(self, resource_type: Optional[str] = None) -> list[ResourceState]:
        """
        Returns all state rows, optionally filtered by resource type.

        Args:
            resource_type: When given, only rows of this type are returned.

        Returns:
            Rows ordered by id (creation order).
        """
        statement = select(ResourceState)
        if resource_type is not None:
            statement = statement.where(ResourceState.resource_type == resource_type)
        return list(self._session.exec(statement.order_by(ResourceState.id)).all())

    def save(self, state: ResourceState) -> ResourceState:
        """Persists changes to an existing row and bumps updated_at."""
        state.updated_at = utcnow()
        self._session.add(state)
        self._session.commit()
        self._session.refresh(state)
        return state

    def delete(self, state: ResourceState) -> None:
        """Removes a row permanently."""
        label = f"{state.resource_type} {state.resource_id}"
        self._session.delete(state)
        self._session.commit()
        logger.debug("Removed state for %s.", label)

    # ---------------------------------------------------------------------------
    # Convenience accessors: encode/decode the JSON attribute document
    # ---------------------------------------------------------------------------

    def get_attributes(self, state: ResourceState) -> dict[str, Any]:
        """
        Decodes the attributes_json field into a Python dict.

        Returns:
            The recorded attributes, or an empty dict if the column is corrupt.
        """
        try:
            return json.loads(state.attributes_json)
        except (json.JSONDecodeError, TypeError):
            logger.warning("attributes_json for state %s is corrupt; returning empty dict.", state.id)
            return {}

    def set_attributes(self, state: ResourceState, attributes: dict[str, Any]) -> None:
        """
        Encodes attributes into the row and mirrors project and status columns.

        Args:
            state: The row to modify (in place).
            attributes: Full attribute dict.
        """
        state.attributes_json = json.dumps(attributes)
        state.project = attributes.get("project") or ""
        state.status = attributes.get("status") or ""
