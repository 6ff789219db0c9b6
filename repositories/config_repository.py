"""
repositories/config_repository.py

Responsibility: Provides low-level read/write access to the ProviderConfig
table in SQLite via SQLModel.
Does NOT: contain business logic, environment lookups, or HTTP calls.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlmodel import Session, select

from db.models import ProviderConfig

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Default values: single source of truth for all config keys
# ---------------------------------------------------------------------------

_DEFAULTS: dict[str, Any] = {
    "api_token": "",
    "base_url": "https://api.faxter.com",
    "poll_timeout": 300,
    "poll_interval": 10,
    "refresh_interval": 600,
}


class ConfigRepository:
    """
    Manages persistence of the single ProviderConfig row in the database.

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

    def load(self) -> ProviderConfig:
        """
        Returns the single ProviderConfig row, creating it with defaults if absent.

        Returns:
            The ProviderConfig ORM instance (never None).
        """
        config = self._session.exec(select(ProviderConfig)).first()

        if config is None:
            logger.info("No ProviderConfig row found; seeding defaults.")
            config = ProviderConfig(**_DEFAULTS)
            self._session.add(config)
            self._session.commit()
            self._session.refresh(config)

        return config

    def save(self, config: ProviderConfig) -> ProviderConfig:
        """
        Persists a ProviderConfig instance to the database.

        Args:
            config: The ProviderConfig instance to save. May be new or existing.

        Returns:
            The refreshed ProviderConfig instance after commit.
        """
        self._session.add(config)
        self._session.commit()
        self._session.refresh(config)
        logger.debug("ProviderConfig saved (id=%s).", config.id)
        return config
