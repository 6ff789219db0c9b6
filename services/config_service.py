"""
services/config_service.py

Responsibility: Provides a business-level API for reading and writing
provider configuration. Delegates all persistence to ConfigRepository and
resolves the API token from the environment when none is stored.
Does NOT: make HTTP calls, manage resource state, or interact with the scheduler.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from db.models import ProviderConfig
from provisioning.reconciler import PollConfig
from repositories.config_repository import ConfigRepository

logger = logging.getLogger(__name__)

# Environment variable consulted when no token is stored in the database
TOKEN_ENV_VAR = "FAXTER_TOKEN"


class ConfigService:
    """
    High-level API for reading and writing provider configuration.

    Collaborators:
        - ConfigRepository: handles all database access
    """

    def __init__(self, config_repo: ConfigRepository) -> None:
        """
        Initialises the service with a config repository.

        Args:
            config_repo: An initialised ConfigRepository for the current session.
        """
        self._repo = config_repo

    # ---------------------------------------------------------------------------
    # Read operations
    # ---------------------------------------------------------------------------

    async def get_config(self) -> ProviderConfig:
        """Returns the current ProviderConfig row (creating defaults if absent)."""
        return self._repo.load()

    async def get_api_token(self) -> str:
        """
        Returns the API token: the stored one, else $FAXTER_TOKEN, else "".
        """
        config = self._repo.load()
        if config.api_token:
            return config.api_token
        return os.getenv(TOKEN_ENV_VAR, "")

    async def get_base_url(self) -> str:
        config = self._repo.load()
        return config.base_url

    async def get_poll_config(self) -> PollConfig:
        """
        Returns the provisioning wait settings as a PollConfig.

        Returns:
            PollConfig(deadline=poll_timeout, interval=poll_interval).
        """
        config = self._repo.load()
        return PollConfig(deadline=float(config.poll_timeout), interval=float(config.poll_interval))

    async def get_refresh_interval(self) -> int:
        config = self._repo.load()
        return config.refresh_interval

    # ---------------------------------------------------------------------------
    # Write operations
    # ---------------------------------------------------------------------------

    async def update_settings(
        self,
        api_token: Optional[str] = None,
        base_url: Optional[str] = None,
        poll_timeout: Optional[int] = None,
        poll_interval: Optional[int] = None,
        refresh_interval: Optional[int] = None,
    ) -> ProviderConfig:
        """
        Updates the given settings; None leaves a setting unchanged.

        Raises:
            ValueError: If any interval or timeout is not positive.

        Returns:
            The saved ProviderConfig.
        """
        for label, value in (
            ("poll_timeout", poll_timeout),
            ("poll_interval", poll_interval),
            ("refresh_interval", refresh_interval),
        ):
            if value is not None and value <= 0:
                raise ValueError(f"{label} must be positive, got {value}")

        config = self._repo.load()
        if api_token is not None:
            config.api_token = api_token
        if base_url is not None:
            config.base_url = base_url.rstrip("/")
        if poll_timeout is not None:
            config.poll_timeout = poll_timeout
        if poll_interval is not None:
            config.poll_interval = poll_interval
        if refresh_interval is not None:
            config.refresh_interval = refresh_interval

        saved = self._repo.save(config)
        logger.info("Provider settings updated.")
        return saved
