"""
dependencies.py

Responsibility: Declares all FastAPI Depends() provider functions for
services and repositories used throughout the application.
Does NOT: contain business logic, HTTP handlers, or DB schema definitions.
"""

from __future__ import annotations

import asyncio

import httpx
from fastapi import Depends, Request
from sqlmodel import Session

from db.database import get_session
from faxter.provider import ConfiguredProvider, Provider
from repositories.config_repository import ConfigRepository
from repositories.state_repository import StateRepository
from services.config_service import ConfigService
from services.lifecycle_service import ResourceLifecycleService
from services.log_service import LogService

# ---------------------------------------------------------------------------
# Infrastructure: shared app-level resources
# ---------------------------------------------------------------------------


def get_http_client(request: Request) -> httpx.AsyncClient:
    """
    Returns the shared httpx.AsyncClient stored on app.state.

    The client is created once during the FastAPI lifespan and reused for
    all requests to avoid connection-pool overhead.

    Args:
        request: The current FastAPI Request (injected automatically).

    Returns:
        The application-level httpx.AsyncClient.
    """
    return request.app.state.http_client


def get_shutdown_event(request: Request) -> asyncio.Event:
    """
    Returns the event set when the application shuts down.

    Server creation checks it between provisioning polls so an in-flight
    wait ends cleanly instead of outliving the process.
    """
    return request.app.state.shutdown_event


# ---------------------------------------------------------------------------
# Repository providers
# ---------------------------------------------------------------------------


def get_config_repo(session: Session = Depends(get_session)) -> ConfigRepository:
    """
    Provides a ConfigRepository for the current request's DB session.

    Args:
        session: The DB session injected by get_session.

    Returns:
        A ConfigRepository instance.
    """
    return ConfigRepository(session)


def get_state_repo(session: Session = Depends(get_session)) -> StateRepository:
    """
    Provides a StateRepository for the current request's DB session.

    Args:
        session: The DB session injected by get_session.

    Returns:
        A StateRepository instance.
    """
    return StateRepository(session)


# ---------------------------------------------------------------------------
# Service providers
# ---------------------------------------------------------------------------


def get_config_service(
    config_repo: ConfigRepository = Depends(get_config_repo),
) -> ConfigService:
    """
    Provides a ConfigService backed by the current request's DB session.

    Args:
        config_repo: The repository injected by get_config_repo.

    Returns:
        A ConfigService instance.
    """
    return ConfigService(config_repo)


def get_log_service(session: Session = Depends(get_session)) -> LogService:
    """
    Provides a LogService backed by the current request's DB session.

    Args:
        session: The DB session injected by get_session.

    Returns:
        A LogService instance.
    """
    return LogService(session)


async def get_provider(
    config_service: ConfigService = Depends(get_config_service),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    shutdown_event: asyncio.Event = Depends(get_shutdown_event),
) -> ConfiguredProvider:
    """
    Provides a ConfiguredProvider built from the current settings.

    Settings are loaded on every request so a token or polling change takes
    effect without a restart.

    Args:
        config_service: Provides token, base URL and polling settings.
        http_client: The application-level httpx.AsyncClient.
        shutdown_event: Cancellation signal for provisioning waits.

    Returns:
        A ConfiguredProvider.

    Raises:
        ProviderConfigError: If no API token is configured.
    """
    return Provider.configure(
        http_client=http_client,
        api_token=await config_service.get_api_token(),
        base_url=await config_service.get_base_url(),
        poll_config=await config_service.get_poll_config(),
        cancel_signal=shutdown_event,
    )


def get_lifecycle_service(
    provider: ConfiguredProvider = Depends(get_provider),
    state_repo: StateRepository = Depends(get_state_repo),
    log_service: LogService = Depends(get_log_service),
) -> ResourceLifecycleService:
    """
    Provides a fully wired ResourceLifecycleService for the current request.

    Args:
        provider: The configured provider.
        state_repo: Repository for resource state rows.
        log_service: Writes activity entries.

    Returns:
        A ResourceLifecycleService instance ready to use.
    """
    return ResourceLifecycleService(provider, state_repo, log_service)
