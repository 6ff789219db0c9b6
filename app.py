"""
app.py

Responsibility: Builds the FastAPI application: logging setup, lifespan
(database, shared HTTP client, shutdown signal, scheduler), routers, and the
mapping of domain exceptions to HTTP responses.
Does NOT: contain resource logic or route handlers.

Run with: uvicorn app:app --host 0.0.0.0 --port 8080
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlmodel import Session

from db.database import engine, init_db
from exceptions import (
    FaxterApiError,
    ProviderConfigError,
    ReconcileError,
    ReconcileErrorKind,
    ResourceConfigError,
    ResourceNotFoundError,
    StateNotFoundError,
    UnknownResourceTypeError,
)
from repositories.config_repository import ConfigRepository
from routes import api_routes, resource_routes
from scheduler import create_scheduler
from services.config_service import ConfigService

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# HTTP status returned for each way provisioning can fail
_RECONCILE_STATUS = {
    ReconcileErrorKind.NOT_FOUND: 404,
    ReconcileErrorKind.PROVISION_FAILED: 502,
    ReconcileErrorKind.TIMEOUT: 504,
    ReconcileErrorKind.CANCELLED: 503,
    ReconcileErrorKind.TRANSIENT_FETCH_FAILURE: 502,
}


# ---------------------------------------------------------------------------
# Shutdown signals
# ---------------------------------------------------------------------------

_SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def _on_shutdown_signal(sig: int, shutdown_event: asyncio.Event, previous) -> None:
    """
    Sets shutdown_event, then passes the signal on to the handler that was
    installed before ours (uvicorn's exit handler when served by uvicorn).
    """
    logger.info("Received %s; cancelling in-flight provisioning waits.", signal.Signals(sig).name)
    shutdown_event.set()
    if callable(previous):
        previous(sig, None)
    elif previous != signal.SIG_IGN:
        asyncio.get_running_loop().remove_signal_handler(sig)
        signal.raise_signal(sig)


def install_shutdown_signals(loop: asyncio.AbstractEventLoop, shutdown_event: asyncio.Event) -> dict:
    """
    Hooks SIGINT and SIGTERM so shutdown_event is set as soon as shutdown starts.

    uvicorn waits for running requests before it runs the lifespan shutdown,
    so a server creation still polling would never see an event set there.

    Returns:
        The previous handler of every hooked signal, for restore_shutdown_signals.
        Empty when the loop cannot take signal handlers (not the main thread,
        as under TestClient, or a platform without loop signal support).
    """
    previous_handlers: dict = {}
    for sig in _SHUTDOWN_SIGNALS:
        previous = signal.getsignal(sig)
        try:
            loop.add_signal_handler(sig, _on_shutdown_signal, sig, shutdown_event, previous)
        except (NotImplementedError, RuntimeError, ValueError) as exc:
            logger.debug("Shutdown signal hooks not installed: %s", exc)
            break
        previous_handlers[sig] = previous
    return previous_handlers


def restore_shutdown_signals(loop: asyncio.AbstractEventLoop, previous_handlers: dict) -> None:
    """Removes the hooks and puts the previous handlers back."""
    for sig, previous in previous_handlers.items():
        loop.remove_signal_handler(sig)
        if previous is not None:
            signal.signal(sig, previous)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Starts shared resources on startup and releases them on shutdown.

    The shutdown event is set by SIGINT/SIGTERM when shutdown begins, so any
    server creation still waiting for provisioning ends with a CANCELLED
    error instead of holding up the exit. It is set again here for runners
    that deliver no signal.
    """
    init_db()

    with Session(engine) as session:
        refresh_interval = await ConfigService(ConfigRepository(session)).get_refresh_interval()

    http_client = httpx.AsyncClient(timeout=30.0)
    shutdown_event = asyncio.Event()
    scheduler = create_scheduler(http_client, shutdown_event, interval_seconds=refresh_interval)

    app.state.http_client = http_client
    app.state.shutdown_event = shutdown_event
    app.state.scheduler = scheduler

    loop = asyncio.get_running_loop()
    previous_handlers = install_shutdown_signals(loop, shutdown_event)
    scheduler.start()
    logger.info("Faxter provider started.")
    try:
        yield
    finally:
        shutdown_event.set()
        restore_shutdown_signals(loop, previous_handlers)
        scheduler.shutdown(wait=False)
        await http_client.aclose()
        logger.info("Faxter provider stopped.")


app = FastAPI(title="Faxter Provider", version="0.1.0", lifespan=lifespan)
app.include_router(resource_routes.router)
app.include_router(api_routes.router)


@app.get("/health")
async def health() -> dict:
    """Liveness probe."""
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# Exception mapping
# ---------------------------------------------------------------------------


@app.exception_handler(UnknownResourceTypeError)
@app.exception_handler(StateNotFoundError)
async def _not_found_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ResourceConfigError)
async def _config_error_handler(request: Request, exc: ResourceConfigError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(ProviderConfigError)
async def _provider_config_handler(request: Request, exc: ProviderConfigError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(FaxterApiError)
async def _api_error_handler(request: Request, exc: FaxterApiError) -> JSONResponse:
    # Backend 404 stays 404; every other backend failure is a 502.
    status_code = 404 if isinstance(exc, ResourceNotFoundError) else 502
    logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.exception_handler(ReconcileError)
async def _reconcile_error_handler(request: Request, exc: ReconcileError) -> JSONResponse:
    return JSONResponse(
        status_code=_RECONCILE_STATUS.get(exc.kind, 502),
        content={
            "detail": str(exc),
            "kind": exc.kind.value,
            "handle": exc.handle,
            "attempts": exc.attempts,
        },
    )
