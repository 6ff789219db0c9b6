"""
provisioning/reconciler.py

Responsibility: Waits for an asynchronously provisioned resource to reach a
terminal state by polling a caller-supplied status fetch at a fixed interval,
bounded by a deadline and a cooperative cancellation signal.
Does NOT: make HTTP calls, build request bodies, or write resource state;
the caller supplies the fetch and persists the returned result.

Polling lifecycle:
    pending -> ready      ("online")
    pending -> failed     ("error")
    pending -> timed out  (deadline passed while still pending)
    pending -> cancelled  (cancel signal seen at an iteration boundary)
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional, Protocol

from exceptions import ReconcileError, ReconcileErrorKind, ResourceNotFoundError

logger = logging.getLogger(__name__)

READY_STATUS = "online"
FAILED_STATUS = "error"

DEFAULT_DEADLINE_SECONDS = 300.0
DEFAULT_INTERVAL_SECONDS = 10.0


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


class ProvisioningPhase(str, Enum):
    """Class of a backend-reported lifecycle status."""

    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


def classify_status(status: str) -> ProvisioningPhase:
    """
    Maps a backend status string onto a provisioning phase.

    Only the exact strings "online" and "error" are terminal; everything else,
    including case variants such as "Online", is still pending.
    """
    if status == READY_STATUS:
        return ProvisioningPhase.READY
    if status == FAILED_STATUS:
        return ProvisioningPhase.FAILED
    return ProvisioningPhase.PENDING


@dataclass(frozen=True)
class StatusSnapshot:
    """One observation of a provisioning resource, as returned by a status fetch."""

    status: str
    ip_addresses: tuple[str, ...] = ()
    request_floating_ip: Optional[bool] = None


@dataclass(frozen=True)
class PollConfig:
    """
    Per-call polling configuration.

    deadline is measured from the start of the loop; interval is slept before
    every fetch, including the first.
    """

    deadline: float = DEFAULT_DEADLINE_SECONDS
    interval: float = DEFAULT_INTERVAL_SECONDS

    def __post_init__(self) -> None:
        if self.deadline <= 0:
            raise ValueError(f"deadline must be positive, got {self.deadline!r}")
        if self.interval <= 0:
            raise ValueError(f"interval must be positive, got {self.interval!r}")


@dataclass(frozen=True)
class ProvisioningResult:
    """Attributes of a resource that reached the ready state."""

    status: str
    ip_addresses: tuple[str, ...] = field(default_factory=tuple)
    request_floating_ip: Optional[bool] = None
    attempts: int = 0


# ---------------------------------------------------------------------------
# Collaborator contracts
# ---------------------------------------------------------------------------

StatusFetch = Callable[[str], Awaitable[StatusSnapshot]]


class CancelSignal(Protocol):
    """Anything with is_set(); asyncio.Event and threading.Event both qualify."""

    def is_set(self) -> bool:
        ...


class Clock(Protocol):
    """Time source used by the reconciler; tests substitute a virtual clock."""

    def now(self) -> float:
        ...

    async def sleep(self, seconds: float) -> None:
        ...


class MonotonicClock:
    """Wall-clock implementation backed by time.monotonic and asyncio.sleep."""

    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


# ---------------------------------------------------------------------------
# Reconciler
# ---------------------------------------------------------------------------


class ProvisioningReconciler:
    """
    Polls a status fetch until a freshly created resource is ready.

    The reconciler holds no state between calls; one instance may serve any
    number of concurrent reconciliations.

    Collaborators:
        - Clock: injected time source (MonotonicClock by default)
        - StatusFetch: supplied per call by the resource handler
    """

    def __init__(self, clock: Clock | None = None) -> None:
        """
        Initialises the reconciler.

        Args:
            clock: Time source for deadlines and sleeps. Defaults to a
                   MonotonicClock.
        """
        self._clock = clock or MonotonicClock()

    async def reconcile(
        self,
        handle: str,
        status_fetch: StatusFetch,
        config: PollConfig | None = None,
        cancel_signal: CancelSignal | None = None,
    ) -> ProvisioningResult:
        """
        Waits until the resource identified by handle reaches a terminal state.

        Each iteration sleeps one interval, checks the cancel signal, fetches
        the status, classifies it, and only then compares the clock against
        the deadline. A fetch that reports "online" after the deadline has
        passed is therefore still a success.

        Args:
            handle: Backend-assigned identifier of the resource. Must be non-empty.
            status_fetch: Awaitable callable returning a StatusSnapshot for the
                          handle. Raises ResourceNotFoundError when the
                          resource no longer exists.
            config: Deadline and interval. Defaults to 5 minutes / 10 seconds.
            cancel_signal: Optional cooperative cancellation flag, checked once
                           per iteration before the fetch.

        Returns:
            A ProvisioningResult built from the first "online" observation.

        Raises:
            ReconcileError: With kind CANCELLED, NOT_FOUND,
                            TRANSIENT_FETCH_FAILURE, PROVISION_FAILED or TIMEOUT.
            ValueError: If handle is empty.
        """
        if not handle:
            raise ValueError("handle must be a non-empty string")

        config = config or PollConfig()
        started_at = self._clock.now()
        deadline_at = started_at + config.deadline
        attempts = 0

        logger.debug(
            "Reconciling %s: deadline %.0fs, interval %.0fs.",
            handle, config.deadline, config.interval,
        )

        while True:
            await self._clock.sleep(config.interval)

            if cancel_signal is not None and cancel_signal.is_set():
                logger.warning("Reconciliation of %s cancelled after %d attempt(s).", handle, attempts)
                raise ReconcileError(
                    ReconcileErrorKind.CANCELLED,
                    handle,
                    f"Reconciliation of '{handle}' was cancelled",
                    attempts=attempts,
                    elapsed=self._clock.now() - started_at,
                )

            attempts += 1
            try:
                snapshot = await status_fetch(handle)
            except ResourceNotFoundError as exc:
                logger.warning("Resource %s disappeared while provisioning.", handle)
                raise ReconcileError(
                    ReconcileErrorKind.NOT_FOUND,
                    handle,
                    f"Resource '{handle}' was not found while waiting for it to come online",
                    attempts=attempts,
                    elapsed=self._clock.now() - started_at,
                    cause=exc,
                ) from exc
            except Exception as exc:
                logger.warning("Status fetch for %s failed: %s", handle, exc)
                raise ReconcileError(
                    ReconcileErrorKind.TRANSIENT_FETCH_FAILURE,
                    handle,
                    f"Error fetching status of '{handle}': {exc}",
                    attempts=attempts,
                    elapsed=self._clock.now() - started_at,
                    cause=exc,
                ) from exc

            phase = classify_status(snapshot.status)
            logger.debug("Poll %d for %s: status=%r (%s).", attempts, handle, snapshot.status, phase.value)

            if phase is ProvisioningPhase.READY:
                logger.info("%s is online after %d poll(s): %s", handle, attempts, list(snapshot.ip_addresses))
                return ProvisioningResult(
                    status=snapshot.status,
                    ip_addresses=tuple(snapshot.ip_addresses),
                    request_floating_ip=snapshot.request_floating_ip,
                    attempts=attempts,
                )

            if phase is ProvisioningPhase.FAILED:
                logger.warning("%s reported an error state.", handle)
                raise ReconcileError(
                    ReconcileErrorKind.PROVISION_FAILED,
                    handle,
                    f"Resource '{handle}' is in an error state",
                    attempts=attempts,
                    elapsed=self._clock.now() - started_at,
                )

            now = self._clock.now()
            if now > deadline_at:
                elapsed = now - started_at
                logger.warning("Timed out waiting for %s after %.0fs.", handle, elapsed)
                raise ReconcileError(
                    ReconcileErrorKind.TIMEOUT,
                    handle,
                    f"Timed out after {elapsed:.0f}s waiting for '{handle}' to become online",
                    attempts=attempts,
                    elapsed=elapsed,
                )
