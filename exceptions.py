"""
exceptions.py

Responsibility: Defines all custom exception classes used across the application.
Does NOT: contain business logic, logging, or HTTP handling.
"""

from __future__ import annotations

from enum import Enum


class FaxterApiError(Exception):
    """
    Raised by FaxterClient when a Faxter API call fails.

    Covers non-success response codes, transport errors and response bodies
    that cannot be decoded. The HTTP status code is None for transport errors.
    """

    def __init__(self, message: str, status_code: int | None = None, detail: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class ResourceNotFoundError(FaxterApiError):
    """
    Raised by FaxterClient when the backend answers 404 for a resource.

    Read handlers catch this and clear the resource id so the resource is
    treated as absent.
    """


class ResourceConfigError(Exception):
    """
    Raised by ResourceSchema when resource attributes are missing, unknown,
    or of the wrong type.
    """


class ProviderConfigError(Exception):
    """
    Raised when the provider cannot be configured, e.g. no API token is set.
    """


class UnknownResourceTypeError(Exception):
    """
    Raised by Provider when asked for a resource type it does not register.
    """


class StateNotFoundError(Exception):
    """
    Raised by ResourceLifecycleService when no persisted state row exists for
    the requested id.
    """


class ReconcileErrorKind(str, Enum):
    """Classified outcome of a failed provisioning reconciliation."""

    NOT_FOUND = "not_found"
    PROVISION_FAILED = "provision_failed"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    TRANSIENT_FETCH_FAILURE = "transient_fetch_failure"


class ReconcileError(Exception):
    """
    Raised by ProvisioningReconciler when a resource does not reach the
    ready state.

    The kind tells the caller how to react: NOT_FOUND clears the resource
    identity, CANCELLED must be propagated without being reported as a
    provisioning failure, and the remaining kinds are fatal to the create.
    """

    def __init__(
        self,
        kind: ReconcileErrorKind,
        handle: str,
        message: str,
        *,
        attempts: int = 0,
        elapsed: float = 0.0,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.handle = handle
        self.attempts = attempts
        self.elapsed = elapsed
        self.cause = cause
