"""
faxter/cloud_api.py

Responsibility: Defines the CloudApi Protocol and the ResourceResponse value
object shared by all resource handlers.
Does NOT: make HTTP calls, access the database, or implement any resource logic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, runtime_checkable

from provisioning.reconciler import StatusSnapshot


# ---------------------------------------------------------------------------
# Value object: stable shape of every Faxter resource response
# ---------------------------------------------------------------------------


@dataclass
class ResourceResponse:
    """
    Represents a Faxter resource as returned by create and read calls.

    The backend wraps resource-specific details in a "properties" object;
    only the fields the provider needs are lifted out here.
    """

    # Backend-assigned name; used as the resource id
    name: str

    # Lifecycle status, e.g. "provisioning", "online", "error"
    status: str = ""

    # Addresses assigned to servers once they are online
    ip_addresses: list[str] = field(default_factory=list)

    # Whether a floating IP was requested, mirrored back by the backend
    request_floating_ip: Optional[bool] = None

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "ResourceResponse":
        """
        Builds a ResourceResponse from a decoded JSON object.

        Args:
            raw: One resource object from a Faxter API response body.

        Returns:
            A ResourceResponse populated from the raw dict.
        """
        properties = raw.get("properties") or {}
        return cls(
            name=raw.get("name", ""),
            status=raw.get("status") or "",
            ip_addresses=list(properties.get("ip_addresses") or []),
            request_floating_ip=properties.get("request_floating_ip"),
        )

    def to_snapshot(self) -> StatusSnapshot:
        """Returns the status view consumed by ProvisioningReconciler."""
        return StatusSnapshot(
            status=self.status,
            ip_addresses=tuple(self.ip_addresses),
            request_floating_ip=self.request_floating_ip,
        )


# ---------------------------------------------------------------------------
# Abstract interface: what resource handlers may ask of the backend
# ---------------------------------------------------------------------------


@runtime_checkable
class CloudApi(Protocol):
    """
    Abstract protocol for the Faxter REST backend.

    Resource handlers depend on this abstraction, never on FaxterClient
    directly, so they can be unit tested with an AsyncMock.
    """

    async def create(self, collection: str, payload: dict[str, Any]) -> ResourceResponse:
        """
        Creates a resource in the given collection.

        Args:
            collection: API collection name, e.g. "servers".
            payload: JSON request body.

        Returns:
            The created resource (the first one when the backend returns a list).

        Raises:
            FaxterApiError: If the API call fails.
        """
        ...

    async def get(self, collection: str, name: str, project: str | None = None) -> ResourceResponse:
        """
        Reads one resource.

        Args:
            collection: API collection name.
            name: Resource id.
            project: Project scope; None for unscoped collections.

        Returns:
            The resource as reported by the backend.

        Raises:
            ResourceNotFoundError: If the resource does not exist.
            FaxterApiError: If the API call fails for any other reason.
        """
        ...

    async def update(
        self, collection: str, name: str, payload: dict[str, Any], project: str | None = None
    ) -> None:
        """
        Updates one resource in place.

        Raises:
            FaxterApiError: If the API call fails.
        """
        ...

    async def delete(self, collection: str, name: str, project: str | None = None) -> None:
        """
        Deletes one resource.

        Raises:
            FaxterApiError: If the API call fails.
        """
        ...

    async def get_status(self, collection: str, name: str, project: str | None = None) -> StatusSnapshot:
        """
        Reads one resource and returns only its provisioning status view.

        Raises:
            ResourceNotFoundError: If the resource does not exist.
            FaxterApiError: If the API call fails for any other reason.
        """
        ...
