"""
resources/server.py

Responsibility: Lifecycle handler for faxter_server, including waiting for a
newly created server to come online before its state is recorded.
Does NOT: implement the polling loop itself (see
ProvisioningReconciler). This module only supplies the status fetch and
applies the result.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import Any, Optional

from exceptions import ReconcileError, ReconcileErrorKind, ResourceNotFoundError
from faxter.cloud_api import CloudApi
from provisioning.reconciler import CancelSignal, PollConfig, ProvisioningReconciler
from resources.base import Attribute, ResourceData, ResourceHandler, ResourceSchema, compact, string_list

logger = logging.getLogger(__name__)

# Attribute name -> wire key for the fields a server update may carry.
# NOTE: the update endpoint spells sub-networks "subnetworks", unlike create.
_UPDATABLE_FIELDS = {
    "flavor": "flavor",
    "image": "image",
    "request_floating_ip": "request_floating_ip",
    "networks": "networks",
    "sub_networks": "subnetworks",
    "volumes": "volumes",
    "security_groups": "security_groups",
}


class ServerResource(ResourceHandler):
    """
    A Faxter compute server.

    Creating a server returns as soon as the backend accepts the request;
    the instance then provisions asynchronously. create() therefore hands
    the new id to ProvisioningReconciler and only returns once the server is
    online, recording its status and assigned addresses.

    Collaborators:
        - CloudApi: backend client used for CRUD and status queries
        - ProvisioningReconciler: waits for the server to become online
    """

    type_name = "faxter_server"
    collection = "servers"
    schema = ResourceSchema(
        Attribute("project", str, default="default"),
        Attribute("name", str, required=True),
        Attribute("key_name", str, required=True),
        Attribute("flavor", str, default="copper"),
        Attribute("image", str, default="Ubuntu2204"),
        Attribute("security_groups", list, default=lambda: ["default"], elem=str),
        Attribute("request_floating_ip", bool),
        Attribute("cloud_init", str, default=""),
        Attribute("networks", list, default=lambda: ["public1"], elem=str),
        Attribute("sub_networks", list, default=list, elem=str),
        Attribute("volumes", list, default=list, elem=str),
        Attribute("ip_addresses", list, computed=True, elem=str),
        Attribute("status", str, computed=True),
    )

    def __init__(
        self,
        api: CloudApi,
        reconciler: Optional[ProvisioningReconciler] = None,
        poll_config: Optional[PollConfig] = None,
        cancel_signal: Optional[CancelSignal] = None,
    ) -> None:
        """
        Initialises the handler.

        Args:
            api: Backend client.
            reconciler: Provisioning waiter; a default one is created if omitted.
            poll_config: Deadline and interval for the provisioning wait.
            cancel_signal: Checked between polls; set it to abandon the wait.
        """
        super().__init__(api)
        self._reconciler = reconciler or ProvisioningReconciler()
        self._poll_config = poll_config or PollConfig()
        self._cancel_signal = cancel_signal

    # ---------------------------------------------------------------------------
    # Lifecycle
    # ---------------------------------------------------------------------------

    async def create(self, data: ResourceData) -> None:
        """
        Submits the server and waits for it to come online.

        The id is assigned as soon as the backend accepts the request, so a
        caller that catches a fatal ReconcileError still knows which server
        was left behind.

        Raises:
            FaxterApiError: If the create request is rejected.
            ReconcileError: If the server does not reach "online". On
                            NOT_FOUND the id is cleared before re-raising.
        """
        project = data.get("project")
        payload: dict[str, Any] = {
            "project": project,
            "name": data.get("name"),
            "flavor": data.get("flavor"),
            "image": data.get("image"),
            "key_name": data.get("key_name"),
            "security_groups": string_list(data.get("security_groups")),
            "request_floating_ip": data.get("request_floating_ip"),
            "cloud_init": data.get("cloud_init"),
            "networks": string_list(data.get("networks")),
            "sub_networks": string_list(data.get("sub_networks")),
            "volumes": string_list(data.get("volumes")),
        }
        # key_name is always sent; everything else follows omitempty semantics.
        body = compact(payload)
        body["key_name"] = payload["key_name"]

        created = await self._create(body)
        data.set_id(created.name)
        logger.info("Server %s accepted in project %s; waiting for it to come online.", created.name, project)

        status_fetch = partial(self._api.get_status, self.collection, project=project)
        try:
            result = await self._reconciler.reconcile(
                created.name, status_fetch, self._poll_config, self._cancel_signal
            )
        except ReconcileError as exc:
            if exc.kind is ReconcileErrorKind.NOT_FOUND:
                data.set_id("")
            raise

        data.set("status", result.status)
        data.set("ip_addresses", list(result.ip_addresses))

    async def read(self, data: ResourceData) -> None:
        try:
            snapshot = await self._api.get_status(self.collection, data.id, data.get("project"))
        except ResourceNotFoundError:
            logger.info("Server %s no longer exists; removing from state.", data.id)
            data.set_id("")
            return

        data.set("status", snapshot.status)
        data.set("ip_addresses", list(snapshot.ip_addresses))
        data.set("request_floating_ip", snapshot.request_floating_ip)

    async def update(self, data: ResourceData) -> None:
        """
        Sends only the attributes that changed; name is always included
        because the update endpoint requires it.
        """
        payload: dict[str, Any] = {"name": data.get("name")}
        for attr_name, wire_key in _UPDATABLE_FIELDS.items():
            if data.has_change(attr_name):
                value = data.get(attr_name)
                payload[wire_key] = string_list(value) if isinstance(value, list) else value

        await self._api.update(self.collection, data.id, payload, data.get("project"))

    async def delete(self, data: ResourceData) -> None:
        await self._api.delete(self.collection, data.id, data.get("project"))
        data.set_id("")
