"""
resources/load_balancer.py

Responsibility: Lifecycle handler for faxter_loadbalancer.
Does NOT: wait for the load balancer to become active; its status is
recorded as reported at create and read time.
"""

from __future__ import annotations

import logging
from typing import Any

from exceptions import ResourceNotFoundError
from resources.base import Attribute, ResourceData, ResourceHandler, ResourceSchema, compact, string_list

logger = logging.getLogger(__name__)

BACKEND_SERVER_SCHEMA = ResourceSchema(
    Attribute("ip", str, required=True),
    Attribute("port", int, required=True),
    Attribute("endpoint", str, default="/"),
)

_UPDATABLE_FIELDS = (
    "port",
    "networks",
    "sub_networks",
    "key_name",
    "request_floating_ip",
    "ssl_enabled",
    "servers",
    "security_groups",
)


def expand_servers(servers: list[dict[str, Any]] | None) -> list[dict[str, Any]]:
    """Converts backend server blocks into {ip, port, endpoint} request items."""
    return [
        {"ip": s["ip"], "port": s["port"], "endpoint": s.get("endpoint") or "/"}
        for s in servers or []
    ]


class LoadBalancerResource(ResourceHandler):
    """
    An HTTP load balancer in front of a set of backend servers.

    Collaborators:
        - CloudApi: backend client
    """

    type_name = "faxter_loadbalancer"
    collection = "loadbalancers"
    schema = ResourceSchema(
        Attribute("project", str, default="default"),
        Attribute("name", str, required=True),
        Attribute("port", int, default=80),
        Attribute("networks", list, default=lambda: ["public1"], elem=str),
        Attribute("sub_networks", list, default=list, elem=str),
        Attribute("key_name", str),
        Attribute("request_floating_ip", bool, default=True),
        Attribute("ssl_enabled", bool, default=False),
        Attribute("servers", list, required=True, elem=BACKEND_SERVER_SCHEMA),
        Attribute("security_groups", list, default=lambda: ["default"], elem=str),
        Attribute("status", str, computed=True),
    )

    def _wire_value(self, data: ResourceData, attr_name: str) -> Any:
        value = data.get(attr_name)
        if attr_name == "servers":
            return expand_servers(value)
        if isinstance(value, list):
            return string_list(value)
        return value

    async def create(self, data: ResourceData) -> None:
        payload = {"project": data.get("project"), "name": data.get("name")}
        for attr_name in _UPDATABLE_FIELDS:
            payload[attr_name] = self._wire_value(data, attr_name)

        created = await self._create(compact(payload))
        data.set_id(created.name)
        data.set("status", created.status)

    async def read(self, data: ResourceData) -> None:
        try:
            resource = await self._api.get(self.collection, data.id, data.get("project"))
        except ResourceNotFoundError:
            logger.info("Load balancer %s no longer exists; removing from state.", data.id)
            data.set_id("")
            return
        data.set("status", resource.status)

    async def update(self, data: ResourceData) -> None:
        """Sends name plus the attributes that changed, then follows a rename."""
        payload: dict[str, Any] = {"name": data.get("name")}
        for attr_name in _UPDATABLE_FIELDS:
            if data.has_change(attr_name):
                payload[attr_name] = self._wire_value(data, attr_name)

        await self._api.update(self.collection, data.id, payload, data.get("project"))
        data.set_id(data.get("name"))

    async def delete(self, data: ResourceData) -> None:
        await self._api.delete(self.collection, data.id, data.get("project"))
        data.set_id("")
