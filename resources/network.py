"""
resources/network.py

Responsibility: Lifecycle handler for faxter_network and its subnets.
Does NOT: manage routers attached to the subnets.
"""

from __future__ import annotations

import logging
from typing import Any

from exceptions import ResourceNotFoundError
from resources.base import Attribute, ResourceData, ResourceHandler, ResourceSchema

logger = logging.getLogger(__name__)

SUBNET_SCHEMA = ResourceSchema(
    Attribute("name", str, required=True),
    Attribute("cidr", str, required=True),
)


class NetworkResource(ResourceHandler):
    """A private network with one or more subnets."""

    type_name = "faxter_network"
    collection = "networks"
    schema = ResourceSchema(
        Attribute("project", str, default="default"),
        Attribute("name", str, required=True),
        Attribute("subnets", list, required=True, elem=SUBNET_SCHEMA),
    )

    def _body(self, data: ResourceData) -> dict[str, Any]:
        return {
            "project": data.get("project"),
            "name": data.get("name"),
            "subnets": [
                {"name": subnet["name"], "cidr": subnet["cidr"]}
                for subnet in data.get("subnets") or []
            ],
        }

    async def create(self, data: ResourceData) -> None:
        created = await self._create(self._body(data))
        data.set_id(created.name)

    async def read(self, data: ResourceData) -> None:
        # The backend does not report subnet details, so read only confirms existence.
        try:
            await self._api.get(self.collection, data.id, data.get("project"))
        except ResourceNotFoundError:
            logger.info("Network %s no longer exists; removing from state.", data.id)
            data.set_id("")

    async def update(self, data: ResourceData) -> None:
        await self._api.update(self.collection, data.id, self._body(data), data.get("project"))
        data.set_id(data.get("name"))

    async def delete(self, data: ResourceData) -> None:
        await self._api.delete(self.collection, data.id, data.get("project"))
        data.set_id("")
