"""
resources/router.py

Responsibility: Lifecycle handler for faxter_router.
"""

from __future__ import annotations

import logging
from typing import Any

from exceptions import ResourceNotFoundError
from resources.base import Attribute, ResourceData, ResourceHandler, ResourceSchema, string_list

logger = logging.getLogger(__name__)


class RouterResource(ResourceHandler):
    """A router joining subnets, optionally connected to the external network."""

    type_name = "faxter_router"
    collection = "routers"
    schema = ResourceSchema(
        Attribute("project", str, default="default"),
        Attribute("name", str, required=True),
        Attribute("connect_external", bool, default=True),
        Attribute("subnets", list, required=True, elem=str),
    )

    def _body(self, data: ResourceData) -> dict[str, Any]:
        body = {
            "project": data.get("project"),
            "name": data.get("name"),
            "connect_external": data.get("connect_external"),
            "subnets": string_list(data.get("subnets")),
        }
        if not body["connect_external"]:
            del body["connect_external"]
        return body

    async def create(self, data: ResourceData) -> None:
        created = await self._create(self._body(data))
        data.set_id(created.name)

    async def read(self, data: ResourceData) -> None:
        try:
            await self._api.get(self.collection, data.id, data.get("project"))
        except ResourceNotFoundError:
            logger.info("Router %s no longer exists; removing from state.", data.id)
            data.set_id("")

    async def update(self, data: ResourceData) -> None:
        await self._api.update(self.collection, data.id, self._body(data), data.get("project"))
        data.set_id(data.get("name"))

    async def delete(self, data: ResourceData) -> None:
        await self._api.delete(self.collection, data.id, data.get("project"))
        data.set_id("")
