"""
resources/ssh_key.py

Responsibility: Lifecycle handler for faxter_ssh_key.
"""

from __future__ import annotations

import logging

from exceptions import ResourceNotFoundError
from resources.base import Attribute, ResourceData, ResourceHandler, ResourceSchema

logger = logging.getLogger(__name__)


class SshKeyResource(ResourceHandler):
    """
    A public key that servers reference through key_name.

    Key item paths are not project-scoped: the key id alone addresses it.
    """

    type_name = "faxter_ssh_key"
    collection = "ssh_keys"
    schema = ResourceSchema(
        Attribute("project", str, default="default"),
        Attribute("name", str, required=True),
        Attribute("public_key", str, required=True, sensitive=True),
    )

    async def create(self, data: ResourceData) -> None:
        created = await self._create(
            {
                "project": data.get("project"),
                "name": data.get("name"),
                "public_key": data.get("public_key"),
            },
        )
        data.set_id(created.name)

    async def read(self, data: ResourceData) -> None:
        try:
            await self._api.get(self.collection, data.id)
        except ResourceNotFoundError:
            logger.info("SSH key %s no longer exists; removing from state.", data.id)
            data.set_id("")

    async def update(self, data: ResourceData) -> None:
        await self._api.update(
            self.collection,
            data.id,
            {
                "project": data.get("project"),
                "name": data.get("name"),
                "public_key": data.get("public_key"),
            },
        )

    async def delete(self, data: ResourceData) -> None:
        await self._api.delete(self.collection, data.id)
        data.set_id("")
