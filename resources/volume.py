"""
resources/volume.py

Responsibility: Lifecycle handler for faxter_volume (block storage).
"""

from __future__ import annotations

import logging

from exceptions import ResourceNotFoundError
from resources.base import Attribute, ResourceData, ResourceHandler, ResourceSchema

logger = logging.getLogger(__name__)


class VolumeResource(ResourceHandler):
    """
    A block-storage volume. Only the storage size can be changed in place;
    the name is fixed at creation.
    """

    type_name = "faxter_volume"
    collection = "volumes"
    schema = ResourceSchema(
        Attribute("project", str, required=True),
        Attribute("name", str, required=True),
        Attribute("storage", int, required=True),
    )

    async def create(self, data: ResourceData) -> None:
        created = await self._create(
            {
                "project": data.get("project"),
                "name": data.get("name"),
                "storage": data.get("storage"),
            },
        )
        data.set_id(created.name)

    async def read(self, data: ResourceData) -> None:
        try:
            await self._api.get(self.collection, data.id, data.get("project"))
        except ResourceNotFoundError:
            logger.info("Volume %s no longer exists; removing from state.", data.id)
            data.set_id("")

    async def update(self, data: ResourceData) -> None:
        await self._api.update(
            self.collection,
            data.id,
            {"project": data.get("project"), "storage": data.get("storage")},
            data.get("project"),
        )

    async def delete(self, data: ResourceData) -> None:
        await self._api.delete(self.collection, data.id, data.get("project"))
        data.set_id("")
