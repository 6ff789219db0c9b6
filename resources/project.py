"""
resources/project.py

Responsibility: Lifecycle handler for faxter_project.
Does NOT: manage resources inside the project.
"""

from __future__ import annotations

import logging

from exceptions import ResourceNotFoundError
from resources.base import Attribute, ResourceData, ResourceHandler, ResourceSchema

logger = logging.getLogger(__name__)


class ProjectResource(ResourceHandler):
    """
    A Faxter project. The project name doubles as its id, and renames are
    sent as a PUT against the old name.
    """

    type_name = "faxter_project"
    collection = "projects"
    schema = ResourceSchema(
        Attribute("name", str, required=True),
    )

    async def create(self, data: ResourceData) -> None:
        name = data.get("name")
        await self._api.create(self.collection, {"name": name})
        data.set_id(name)

    async def read(self, data: ResourceData) -> None:
        try:
            await self._api.get(self.collection, data.id)
        except ResourceNotFoundError:
            logger.info("Project %s no longer exists; removing from state.", data.id)
            data.set_id("")
            return
        data.set("name", data.id)

    async def update(self, data: ResourceData) -> None:
        new_name = data.get("name")
        await self._api.update(self.collection, data.id, {"name": new_name})
        data.set_id(new_name)

    async def delete(self, data: ResourceData) -> None:
        await self._api.delete(self.collection, data.id)
        data.set_id("")
