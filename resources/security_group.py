"""
resources/security_group.py

Responsibility: Lifecycle handler for faxter_security_group and its rules.
Does NOT: attach groups to servers; servers reference groups by name.
"""

from __future__ import annotations

import logging
from typing import Any

from exceptions import ResourceNotFoundError
from resources.base import Attribute, ResourceData, ResourceHandler, ResourceSchema

logger = logging.getLogger(__name__)

RULE_SCHEMA = ResourceSchema(
    Attribute("protocol", str, default="tcp"),
    Attribute("port_range_min", int),
    Attribute("port_range_max", int),
    Attribute("direction", str, default="ingress"),
    Attribute("remote_ip_prefix", str, default="0.0.0.0/0"),
    Attribute("remote_group_id", str),
    Attribute("ether_type", str, default="IPv4"),
)


def expand_rules(rules: list[dict[str, Any]] | None) -> list[dict[str, Any]]:
    """
    Converts rule blocks into request bodies, omitting unset and empty fields
    (a zero port bound means "unset" to the backend).
    """
    return [
        {key: rule[key] for key in RULE_SCHEMA.attributes if rule.get(key) not in (None, "", 0)}
        for rule in rules or []
    ]


class SecurityGroupResource(ResourceHandler):
    """A named set of firewall rules."""

    type_name = "faxter_security_group"
    collection = "security_groups"
    schema = ResourceSchema(
        Attribute("project", str, required=True),
        Attribute("name", str, required=True),
        Attribute("rules", list, default=list, elem=RULE_SCHEMA),
    )

    def _body(self, data: ResourceData) -> dict[str, Any]:
        return {
            "project": data.get("project"),
            "name": data.get("name"),
            "rules": expand_rules(data.get("rules")),
        }

    async def create(self, data: ResourceData) -> None:
        created = await self._create(self._body(data))
        data.set_id(created.name)

    async def read(self, data: ResourceData) -> None:
        try:
            await self._api.get(self.collection, data.id, data.get("project"))
        except ResourceNotFoundError:
            logger.info("Security group %s no longer exists; removing from state.", data.id)
            data.set_id("")

    async def update(self, data: ResourceData) -> None:
        await self._api.update(self.collection, data.id, self._body(data), data.get("project"))
        data.set_id(data.get("name"))

    async def delete(self, data: ResourceData) -> None:
        await self._api.delete(self.collection, data.id, data.get("project"))
        data.set_id("")
