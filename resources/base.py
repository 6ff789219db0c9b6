"""
resources/base.py

Responsibility: Defines the attribute schema, the per-operation ResourceData
view, and the ResourceHandler base class shared by every resource type.
Does NOT: make HTTP calls, persist state, or know about specific resource types.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Optional

from exceptions import FaxterApiError, ResourceConfigError
from faxter.cloud_api import CloudApi, ResourceResponse

# Shown in place of sensitive attribute values in API responses
SENSITIVE_MASK = "(sensitive)"


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Attribute:
    """
    Declares one resource attribute.

    type is one of str, int, bool or list. For lists, elem is either a scalar
    type (list of strings) or a nested ResourceSchema (list of blocks).
    default may be a zero-argument callable so list defaults are never shared.
    """

    name: str
    type: type
    required: bool = False
    default: Any = None
    computed: bool = False
    sensitive: bool = False
    elem: Any = None

    def default_value(self) -> Any:
        if callable(self.default):
            return self.default()
        return copy.deepcopy(self.default)


class ResourceSchema:
    """
    Ordered collection of Attributes describing one resource type.

    Collaborators:
        - ResourceData: applies defaults and validates through this schema
    """

    def __init__(self, *attributes: Attribute) -> None:
        self.attributes: dict[str, Attribute] = {a.name: a for a in attributes}

    def apply_defaults(self, config: dict[str, Any]) -> dict[str, Any]:
        """
        Returns a copy of config with defaults filled in for absent attributes.

        Nested blocks get their own defaults applied element-wise. Attributes
        without a default (and not computed) are left absent.
        """
        result = dict(config)
        for attr in self.attributes.values():
            if attr.computed:
                continue
            if result.get(attr.name) is None and attr.default is not None:
                result[attr.name] = attr.default_value()
            if isinstance(attr.elem, ResourceSchema) and isinstance(result.get(attr.name), list):
                result[attr.name] = [
                    attr.elem.apply_defaults(block) if isinstance(block, dict) else block
                    for block in result[attr.name]
                ]
        return result

    def redact(self, attributes: dict[str, Any]) -> dict[str, Any]:
        """Returns a copy of attributes with every set sensitive value masked."""
        masked = dict(attributes)
        for attr in self.attributes.values():
            if attr.sensitive and masked.get(attr.name):
                masked[attr.name] = SENSITIVE_MASK
        return masked

    def validate(self, config: dict[str, Any], path: str = "") -> None:
        """
        Checks config against the schema.

        Raises:
            ResourceConfigError: On a missing required attribute, an unknown
                                 attribute, a value for a computed attribute,
                                 or a value of the wrong type.
        """
        for key in config:
            if key not in self.attributes:
                raise ResourceConfigError(f"Unsupported attribute '{path}{key}'")

        for attr in self.attributes.values():
            value = config.get(attr.name)
            if attr.computed:
                if value is not None:
                    raise ResourceConfigError(f"Attribute '{path}{attr.name}' is computed and cannot be set")
                continue
            if value is None:
                if attr.required:
                    raise ResourceConfigError(f"Missing required attribute '{path}{attr.name}'")
                continue
            self._check_type(attr, value, f"{path}{attr.name}")

    def _check_type(self, attr: Attribute, value: Any, where: str) -> None:
        if not _is_instance(value, attr.type):
            raise ResourceConfigError(
                f"Attribute '{where}' must be of type {attr.type.__name__}, got {type(value).__name__}"
            )
        if attr.type is not list or attr.elem is None:
            return
        for index, item in enumerate(value):
            if isinstance(attr.elem, ResourceSchema):
                if not isinstance(item, dict):
                    raise ResourceConfigError(f"Attribute '{where}[{index}]' must be a block")
                attr.elem.validate(item, path=f"{where}[{index}].")
            elif not _is_instance(item, attr.elem):
                raise ResourceConfigError(
                    f"Attribute '{where}[{index}]' must be of type {attr.elem.__name__}"
                )


def _is_instance(value: Any, expected: type) -> bool:
    # bool is a subclass of int; an int attribute must not accept True/False.
    if expected is int and isinstance(value, bool):
        return False
    return isinstance(value, expected)


# ---------------------------------------------------------------------------
# ResourceData: the view a handler operates on
# ---------------------------------------------------------------------------


class ResourceData:
    """
    Holds one resource's desired configuration, its prior state, and its id
    for the duration of a single lifecycle operation.

    Handlers read the desired values with get(), compare against prior state
    with has_change()/get_change(), and record computed values with set().
    An empty id means the resource does not exist (or no longer exists).
    """

    def __init__(
        self,
        schema: ResourceSchema,
        config: dict[str, Any],
        prior: Optional[dict[str, Any]] = None,
        resource_id: str = "",
    ) -> None:
        self._schema = schema
        self._values = schema.apply_defaults(config)
        self._prior = dict(prior or {})
        self._id = resource_id

    @property
    def id(self) -> str:
        return self._id

    def set_id(self, resource_id: str) -> None:
        self._id = resource_id

    def get(self, key: str) -> Any:
        """Returns the current value of key, or None when unset."""
        self._require_known(key)
        return self._values.get(key)

    def set(self, key: str, value: Any) -> None:
        """Records a value (typically a computed one) in the resulting state."""
        self._require_known(key)
        self._values[key] = value

    def has_change(self, key: str) -> bool:
        """True when the desired value differs from the prior state."""
        old, new = self.get_change(key)
        return old != new

    def get_change(self, key: str) -> tuple[Any, Any]:
        """Returns (prior value, desired value) for key."""
        self._require_known(key)
        return self._prior.get(key), self._values.get(key)

    def state(self) -> dict[str, Any]:
        """Returns the attribute dict to persist after the operation."""
        return copy.deepcopy(self._values)

    def _require_known(self, key: str) -> None:
        if key not in self._schema.attributes:
            raise KeyError(f"Unknown attribute '{key}'")


# ---------------------------------------------------------------------------
# Handler base class
# ---------------------------------------------------------------------------


class ResourceHandler:
    """
    Base class for the lifecycle handlers of one Faxter resource type.

    Subclasses set type_name, collection and schema and implement the four
    lifecycle coroutines. Each coroutine mutates the given ResourceData in
    place: create assigns the id, read refreshes attributes (or clears the id
    when the resource is gone), update may move the id after a rename, and
    delete clears the id.

    Collaborators:
        - CloudApi: injected backend client (FaxterClient in production)
    """

    type_name: str = ""
    collection: str = ""
    schema: ResourceSchema = ResourceSchema()

    def __init__(self, api: CloudApi) -> None:
        self._api = api

    def new_data(
        self,
        config: dict[str, Any],
        prior: Optional[dict[str, Any]] = None,
        resource_id: str = "",
    ) -> ResourceData:
        """
        Validates config and wraps it in a ResourceData for this handler.

        Raises:
            ResourceConfigError: If config does not match the schema.
        """
        desired = self.schema.apply_defaults(config)
        self.schema.validate(desired)
        data = ResourceData(self.schema, desired, prior=prior, resource_id=resource_id)
        # Computed values are not configurable, so they carry over from prior state.
        for attr in self.schema.attributes.values():
            if attr.computed and prior and attr.name in prior:
                data.set(attr.name, prior[attr.name])
        return data

    def data_from_state(self, state: dict[str, Any], resource_id: str) -> ResourceData:
        """Wraps persisted state (computed values included) for read and delete."""
        return ResourceData(self.schema, state, prior=state, resource_id=resource_id)

    async def _create(self, payload: dict[str, Any]) -> ResourceResponse:
        """
        POSTs payload to this handler's collection and returns the created resource.

        Raises:
            FaxterApiError: If the call fails or the response names no resource.
        """
        created = await self._api.create(self.collection, payload)
        if not created.name:
            raise FaxterApiError(f"Create response for {self.collection} carried no resource name")
        return created

    async def create(self, data: ResourceData) -> None:
        raise NotImplementedError

    async def read(self, data: ResourceData) -> None:
        raise NotImplementedError

    async def update(self, data: ResourceData) -> None:
        raise NotImplementedError

    async def delete(self, data: ResourceData) -> None:
        raise NotImplementedError


def string_list(value: Any) -> list[str]:
    """Normalises an optional list attribute into a list of strings."""
    return [str(item) for item in (value or [])]


def compact(payload: dict[str, Any]) -> dict[str, Any]:
    """Drops keys whose value is None, "", an empty list, 0 or False (omitempty)."""
    return {k: v for k, v in payload.items() if v not in (None, "", [], 0, False)}
