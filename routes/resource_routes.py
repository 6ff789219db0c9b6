"""
routes/resource_routes.py

Responsibility: JSON endpoints that create, read, update and delete managed
Faxter resources and list their recorded state.
Does NOT: call the Faxter API directly, poll for provisioning, or manage DB
sessions. Domain errors are mapped to HTTP statuses by the handlers in app.py.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, Field

from db.models import ResourceState
from dependencies import get_lifecycle_service, get_state_repo
from faxter.provider import RESOURCE_TYPES
from repositories.state_repository import StateRepository
from services.lifecycle_service import ResourceLifecycleService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/resources")


class ResourceRequest(BaseModel):
    """Request body for create and update: the desired attributes."""

    attributes: dict[str, Any] = Field(default_factory=dict)


def _serialize(state: ResourceState, state_repo: StateRepository) -> dict[str, Any]:
    """Converts a state row into the JSON shape returned by every endpoint."""
    attributes = state_repo.get_attributes(state)
    handler_cls = RESOURCE_TYPES.get(state.resource_type)
    if handler_cls is not None:
        attributes = handler_cls.schema.redact(attributes)
    return {
        "id": state.id,
        "resource_type": state.resource_type,
        "resource_id": state.resource_id,
        "project": state.project,
        "status": state.status,
        "tainted": state.tainted,
        "attributes": attributes,
        "created_at": state.created_at.isoformat(),
        "updated_at": state.updated_at.isoformat(),
    }


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------


@router.get("")
async def list_resources(
    resource_type: Optional[str] = Query(default=None),
    state_repo: StateRepository = Depends(get_state_repo),
) -> list[dict[str, Any]]:
    """
    Lists recorded state without contacting the backend.

    Args:
        resource_type: Optional filter, e.g. "faxter_server".
        state_repo: Reads ResourceState rows.

    Returns:
        One dict per managed resource, in creation order.
    """
    return [_serialize(state, state_repo) for state in state_repo.list_all(resource_type)]


@router.post("/{resource_type}", status_code=201)
async def create_resource(
    resource_type: str,
    body: ResourceRequest,
    lifecycle: ResourceLifecycleService = Depends(get_lifecycle_service),
    state_repo: StateRepository = Depends(get_state_repo),
) -> dict[str, Any]:
    """
    Creates a resource of the given type.

    For servers the request returns only once the server is online, or
    fails with the reconcile error kind in the body.

    Args:
        resource_type: Registered type name, e.g. "faxter_network".
        body: The desired attributes.
        lifecycle: Runs the create and records state.
        state_repo: Used to decode the stored attributes.

    Returns:
        The recorded state of the new resource.
    """
    state = await lifecycle.create(resource_type, body.attributes)
    return _serialize(state, state_repo)


# ---------------------------------------------------------------------------
# Single resource
# ---------------------------------------------------------------------------


@router.get("/{state_id}")
async def read_resource(
    state_id: int,
    lifecycle: ResourceLifecycleService = Depends(get_lifecycle_service),
    state_repo: StateRepository = Depends(get_state_repo),
) -> dict[str, Any]:
    """
    Refreshes one resource from the backend and returns its state.

    Raises:
        HTTPException(404): If the resource no longer exists remotely; its
            state row has been removed.
    """
    state = await lifecycle.read(state_id)
    if state is None:
        raise HTTPException(status_code=404, detail=f"Resource {state_id} no longer exists")
    return _serialize(state, state_repo)


@router.put("/{state_id}")
async def update_resource(
    state_id: int,
    body: ResourceRequest,
    lifecycle: ResourceLifecycleService = Depends(get_lifecycle_service),
    state_repo: StateRepository = Depends(get_state_repo),
) -> dict[str, Any]:
    """Applies new attributes to an existing resource."""
    state = await lifecycle.update(state_id, body.attributes)
    return _serialize(state, state_repo)


@router.delete("/{state_id}", status_code=204)
async def delete_resource(
    state_id: int,
    lifecycle: ResourceLifecycleService = Depends(get_lifecycle_service),
) -> Response:
    """Deletes the remote resource and forgets its state."""
    await lifecycle.delete(state_id)
    return Response(status_code=204)
