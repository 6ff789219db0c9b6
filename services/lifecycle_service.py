"""
services/lifecycle_service.py

Responsibility: Runs create/read/update/delete for managed resources and
keeps persisted state in step with the outcome of each handler call.
Does NOT: make HTTP calls directly (handlers do), poll for provisioning
(ProvisioningReconciler does), or manage DB sessions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from db.models import ResourceState
from exceptions import FaxterApiError, ReconcileError, ReconcileErrorKind, StateNotFoundError
from faxter.provider import ConfiguredProvider
from repositories.state_repository import StateRepository
from services.log_service import LogService

logger = logging.getLogger(__name__)

# Reconcile outcomes after which the half-created resource is kept as tainted state
_TAINTING_KINDS = frozenset(
    {
        ReconcileErrorKind.PROVISION_FAILED,
        ReconcileErrorKind.TIMEOUT,
        ReconcileErrorKind.TRANSIENT_FETCH_FAILURE,
    }
)


@dataclass
class RefreshSummary:
    """Outcome of one refresh_all() pass."""

    refreshed: int = 0
    removed: int = 0
    failed: dict[int, str] = field(default_factory=dict)


class ResourceLifecycleService:
    """
    Applies lifecycle operations to managed resources and records the result.

    Collaborators:
        - ConfiguredProvider: supplies the handler for each resource type
        - StateRepository: persists resource state
        - LogService: writes operator-visible activity entries
    """

    def __init__(
        self,
        provider: ConfiguredProvider,
        state_repo: StateRepository,
        log_service: LogService,
    ) -> None:
        """
        Initialises the service with all required collaborators.

        Args:
            provider: Configured provider used to look up handlers.
            state_repo: Repository for ResourceState rows.
            log_service: Writes activity entries for every state change.
        """
        self._provider = provider
        self._states = state_repo
        self._log = log_service

    # ---------------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------------

    async def create(self, resource_type: str, config: dict[str, Any]) -> ResourceState:
        """
        Creates a resource and records its state.

        If server provisioning fails after the backend assigned an id (error
        status, timeout, or a failed status query), the resource is recorded
        as tainted before the error is re-raised so it is not forgotten.

        Args:
            resource_type: Registered type, e.g. "faxter_server".
            config: Desired attributes.

        Returns:
            The persisted ResourceState.

        Raises:
            UnknownResourceTypeError: If the type is not registered.
            ResourceConfigError: If config does not match the schema.
            FaxterApiError: If the backend rejects the request.
            ReconcileError: If a server never came online.
        """
        handler = self._provider.handler(resource_type)
        data = handler.new_data(config)

        try:
            await handler.create(data)
        except ReconcileError as exc:
            if exc.kind in _TAINTING_KINDS and data.id:
                state = self._states.add(resource_type, data.id, data.state(), tainted=True)
                self._log.log_for(state, f"{resource_type} {data.id} failed to provision: {exc}", level="ERROR")
            elif exc.kind is ReconcileErrorKind.CANCELLED:
                self._log.log(
                    f"Provisioning of {resource_type} {exc.handle} was cancelled.",
                    level="WARNING", resource_type=resource_type, resource_id=exc.handle,
                )
            else:
                self._log.log(
                    f"{resource_type} {exc.handle} disappeared while provisioning.",
                    level="WARNING", resource_type=resource_type, resource_id=exc.handle,
                )
            raise

        state = self._states.add(resource_type, data.id, data.state())
        self._log.log_for(state, f"Created {resource_type} {data.id}.")
        return state

    async def read(self, state_id: int) -> Optional[ResourceState]:
        """
        Refreshes one resource from the backend.

        Returns:
            The updated ResourceState, or None if the resource no longer
            exists (its state row is removed).

        Raises:
            StateNotFoundError: If no state row has this id.
            FaxterApiError: If the backend query fails.
        """
        state = self._require(state_id)
        handler = self._provider.handler(state.resource_type)
        data = handler.data_from_state(self._states.get_attributes(state), state.resource_id)

        await handler.read(data)

        if not data.id:
            resource_type, resource_id = state.resource_type, state.resource_id
            self._states.delete(state)
            self._log.log(
                f"{resource_type} {resource_id} no longer exists; removed from state.",
                level="WARNING", resource_type=resource_type, resource_id=resource_id, state_id=state_id,
            )
            return None

        self._states.set_attributes(state, data.state())
        return self._states.save(state)

    async def update(self, state_id: int, config: dict[str, Any]) -> ResourceState:
        """
        Updates one resource in place.

        Computed attributes carry over from the recorded state; the resource
        id follows a rename when the handler moves it.

        Raises:
            StateNotFoundError: If no state row has this id.
            ResourceConfigError: If config does not match the schema.
            FaxterApiError: If the backend rejects the update.
        """
        state = self._require(state_id)
        handler = self._provider.handler(state.resource_type)
        prior = self._states.get_attributes(state)
        data = handler.new_data(config, prior=prior, resource_id=state.resource_id)

        await handler.update(data)

        old_id = state.resource_id
        state.resource_id = data.id or old_id
        self._states.set_attributes(state, data.state())
        saved = self._states.save(state)
        if saved.resource_id != old_id:
            self._log.log_for(saved, f"Updated {saved.resource_type} {old_id} (renamed to {saved.resource_id}).")
        else:
            self._log.log_for(saved, f"Updated {saved.resource_type} {old_id}.")
        return saved

    async def delete(self, state_id: int) -> None:
        """
        Deletes the remote resource, then its state row.

        Raises:
            StateNotFoundError: If no state row has this id.
            FaxterApiError: If the backend rejects the delete.
        """
        state = self._require(state_id)
        handler = self._provider.handler(state.resource_type)
        data = handler.data_from_state(self._states.get_attributes(state), state.resource_id)

        await handler.delete(data)

        resource_type, resource_id = state.resource_type, state.resource_id
        self._states.delete(state)
        self._log.log(
            f"Deleted {resource_type} {resource_id}.",
            resource_type=resource_type, resource_id=resource_id, state_id=state_id,
        )

    async def refresh_all(self) -> RefreshSummary:
        """
        Reads every managed resource, dropping the ones that no longer exist.

        A backend failure for one resource is recorded in the summary and
        does not stop the others.
        """
        summary = RefreshSummary()
        for state in self._states.list_all():
            state_id = state.id
            try:
                refreshed = await self.read(state_id)
            except FaxterApiError as exc:
                logger.warning("Refresh of state %s failed: %s", state_id, exc)
                summary.failed[state_id] = str(exc)
                continue
            if refreshed is None:
                summary.removed += 1
            else:
                summary.refreshed += 1

        logger.info(
            "Refresh complete: %d refreshed, %d removed, %d failed.",
            summary.refreshed, summary.removed, len(summary.failed),
        )
        return summary

    # ---------------------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------------------

    def _require(self, state_id: int) -> ResourceState:
        state = self._states.get(state_id)
        if state is None:
            raise StateNotFoundError(f"No managed resource with state id {state_id}")
        return state
