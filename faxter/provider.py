"""
faxter/provider.py

Responsibility: Registers every Faxter resource type and builds configured
handlers from provider settings (token, base URL, polling).
Does NOT: persist state or run lifecycle operations; see
services/lifecycle_service.py.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from exceptions import ProviderConfigError, UnknownResourceTypeError
from faxter.cloud_api import CloudApi
from faxter.faxter_client import DEFAULT_BASE_URL, FaxterClient
from provisioning.reconciler import CancelSignal, PollConfig, ProvisioningReconciler
from resources.base import ResourceHandler
from resources.load_balancer import LoadBalancerResource
from resources.network import NetworkResource
from resources.project import ProjectResource
from resources.router import RouterResource
from resources.security_group import SecurityGroupResource
from resources.server import ServerResource
from resources.ssh_key import SshKeyResource
from resources.volume import VolumeResource

logger = logging.getLogger(__name__)

RESOURCE_TYPES: dict[str, type[ResourceHandler]] = {
    handler.type_name: handler
    for handler in (
        ProjectResource,
        ServerResource,
        SshKeyResource,
        NetworkResource,
        RouterResource,
        VolumeResource,
        SecurityGroupResource,
        LoadBalancerResource,
    )
}


class ConfiguredProvider:
    """
    A provider bound to one backend client; hands out resource handlers.

    Collaborators:
        - CloudApi: shared by every handler this provider creates
        - ProvisioningReconciler: used by the server handler
    """

    def __init__(
        self,
        api: CloudApi,
        reconciler: ProvisioningReconciler,
        poll_config: PollConfig,
        cancel_signal: Optional[CancelSignal] = None,
    ) -> None:
        self.api = api
        self._reconciler = reconciler
        self._poll_config = poll_config
        self._cancel_signal = cancel_signal

    @property
    def resource_types(self) -> list[str]:
        return sorted(RESOURCE_TYPES)

    def handler(self, type_name: str) -> ResourceHandler:
        """
        Returns a handler instance for the given resource type.

        Raises:
            UnknownResourceTypeError: If type_name is not registered.
        """
        handler_cls = RESOURCE_TYPES.get(type_name)
        if handler_cls is None:
            raise UnknownResourceTypeError(f"Unknown resource type '{type_name}'")
        if handler_cls is ServerResource:
            return ServerResource(
                self.api,
                reconciler=self._reconciler,
                poll_config=self._poll_config,
                cancel_signal=self._cancel_signal,
            )
        return handler_cls(self.api)


class Provider:
    """Entry point that turns provider settings into a ConfiguredProvider."""

    @staticmethod
    def configure(
        http_client: httpx.AsyncClient,
        api_token: str,
        base_url: str = DEFAULT_BASE_URL,
        poll_config: Optional[PollConfig] = None,
        cancel_signal: Optional[CancelSignal] = None,
        reconciler: Optional[ProvisioningReconciler] = None,
    ) -> ConfiguredProvider:
        """
        Builds a FaxterClient and wraps it in a ConfiguredProvider.

        Args:
            http_client: The shared httpx.AsyncClient.
            api_token: Bearer token for the Faxter API. Must be non-empty.
            base_url: API root.
            poll_config: Provisioning wait settings for servers.
            cancel_signal: Checked between provisioning polls.
            reconciler: Override for tests; a default one is created otherwise.

        Raises:
            ProviderConfigError: If no API token is supplied.
        """
        if not api_token:
            raise ProviderConfigError(
                "No Faxter API token configured; set it in the provider settings or FAXTER_TOKEN."
            )
        client = FaxterClient(http_client=http_client, api_token=api_token, base_url=base_url)
        logger.debug("Provider configured for %s.", base_url)
        return ConfiguredProvider(
            client,
            reconciler or ProvisioningReconciler(),
            poll_config or PollConfig(),
            cancel_signal,
        )
