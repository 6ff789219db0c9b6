"""
faxter/faxter_client.py

Responsibility: Implements the CloudApi protocol using the Faxter REST API.
All Faxter HTTP calls are concentrated here; no other file may call the
Faxter API directly.
Does NOT: read configuration, persist state, or contain polling logic.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from exceptions import FaxterApiError, ResourceNotFoundError
from faxter.cloud_api import ResourceResponse
from provisioning.reconciler import StatusSnapshot

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.faxter.com"

# Collections whose create endpoint is posted to without a trailing slash
_NO_TRAILING_SLASH = frozenset({"projects"})


class FaxterClient:
    """
    Implements CloudApi for the Faxter infrastructure REST API.

    All outbound requests go through the injected httpx.AsyncClient, making
    this class fully testable without real network calls (use respx.mock).

    Collaborators:
        - httpx.AsyncClient: injected HTTP client; must be kept alive externally
        - CloudApi: this class satisfies the protocol contract
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_token: str,
        base_url: str = DEFAULT_BASE_URL,
    ) -> None:
        """
        Initialises the client with an HTTP client and a Faxter API token.

        Args:
            http_client: A long-lived httpx.AsyncClient instance.
            api_token: Bearer token for the Faxter API.
            base_url: API root; defaults to the public Faxter endpoint.
        """
        self._client = http_client
        self._base_url = base_url.rstrip("/")
        self._headers = {
            "Authorization": f"Bearer {api_token}",
            "Content-Type": "application/json",
        }

    # ---------------------------------------------------------------------------
    # CloudApi implementation
    # ---------------------------------------------------------------------------

    async def create(self, collection: str, payload: dict[str, Any]) -> ResourceResponse:
        """
        POSTs a new resource to the collection endpoint.

        The server endpoint answers with a list of created instances; every
        other endpoint answers with a single object. Both are accepted and
        the first instance is returned.

        Raises:
            FaxterApiError: If the call fails or the response is empty.
        """
        url = self._collection_url(collection)

        logger.debug("POST %s payload=%s", url, payload)
        body = await self._request("POST", url, json=payload)

        if isinstance(body, list):
            if not body:
                raise FaxterApiError(f"No {collection} resource returned in create response")
            body = body[0]
        if not isinstance(body, dict):
            raise FaxterApiError(f"Unexpected create response for {collection}: {body!r}")

        return ResourceResponse.from_api(body)

    async def get(self, collection: str, name: str, project: str | None = None) -> ResourceResponse:
        """
        GETs a single resource by id.

        Raises:
            ResourceNotFoundError: On HTTP 404.
            FaxterApiError: On any other failure.
        """
        url = self._item_url(collection, name)

        logger.debug("GET %s project=%s", url, project)
        body = await self._request("GET", url, params=self._scope(project))

        if not isinstance(body, dict):
            raise FaxterApiError(f"Unexpected read response for {collection}/{name}: {body!r}")

        return ResourceResponse.from_api(body)

    async def update(
        self, collection: str, name: str, payload: dict[str, Any], project: str | None = None
    ) -> None:
        """
        PUTs an update for a single resource.

        Raises:
            FaxterApiError: If the call fails.
        """
        url = self._item_url(collection, name)

        logger.debug("PUT %s project=%s payload=%s", url, project, payload)
        await self._request("PUT", url, params=self._scope(project), json=payload)

    async def delete(self, collection: str, name: str, project: str | None = None) -> None:
        """
        DELETEs a single resource.

        Raises:
            FaxterApiError: If the call fails.
        """
        url = self._item_url(collection, name)

        logger.debug("DELETE %s project=%s", url, project)
        await self._request("DELETE", url, params=self._scope(project))

    async def get_status(self, collection: str, name: str, project: str | None = None) -> StatusSnapshot:
        """
        Reads a resource and returns its status, addresses and floating-IP flag.

        Raises:
            ResourceNotFoundError: On HTTP 404.
            FaxterApiError: On any other failure.
        """
        resource = await self.get(collection, name, project)
        return resource.to_snapshot()

    # ---------------------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------------------

    def _collection_url(self, collection: str) -> str:
        if collection in _NO_TRAILING_SLASH:
            return f"{self._base_url}/{collection}"
        return f"{self._base_url}/{collection}/"

    def _item_url(self, collection: str, name: str) -> str:
        return f"{self._base_url}/{collection}/{name}"

    @staticmethod
    def _scope(project: str | None) -> dict[str, str] | None:
        return {"project_name": project} if project is not None else None

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """
        Sends an authenticated HTTP request to the Faxter API.

        Args:
            method: HTTP verb ("GET", "PUT", "POST", "DELETE").
            url: Full URL of the Faxter API endpoint.
            params: Optional query-string parameters.
            json: Optional JSON request body.

        Returns:
            The decoded JSON body, or None when the body is empty.

        Raises:
            ResourceNotFoundError: If the API answers 404.
            FaxterApiError: If the HTTP call fails or the body is not JSON.
        """
        try:
            response = await self._client.request(
                method, url, headers=self._headers, params=params, json=json
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            detail = self._error_detail(exc.response)
            if status_code == 404:
                raise ResourceNotFoundError(
                    f"Resource not found ({method} {url})", status_code=status_code, detail=detail
                ) from exc
            raise FaxterApiError(
                f"Faxter API error {status_code} for {method} {url}: {detail}",
                status_code=status_code,
                detail=detail,
            ) from exc
        except httpx.RequestError as exc:
            raise FaxterApiError(f"Network error calling Faxter API ({method} {url}): {exc}") from exc

        logger.debug("Response %s (%d)", url, response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise FaxterApiError(
                f"Could not decode Faxter API response for {method} {url}",
                status_code=response.status_code,
            ) from exc

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        """
        Extracts a human-readable error from a failed response.

        The backend reports validation and business errors as {"detail": "..."};
        anything else falls back to the raw body text.
        """
        try:
            body = response.json()
        except ValueError:
            return response.text
        if isinstance(body, dict) and isinstance(body.get("detail"), str):
            return body["detail"]
        return response.text
