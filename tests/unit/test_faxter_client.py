"""
tests/unit/test_faxter_client.py

Unit tests for faxter/faxter_client.py.
All Faxter API calls are intercepted by respx; no real network traffic.
"""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import httpx
import pytest

from exceptions import FaxterApiError, ResourceNotFoundError
from faxter.cloud_api import CloudApi, ResourceResponse
from faxter.faxter_client import FaxterClient
from provisioning.reconciler import StatusSnapshot

_TOKEN = "test-token"
_BASE = "https://api.faxter.com"


def _server_dict(**kwargs):
    return {
        "name": kwargs.get("name", "web-1"),
        "status": kwargs.get("status", "provisioning"),
        "properties": {
            "ip_addresses": kwargs.get("ip_addresses", []),
            "request_floating_ip": kwargs.get("request_floating_ip", False),
        },
    }


def test_client_satisfies_cloud_api_protocol():
    client = FaxterClient(MagicMock(spec=httpx.AsyncClient), _TOKEN)
    assert isinstance(client, CloudApi)


# ---------------------------------------------------------------------------
# create
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_posts_to_collection_with_trailing_slash(mock_http):
    """Collections other than projects are posted to "/<collection>/"."""
    route = mock_http.post(f"{_BASE}/networks/").mock(
        return_value=httpx.Response(200, json={"name": "net-a", "status": ""})
    )
    async with httpx.AsyncClient() as client:
        fx = FaxterClient(client, _TOKEN)
        created = await fx.create("networks", {"project": "demo", "name": "net-a"})

    assert route.called
    assert created.name == "net-a"
    assert json.loads(route.calls.last.request.content) == {"project": "demo", "name": "net-a"}


@pytest.mark.asyncio
async def test_create_project_has_no_trailing_slash(mock_http):
    route = mock_http.post(f"{_BASE}/projects").mock(
        return_value=httpx.Response(200, json={"name": "demo"})
    )
    async with httpx.AsyncClient() as client:
        await FaxterClient(client, _TOKEN).create("projects", {"name": "demo"})

    assert route.called


@pytest.mark.asyncio
async def test_create_server_uses_first_element_of_list_response(mock_http):
    """The server endpoint answers with a list; the first entry is returned."""
    mock_http.post(f"{_BASE}/servers/").mock(
        return_value=httpx.Response(200, json=[_server_dict(name="web-1"), _server_dict(name="web-2")])
    )
    async with httpx.AsyncClient() as client:
        created = await FaxterClient(client, _TOKEN).create("servers", {"name": "web"})

    assert isinstance(created, ResourceResponse)
    assert created.name == "web-1"
    assert created.status == "provisioning"


@pytest.mark.asyncio
async def test_create_raises_on_empty_list_response(mock_http):
    mock_http.post(f"{_BASE}/servers/").mock(return_value=httpx.Response(200, json=[]))
    async with httpx.AsyncClient() as client:
        with pytest.raises(FaxterApiError):
            await FaxterClient(client, _TOKEN).create("servers", {"name": "web"})


@pytest.mark.asyncio
async def test_requests_carry_bearer_token_and_json_content_type(mock_http):
    route = mock_http.post(f"{_BASE}/ssh_keys/").mock(
        return_value=httpx.Response(200, json={"name": "deploy"})
    )
    async with httpx.AsyncClient() as client:
        await FaxterClient(client, _TOKEN).create("ssh_keys", {"name": "deploy", "public_key": "ssh-ed25519 AAAA"})

    request = route.calls.last.request
    assert request.headers["Authorization"] == f"Bearer {_TOKEN}"
    assert request.headers["Content-Type"] == "application/json"


# ---------------------------------------------------------------------------
# get / get_status
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_get_passes_project_as_query_param(mock_http):
    route = mock_http.get(f"{_BASE}/volumes/data").mock(
        return_value=httpx.Response(200, json={"name": "data"})
    )
    async with httpx.AsyncClient() as client:
        await FaxterClient(client, _TOKEN).get("volumes", "data", project="demo")

    assert route.calls.last.request.url.params["project_name"] == "demo"


@pytest.mark.asyncio
async def test_get_without_project_sends_no_query(mock_http):
    route = mock_http.get(f"{_BASE}/projects/demo").mock(
        return_value=httpx.Response(200, json={"name": "demo"})
    )
    async with httpx.AsyncClient() as client:
        await FaxterClient(client, _TOKEN).get("projects", "demo")

    assert "project_name" not in route.calls.last.request.url.params


@pytest.mark.asyncio
async def test_get_status_returns_snapshot_with_addresses(mock_http):
    mock_http.get(f"{_BASE}/servers/web-1").mock(
        return_value=httpx.Response(
            200, json=_server_dict(status="online", ip_addresses=["10.0.0.5"], request_floating_ip=True)
        )
    )
    async with httpx.AsyncClient() as client:
        snapshot = await FaxterClient(client, _TOKEN).get_status("servers", "web-1", project="demo")

    assert snapshot == StatusSnapshot("online", ("10.0.0.5",), True)


@pytest.mark.asyncio
async def test_get_raises_not_found_on_404(mock_http):
    """A 404 is reported as ResourceNotFoundError, a FaxterApiError subclass."""
    mock_http.get(f"{_BASE}/servers/gone").mock(
        return_value=httpx.Response(404, json={"detail": "Server not found"})
    )
    async with httpx.AsyncClient() as client:
        with pytest.raises(ResourceNotFoundError) as exc_info:
            await FaxterClient(client, _TOKEN).get("servers", "gone", project="demo")

    assert exc_info.value.status_code == 404
    assert exc_info.value.detail == "Server not found"


@pytest.mark.asyncio
async def test_http_error_carries_detail_message(mock_http):
    mock_http.get(f"{_BASE}/routers/r1").mock(
        return_value=httpx.Response(500, json={"detail": "database unavailable"})
    )
    async with httpx.AsyncClient() as client:
        with pytest.raises(FaxterApiError) as exc_info:
            await FaxterClient(client, _TOKEN).get("routers", "r1", project="demo")

    assert not isinstance(exc_info.value, ResourceNotFoundError)
    assert exc_info.value.status_code == 500
    assert "database unavailable" in str(exc_info.value)


@pytest.mark.asyncio
async def test_http_error_without_json_uses_body_text(mock_http):
    mock_http.get(f"{_BASE}/routers/r1").mock(return_value=httpx.Response(502, text="Bad Gateway"))
    async with httpx.AsyncClient() as client:
        with pytest.raises(FaxterApiError) as exc_info:
            await FaxterClient(client, _TOKEN).get("routers", "r1", project="demo")

    assert exc_info.value.detail == "Bad Gateway"


@pytest.mark.asyncio
async def test_network_error_is_wrapped(mock_http):
    mock_http.get(f"{_BASE}/servers/web-1").mock(side_effect=httpx.ConnectError("refused"))
    async with httpx.AsyncClient() as client:
        with pytest.raises(FaxterApiError) as exc_info:
            await FaxterClient(client, _TOKEN).get("servers", "web-1", project="demo")

    assert exc_info.value.status_code is None
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_non_json_success_body_raises(mock_http):
    mock_http.get(f"{_BASE}/servers/web-1").mock(return_value=httpx.Response(200, text="<html>"))
    async with httpx.AsyncClient() as client:
        with pytest.raises(FaxterApiError):
            await FaxterClient(client, _TOKEN).get("servers", "web-1", project="demo")


# ---------------------------------------------------------------------------
# update / delete
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_update_puts_payload_with_project_scope(mock_http):
    route = mock_http.put(f"{_BASE}/volumes/data").mock(return_value=httpx.Response(200, json={}))
    async with httpx.AsyncClient() as client:
        await FaxterClient(client, _TOKEN).update("volumes", "data", {"project": "demo", "storage": 20}, project="demo")

    request = route.calls.last.request
    assert request.url.params["project_name"] == "demo"
    assert json.loads(request.content) == {"project": "demo", "storage": 20}


@pytest.mark.asyncio
async def test_delete_accepts_empty_response_body(mock_http):
    route = mock_http.delete(f"{_BASE}/networks/net-a").mock(return_value=httpx.Response(204))
    async with httpx.AsyncClient() as client:
        await FaxterClient(client, _TOKEN).delete("networks", "net-a", project="demo")

    assert route.called


@pytest.mark.asyncio
async def test_custom_base_url_is_used(mock_http):
    route = mock_http.delete("http://faxter.local:8000/ssh_keys/deploy").mock(return_value=httpx.Response(204))
    async with httpx.AsyncClient() as client:
        await FaxterClient(client, _TOKEN, base_url="http://faxter.local:8000/").delete("ssh_keys", "deploy")

    assert route.called
