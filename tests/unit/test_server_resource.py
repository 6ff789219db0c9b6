"""
tests/unit/test_server_resource.py

Unit tests for resources/server.py.
The backend is an AsyncMock CloudApi and provisioning waits run on the
FakeClock, so a create that polls several times finishes instantly.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from exceptions import FaxterApiError, ReconcileError, ReconcileErrorKind, ResourceNotFoundError
from faxter.cloud_api import ResourceResponse
from provisioning.reconciler import PollConfig, ProvisioningReconciler, StatusSnapshot
from resources.server import ServerResource

_CONFIG = {"project": "demo", "name": "web", "key_name": "deploy"}


def _make_handler(api, fake_clock, cancel_signal=None):
    return ServerResource(
        api,
        reconciler=ProvisioningReconciler(clock=fake_clock),
        poll_config=PollConfig(deadline=60, interval=5),
        cancel_signal=cancel_signal,
    )


def _api(statuses):
    api = AsyncMock()
    api.create.return_value = ResourceResponse(name="web-1", status="build")
    api.get_status.side_effect = statuses
    return api


# ---------------------------------------------------------------------------
# create
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_waits_until_online_and_records_addresses(fake_clock):
    api = _api([StatusSnapshot("build"), StatusSnapshot("online", ("10.0.0.5", "203.0.113.9"))])
    handler = _make_handler(api, fake_clock)
    data = handler.new_data(_CONFIG)

    await handler.create(data)

    assert data.id == "web-1"
    assert data.get("status") == "online"
    assert data.get("ip_addresses") == ["10.0.0.5", "203.0.113.9"]
    assert api.get_status.await_count == 2
    api.get_status.assert_awaited_with("servers", "web-1", project="demo")


@pytest.mark.asyncio
async def test_create_payload_applies_defaults_and_omits_empty_fields(fake_clock):
    api = _api([StatusSnapshot("online")])
    handler = _make_handler(api, fake_clock)

    await handler.create(handler.new_data(_CONFIG))

    collection, body = api.create.await_args.args
    assert collection == "servers"
    assert body == {
        "project": "demo",
        "name": "web",
        "flavor": "copper",
        "image": "Ubuntu2204",
        "key_name": "deploy",
        "security_groups": ["default"],
        "networks": ["public1"],
    }


@pytest.mark.asyncio
async def test_create_sends_floating_ip_and_volumes_when_set(fake_clock):
    api = _api([StatusSnapshot("online")])
    handler = _make_handler(api, fake_clock)
    config = dict(_CONFIG, request_floating_ip=True, volumes=["data"], cloud_init="#cloud-config")

    await handler.create(handler.new_data(config))

    body = api.create.await_args.args[1]
    assert body["request_floating_ip"] is True
    assert body["volumes"] == ["data"]
    assert body["cloud_init"] == "#cloud-config"


@pytest.mark.asyncio
async def test_create_omits_false_floating_ip(fake_clock):
    api = _api([StatusSnapshot("online")])
    handler = _make_handler(api, fake_clock)

    await handler.create(handler.new_data(dict(_CONFIG, request_floating_ip=False)))

    assert "request_floating_ip" not in api.create.await_args.args[1]


@pytest.mark.asyncio
async def test_create_response_without_name_raises_api_error(fake_clock):
    api = AsyncMock()
    api.create.return_value = ResourceResponse.from_api({"status": "building"})
    handler = _make_handler(api, fake_clock)
    data = handler.new_data(_CONFIG)

    with pytest.raises(FaxterApiError, match="no resource name"):
        await handler.create(data)

    assert data.id == ""
    api.get_status.assert_not_awaited()


@pytest.mark.asyncio
async def test_create_error_status_keeps_id_and_raises(fake_clock):
    """A server in "error" keeps its id so the caller can record it."""
    api = _api([StatusSnapshot("error")])
    handler = _make_handler(api, fake_clock)
    data = handler.new_data(_CONFIG)

    with pytest.raises(ReconcileError) as exc_info:
        await handler.create(data)

    assert exc_info.value.kind is ReconcileErrorKind.PROVISION_FAILED
    assert data.id == "web-1"


@pytest.mark.asyncio
async def test_create_clears_id_when_server_disappears(fake_clock):
    api = _api([ResourceNotFoundError("gone", status_code=404)])
    handler = _make_handler(api, fake_clock)
    data = handler.new_data(_CONFIG)

    with pytest.raises(ReconcileError) as exc_info:
        await handler.create(data)

    assert exc_info.value.kind is ReconcileErrorKind.NOT_FOUND
    assert data.id == ""


@pytest.mark.asyncio
async def test_create_times_out_with_handle_in_message(fake_clock):
    api = AsyncMock()
    api.create.return_value = ResourceResponse(name="web-1", status="build")
    api.get_status.return_value = StatusSnapshot("build")
    handler = _make_handler(api, fake_clock)

    with pytest.raises(ReconcileError) as exc_info:
        await handler.create(handler.new_data(_CONFIG))

    assert exc_info.value.kind is ReconcileErrorKind.TIMEOUT
    assert "web-1" in str(exc_info.value)


@pytest.mark.asyncio
async def test_create_honours_cancel_signal(fake_clock):
    cancel = asyncio.Event()
    cancel.set()
    api = _api([StatusSnapshot("online")])
    handler = _make_handler(api, fake_clock, cancel_signal=cancel)

    with pytest.raises(ReconcileError) as exc_info:
        await handler.create(handler.new_data(_CONFIG))

    assert exc_info.value.kind is ReconcileErrorKind.CANCELLED
    api.get_status.assert_not_awaited()


@pytest.mark.asyncio
async def test_create_rejected_by_backend_does_not_poll(fake_clock):
    api = AsyncMock()
    api.create.side_effect = FaxterApiError("quota exceeded", status_code=400)
    handler = _make_handler(api, fake_clock)
    data = handler.new_data(_CONFIG)

    with pytest.raises(FaxterApiError):
        await handler.create(data)

    assert data.id == ""
    api.get_status.assert_not_awaited()


# ---------------------------------------------------------------------------
# read / update / delete
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_read_refreshes_status_addresses_and_floating_ip(fake_clock):
    api = AsyncMock()
    api.get_status.return_value = StatusSnapshot("online", ("10.0.0.5",), True)
    handler = _make_handler(api, fake_clock)
    data = handler.data_from_state(dict(_CONFIG, status="build", ip_addresses=[]), "web-1")

    await handler.read(data)

    assert data.get("status") == "online"
    assert data.get("ip_addresses") == ["10.0.0.5"]
    assert data.get("request_floating_ip") is True
    api.get_status.assert_awaited_once_with("servers", "web-1", "demo")


@pytest.mark.asyncio
async def test_read_clears_id_on_404(fake_clock):
    api = AsyncMock()
    api.get_status.side_effect = ResourceNotFoundError("gone", status_code=404)
    handler = _make_handler(api, fake_clock)
    data = handler.data_from_state(dict(_CONFIG), "web-1")

    await handler.read(data)

    assert data.id == ""


@pytest.mark.asyncio
async def test_update_sends_name_and_changed_fields_only(fake_clock):
    api = AsyncMock()
    handler = _make_handler(api, fake_clock)
    prior = handler.schema.apply_defaults(dict(_CONFIG, status="online", ip_addresses=["10.0.0.5"]))
    data = handler.new_data(dict(_CONFIG, flavor="silver", sub_networks=["private-a"]), prior=prior, resource_id="web-1")

    await handler.update(data)

    api.update.assert_awaited_once_with(
        "servers",
        "web-1",
        {"name": "web", "flavor": "silver", "subnetworks": ["private-a"]},
        "demo",
    )


@pytest.mark.asyncio
async def test_delete_clears_id(fake_clock):
    api = AsyncMock()
    handler = _make_handler(api, fake_clock)
    data = handler.data_from_state(dict(_CONFIG), "web-1")

    await handler.delete(data)

    api.delete.assert_awaited_once_with("servers", "web-1", "demo")
    assert data.id == ""
