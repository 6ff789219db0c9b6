"""
tests/unit/test_scheduler.py

Unit tests for the state refresh job in scheduler.py.
The job opens its own Session on scheduler.engine, which is pointed at the
in-memory engine behind the db_session fixture; Faxter calls go to respx.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import httpx
import pytest

import scheduler
from db.models import ActivityLog
from repositories.config_repository import ConfigRepository
from repositories.state_repository import StateRepository
from services.config_service import TOKEN_ENV_VAR
from services.log_service import LogService

_NETWORK = {"project": "demo", "name": "net-a", "subnets": [{"name": "s1", "cidr": "10.10.0.0/24"}]}


@pytest.fixture(autouse=True)
def job_engine(db_session, monkeypatch):
    monkeypatch.setattr(scheduler, "engine", db_session.get_bind())
    monkeypatch.delenv(TOKEN_ENV_VAR, raising=False)


def _set_token(db_session) -> None:
    repo = ConfigRepository(db_session)
    config = repo.load()
    config.api_token = "secret"
    repo.save(config)


def _add_old_entry(db_session) -> None:
    db_session.add(ActivityLog(timestamp=datetime.now(timezone.utc) - timedelta(days=30), message="old"))
    db_session.commit()


@pytest.mark.asyncio
async def test_refresh_job_skips_everything_without_token(db_session, mock_http):
    _add_old_entry(db_session)
    StateRepository(db_session).add("faxter_network", "net-a", _NETWORK)

    async with httpx.AsyncClient() as client:
        await scheduler._refresh_job(client, asyncio.Event())

    assert not mock_http.calls
    assert [e.message for e in LogService(db_session).get_recent()] == ["old"]
    assert len(StateRepository(db_session).list_all()) == 1


@pytest.mark.asyncio
async def test_refresh_job_prunes_activity_older_than_a_week(db_session, mock_http):
    _set_token(db_session)
    _add_old_entry(db_session)
    LogService(db_session).log("recent")

    async with httpx.AsyncClient() as client:
        await scheduler._refresh_job(client, asyncio.Event())

    assert [e.message for e in LogService(db_session).get_recent()] == ["recent"]


@pytest.mark.asyncio
async def test_refresh_job_removes_vanished_resources_and_logs_summary(db_session, mock_http):
    _set_token(db_session)
    StateRepository(db_session).add("faxter_network", "net-a", _NETWORK)
    route = mock_http.get("https://api.faxter.com/networks/net-a").mock(
        return_value=httpx.Response(404, json={"detail": "Network not found"})
    )

    async with httpx.AsyncClient() as client:
        await scheduler._refresh_job(client, asyncio.Event())

    assert route.called
    assert route.calls.last.request.headers["Authorization"] == "Bearer secret"
    assert StateRepository(db_session).list_all() == []
    messages = [e.message for e in LogService(db_session).get_recent()]
    assert "Refresh: 0 refreshed, 1 removed, 0 failed." in messages


def test_create_scheduler_registers_single_instance_refresh_job():
    sched = scheduler.create_scheduler(http_client=None, shutdown_event=asyncio.Event(), interval_seconds=120)

    job = sched.get_job("state_refresh")

    assert job.trigger.interval.total_seconds() == 120
    assert job.max_instances == 1
