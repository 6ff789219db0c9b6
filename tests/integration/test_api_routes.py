"""
tests/integration/test_api_routes.py

Integration tests for routes/api_routes.py and the /health endpoint.
Uses FastAPI's TestClient as a context manager so the lifespan starts and stops
cleanly for each test. Depends() providers are overridden with test doubles
backed by the in-memory SQLite fixture.
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from app import app
from dependencies import get_config_service, get_log_service
from repositories.config_repository import ConfigRepository
from services.config_service import ConfigService
from services.log_service import LogService


def _override(db_session) -> None:
    app.dependency_overrides[get_config_service] = lambda: ConfigService(ConfigRepository(db_session))
    app.dependency_overrides[get_log_service] = lambda: LogService(db_session)


def test_health_endpoint_returns_ok():
    """GET /health must return {"status": "ok"} with HTTP 200."""
    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_get_recent_logs_returns_json_newest_first(db_session):
    """GET /api/logs/recent must return activity entries as JSON."""
    log_service = LogService(db_session)
    log_service.log("Created faxter_project demo.")
    log_service.log("Deleted faxter_project demo.", level="WARNING")
    _override(db_session)
    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/api/logs/recent", params={"limit": 1})
    app.dependency_overrides.clear()

    assert response.status_code == 200
    entries = response.json()
    assert len(entries) == 1
    assert entries[0]["message"] == "Deleted faxter_project demo."
    assert entries[0]["level"] == "WARNING"


def test_get_recent_logs_filters_by_resource_type(db_session):
    log_service = LogService(db_session)
    log_service.log("Provider settings updated.")
    log_service.log("Created faxter_project demo.", resource_type="faxter_project", resource_id="demo", state_id=1)
    _override(db_session)
    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/api/logs/recent", params={"resource_type": "faxter_project"})
    app.dependency_overrides.clear()

    [entry] = response.json()
    assert entry["resource_type"] == "faxter_project"
    assert entry["resource_id"] == "demo"
    assert entry["state_id"] == 1


def test_resource_logs_return_history_of_one_state_id(db_session):
    log_service = LogService(db_session)
    log_service.log("Created faxter_network net-a.", resource_type="faxter_network", resource_id="net-a", state_id=7)
    log_service.log("Created faxter_network net-c.", resource_type="faxter_network", resource_id="net-c", state_id=8)
    log_service.log("Deleted faxter_network net-a.", resource_type="faxter_network", resource_id="net-a", state_id=7)
    _override(db_session)
    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/api/logs/resources/7")
    app.dependency_overrides.clear()

    assert response.status_code == 200
    assert [e["message"] for e in response.json()] == [
        "Deleted faxter_network net-a.",
        "Created faxter_network net-a.",
    ]


def test_get_settings_masks_token(db_session):
    repo = ConfigRepository(db_session)
    config = repo.load()
    config.api_token = "secret"
    repo.save(config)
    _override(db_session)
    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/api/settings")
    app.dependency_overrides.clear()

    body = response.json()
    assert body["api_token_set"] is True
    assert "secret" not in response.text
    assert body["poll_timeout"] == 300


def test_put_settings_updates_and_reschedules(db_session):
    _override(db_session)
    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.put("/api/settings", json={"poll_interval": 5, "refresh_interval": 120})
        job = app.state.scheduler.get_job("state_refresh")
        interval = job.trigger.interval.total_seconds()
    app.dependency_overrides.clear()

    assert response.status_code == 200
    assert response.json()["poll_interval"] == 5
    assert response.json()["refresh_interval"] == 120
    assert interval == 120
    assert ConfigRepository(db_session).load().poll_interval == 5


def test_put_settings_rejects_non_positive_interval(db_session):
    _override(db_session)
    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.put("/api/settings", json={"poll_interval": 0})
    app.dependency_overrides.clear()

    assert response.status_code == 422


def test_resource_types_lists_every_type():
    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/api/resource-types")
    assert response.status_code == 200
    assert "faxter_server" in response.json()
    assert len(response.json()) == 8
