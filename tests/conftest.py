"""
tests/conftest.py

Shared pytest fixtures used by both unit and integration test suites.
All DB fixtures use in-memory SQLite (StaticPool), all HTTP fixtures use
respx.mock, and provisioning waits run on a virtual clock, so no test makes
real network calls or really sleeps.
"""

from __future__ import annotations

import os

import pytest
import respx
from sqlmodel import SQLModel, Session, create_engine
from sqlmodel.pool import StaticPool

# ---------------------------------------------------------------------------
# Redirect the DB to /tmp for all test runs; never write to /config/faxter.db
# ---------------------------------------------------------------------------

os.environ.setdefault("DB_PATH", "/tmp/faxter_test.db")

# NOTE: Models must be imported before SQLModel.metadata.create_all so that
# all table definitions are registered in the metadata before we call create_all.
import db.models  # noqa: E402,F401  side-effect import to register table metadata


# ---------------------------------------------------------------------------
# Database fixture: in-memory SQLite, isolated per test
# ---------------------------------------------------------------------------


@pytest.fixture(name="db_session")
def db_session_fixture():
    """
    Yields a fresh in-memory SQLite session for each test.

    Tables are created before the test and dropped after, ensuring full
    isolation between tests. Never touches the real /config/faxter.db file.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)


# ---------------------------------------------------------------------------
# HTTP mock fixture: intercepts all httpx calls
# ---------------------------------------------------------------------------


@pytest.fixture()
def mock_http():
    """
    Yields a respx router that intercepts all httpx.AsyncClient calls.

    No real network traffic is allowed during tests. Use this fixture
    wherever a client would normally make an outbound request.
    """
    with respx.mock(assert_all_called=False) as router:
        yield router


# ---------------------------------------------------------------------------
# Virtual clock for provisioning waits
# ---------------------------------------------------------------------------


class FakeClock:
    """
    Deterministic Clock: sleep() advances time instantly and is recorded.

    Tests may also call advance() from inside a status fetch to simulate a
    slow backend.
    """

    def __init__(self, start: float = 0.0) -> None:
        self.current = start
        self.sleeps: list[float] = []

    def now(self) -> float:
        return self.current

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.current += seconds

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture()
def fake_clock() -> FakeClock:
    """Yields a FakeClock starting at t=0."""
    return FakeClock()
