"""
Shared pytest fixtures for the load-test suites.

Provides the reusable test infrastructure needed by unit and integration
tests: a testing configuration pointing at a non-routable host, canned
backend responses for setup and for the three read endpoints, and a
factory that builds a :class:`RunController` wired to fake sessions.

Key SDET Concepts Demonstrated:
- Environment variable overrides set before the package is imported
- Isolating the system-under-test from the real backend with fakes
- Factory fixtures so each test can tweak only the routes it cares about
"""

from __future__ import annotations

import os

# Locust patches the standard library with gevent on import; it must run
# before requests/ssl are loaded by the package under test.
import locust  # noqa: F401
import pytest

os.environ["LOADTEST_PROFILE"] = "testing"
os.environ["TEST_LOADTEST_BASE_URL"] = "http://travel.test"

from tests.fakes import FakeResponse, FakeSession
from travel_loadtest.config import TestingConfig
from travel_loadtest.controller import RunController
from travel_loadtest.helpers import SharedFixture
from travel_loadtest.metrics import MetricsAggregator

BASE_URL = "http://travel.test"


@pytest.fixture
def shared_fixture() -> SharedFixture:
    """Provide the fixture a successful setup would produce."""
    return SharedFixture(auth_token="abc123", test_group_id="g-1")


@pytest.fixture
def read_routes() -> dict:
    """Provide healthy responses for the three read endpoints."""
    return {
        "/profile": {"status_code": 200, "body": {"email": "loadtest@example.com"}},
        "/groups": {"status_code": 200, "body": {"groups": [{"id": "g-1"}]}},
        "/groups/g-1": {"status_code": 200, "body": {"id": "g-1"}},
    }


@pytest.fixture
def setup_routes() -> dict:
    """Provide healthy responses for login, group creation and cleanup."""
    return {
        ("POST", f"{BASE_URL}/auth/login"): FakeResponse(200, {"token": "abc123"}),
        ("POST", f"{BASE_URL}/groups"): FakeResponse(201, {"id": "g-1"}),
        ("DELETE", f"{BASE_URL}/groups/g-1"): FakeResponse(204),
    }


@pytest.fixture
def make_controller(setup_routes):
    """
    Provide a factory for controllers backed by fake sessions.

    Returns a callable ``(routes=None, config=TestingConfig)`` that yields
    ``(controller, sessions)``; ``sessions`` collects every session the
    controller opened so tests can inspect the calls made.
    """

    def _factory(routes: dict | None = None, config=TestingConfig):
        sessions: list[FakeSession] = []
        active_routes = setup_routes if routes is None else routes

        def _session_factory() -> FakeSession:
            session = FakeSession(active_routes)
            sessions.append(session)
            return session

        controller = RunController(
            config,
            session_factory=_session_factory,
            aggregator=MetricsAggregator(),
        )
        return controller, sessions

    return _factory
