# ruff: noqa: E402
"""
Locust entrypoint for the travel-planner load test.

This is the file that the ``locust`` CLI discovers and loads.  It builds
one :class:`~travel_loadtest.controller.RunController` from the selected
configuration profile, hooks it into Locust's events and binds the
concrete user and shape classes to it.

Usage examples::

    # Standard ramp (0 -> 25 users, hold, ramp down):
    locust -f travel_loadtest/locustfile.py --headless

    # Single-user smoke run against another backend:
    LOADTEST_PROFILE=smoke LOADTEST_BASE_URL=http://staging:8080 \\
        locust -f travel_loadtest/locustfile.py --headless

The process exits with ``0`` when every threshold passes, ``1`` when a
threshold is breached and ``2`` when setup fails.
"""

from __future__ import annotations

import sys
from pathlib import Path

from locust import events

# Locust may be invoked from any directory; make sure the package
# resolves even when it has not been installed.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from travel_loadtest.config import get_config
from travel_loadtest.controller import RunController
from travel_loadtest.scenario import TravelPlannerUser
from travel_loadtest.schedule import RampShape

CONTROLLER = RunController(get_config())
CONTROLLER.attach(events)


class ReadHeavyUser(TravelPlannerUser):
    """Profile, group list and group detail reads with think-time."""

    controller = CONTROLLER
    host = CONTROLLER.config.BASE_URL


class StagedRampShape(RampShape):
    """Concurrency follows the configured ramp stages."""

    controller = CONTROLLER


__all__ = ["ReadHeavyUser", "StagedRampShape"]
