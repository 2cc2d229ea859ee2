"""
Load test configuration.

Defines profile-specific configuration classes for the travel-planner
load test.  Each class captures the target backend URL, the test
account used during setup, pacing and timeout settings, and the ramp
stages that drive virtual-user concurrency.  The ``get_config`` factory
selects the right class based on the ``LOADTEST_PROFILE`` environment
variable (or an explicit key).

Key Concepts Demonstrated:
- Class-based configuration with inheritance for DRY defaults
- Environment-variable overrides so CI can retarget runs without edits
- Separate testing configuration with no think-time and fake URLs
"""

from __future__ import annotations

import os
from pathlib import Path

PACKAGE_DIR = Path(__file__).resolve().parent


def _env_bool(name: str, default: bool) -> bool:
    """Read a boolean flag such as ``1``/``true``/``no`` from the environment."""
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """
    Base (shared) configuration for every load-test profile.

    All profile classes inherit from ``Config`` so that common defaults
    only need to be stated once.  Individual settings can be overridden
    by environment variables.
    """

    # Root URL of the travel-planning backend under test.
    BASE_URL: str = os.environ.get("LOADTEST_BASE_URL", "http://localhost:8080")

    # Test account used once during setup.  Must already exist on the backend.
    LOGIN_EMAIL: str = os.environ.get("LOADTEST_EMAIL", "loadtest@example.com")
    LOGIN_PASSWORD: str = os.environ.get("LOADTEST_PASSWORD", "LoadTest123!")

    # Pause after every request step, modelling a human reading the page.
    THINK_TIME_SECONDS: float = float(os.environ.get("LOADTEST_THINK_TIME", "1"))

    # Per-request timeout passed to the HTTP client.
    REQUEST_TIMEOUT_SECONDS: float = float(os.environ.get("LOADTEST_REQUEST_TIMEOUT", "10"))

    THRESHOLDS_PATH: Path = Path(
        os.environ.get("LOADTEST_THRESHOLDS", str(PACKAGE_DIR / "thresholds.yml"))
    )

    # Optional JSON summary written when the run ends.
    SUMMARY_PATH: str | None = os.environ.get("LOADTEST_SUMMARY") or None

    # Delete the fixture group after the run so repeated runs do not pile up data.
    CLEANUP_FIXTURE: bool = _env_bool("LOADTEST_CLEANUP", True)

    # Payload for the group created during setup.
    GROUP_NAME: str = "Load test group"
    GROUP_DESCRIPTION: str = "Created automatically by the load test"
    GROUP_START_DATE: str = "2025-01-01"
    GROUP_END_DATE: str = "2025-01-10"

    # Concurrency starts here before the first stage ramps it.
    START_USERS: int = 0

    STAGES: list[dict] = [
        {"duration": "30s", "target": 25},
        {"duration": "1m", "target": 25},
        {"duration": "15s", "target": 0},
    ]


class LoadConfig(Config):
    """
    Standard load profile.

    Ramps from 0 to 25 users over 30 seconds, holds for a minute and
    ramps back down over 15 seconds.
    """


class SmokeConfig(Config):
    """
    Single-user sanity profile.

    Runs one virtual user for ten seconds; useful for validating
    credentials and connectivity before a full load run.
    """

    STAGES: list[dict] = [
        {"duration": "0s", "target": 1},
        {"duration": "10s", "target": 1},
    ]


class TestingConfig(Config):
    """
    Test-suite overrides.

    Points the base URL at a non-routable host so unit tests never hit a
    real backend, and removes think-time so iterations complete instantly.
    """

    __test__ = False

    BASE_URL: str = os.environ.get("TEST_LOADTEST_BASE_URL", "http://travel.test")
    THINK_TIME_SECONDS: float = 0.0
    REQUEST_TIMEOUT_SECONDS: float = 1.0
    SUMMARY_PATH: str | None = None
    STAGES: list[dict] = [
        {"duration": "10s", "target": 10},
        {"duration": "0s", "target": 5},
        {"duration": "10s", "target": 5},
    ]


# Lookup table mapping profile name strings to their config classes.
config = {
    "load": LoadConfig,
    "smoke": SmokeConfig,
    "testing": TestingConfig,
    "default": LoadConfig,
}


def get_config(profile: str | None = None) -> type[Config]:
    """
    Return the configuration class for the given profile.

    Args:
        profile: One of ``"load"``, ``"smoke"``, or ``"testing"``.  When
            *None*, the ``LOADTEST_PROFILE`` environment variable is
            consulted, falling back to ``"load"`` if unset.

    Returns:
        The ``Config`` subclass matching the requested profile, or
        ``LoadConfig`` if the key is unrecognised.
    """
    if profile is None:
        profile = os.environ.get("LOADTEST_PROFILE", "load")
    return config.get(profile, config["default"])
