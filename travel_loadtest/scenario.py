"""
Read-heavy travel-planner scenario.

Every virtual user repeats the same iteration: view its profile, list
its groups, then open the group created during setup, pausing for a
fixed think-time after each request.  All three requests reuse the
shared fixture's token; none depends on a previous step's response.

Each step records:

- its TTFB into the step's own trend (``ttfb_get_profile`` ...) and its
  full request duration, body included, into ``http_req_duration``,
  whenever a response was received
- one ``error_rate`` observation (a failure if any check failed)
- one ``checks`` observation per individual check

A failed check never stops the iteration or the user, and nothing is
retried.

Key Concepts Demonstrated:
- ``catch_response=True`` for in-band validation that also marks
  failures in Locust's own statistics
- Steps declared as data so order and checks are visible at a glance
- Iteration logic in a plain function, testable with a fake client
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

import requests
from locust import HttpUser, constant, task
from locust.exception import StopUser

from travel_loadtest.helpers import SharedFixture, auth_header, safe_json
from travel_loadtest.metrics import SampleBuffer

logger = logging.getLogger(__name__)

HTTP_REQ_DURATION = "http_req_duration"
ERROR_RATE = "error_rate"
CHECKS = "checks"
ITERATIONS = "iterations"
ITERATION_DURATION = "iteration_duration"

CheckFn = Callable[[Any, dict[str, Any], SharedFixture], bool]


def _status_ok(response: Any, _body: dict[str, Any], _fixture: SharedFixture) -> bool:
    return response.status_code == 200


def _group_id_matches(response: Any, body: dict[str, Any], fixture: SharedFixture) -> bool:
    group_id = body.get("id")
    return group_id is not None and str(group_id) == fixture.test_group_id


@dataclass(frozen=True)
class Step:
    """One timed request of the iteration and the checks applied to it."""

    label: str
    path: str
    stats_name: str
    metric: str
    checks: tuple[tuple[str, CheckFn], ...]

    def url(self, fixture: SharedFixture) -> str:
        return self.path.format(group_id=fixture.test_group_id)


STEPS: tuple[Step, ...] = (
    Step(
        label="GET /profile",
        path="/profile",
        stats_name="/profile [GET]",
        metric="ttfb_get_profile",
        checks=(("GET /profile status 200", _status_ok),),
    ),
    Step(
        label="GET /groups",
        path="/groups",
        stats_name="/groups [GET]",
        metric="ttfb_get_groups",
        checks=(("GET /groups status 200", _status_ok),),
    ),
    Step(
        label="GET /groups/{id}",
        path="/groups/{group_id}",
        stats_name="/groups/[id] [GET]",
        metric="ttfb_get_group_details",
        checks=(
            ("GET /groups/{id} status 200", _status_ok),
            ("GET /groups/{id} id matches", _group_id_matches),
        ),
    ),
)


def _record_outcome(buffer: SampleBuffer, outcomes: list[tuple[str, bool]]) -> bool:
    """Record one error-rate observation plus one ``checks`` sample per check."""
    for _name, passed in outcomes:
        buffer.add_rate(CHECKS, passed)
    step_passed = all(passed for _name, passed in outcomes)
    buffer.add_rate(ERROR_RATE, not step_passed)
    return step_passed


def run_step(
    client: Any,
    step: Step,
    fixture: SharedFixture,
    buffer: SampleBuffer,
    *,
    headers: dict[str, str],
    timeout: float | None = None,
) -> bool:
    """
    Issue one step's request, record its metrics and return whether it passed.

    Args:
        client: Locust ``HttpSession`` (or anything with the same ``get``
            signature and ``catch_response`` protocol).
        step: The step to run.
        fixture: Shared fixture from setup.
        buffer: This virtual user's sample buffer.
        headers: Auth headers for the request.
        timeout: Per-request timeout in seconds.
    """
    try:
        with client.get(
            step.url(fixture),
            headers=headers,
            name=step.stats_name,
            timeout=timeout,
            catch_response=True,
        ) as response:
            # Locust reports transport errors as status 0 with no body.
            if response.status_code != 0:
                buffer.add_trend(step.metric, response.elapsed.total_seconds() * 1000.0)
                buffer.add_trend(HTTP_REQ_DURATION, response.request_meta["response_time"])

            body = safe_json(response)
            outcomes = [(name, check(response, body, fixture)) for name, check in step.checks]
            failed = [name for name, passed in outcomes if not passed]
            if failed:
                response.failure(f"Failed checks: {', '.join(failed)}")
            else:
                response.success()
    except requests.RequestException as exc:
        logger.debug("%s transport error: %s", step.label, exc)
        outcomes = [(name, False) for name, _check in step.checks]

    return _record_outcome(buffer, outcomes)


def run_iteration(
    client: Any,
    fixture: SharedFixture,
    buffer: SampleBuffer,
    *,
    think_time: float,
    timeout: float | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """
    Run the profile → groups → group-detail sequence once.

    Returns:
        The number of steps whose checks failed.
    """
    started = time.perf_counter()
    headers = auth_header(fixture.auth_token)

    failures = 0
    for step in STEPS:
        if not run_step(client, step, fixture, buffer, headers=headers, timeout=timeout):
            failures += 1
        sleep(think_time)

    buffer.add_count(ITERATIONS)
    buffer.add_trend(ITERATION_DURATION, (time.perf_counter() - started) * 1000.0)
    return failures


class TravelPlannerUser(HttpUser):
    """
    Virtual user that loops :func:`run_iteration` against the shared fixture.

    Concrete subclasses bind a ``controller`` (see
    :class:`~travel_loadtest.controller.RunController`).  Pacing lives
    inside the iteration, so Locust's own ``wait_time`` is zero.
    ``abstract = True`` tells Locust not to spawn this class directly.

    A user spawned after a failed setup stops at its first task, before
    sending any request.

    Attributes:
        buffer: Sample buffer owned by this user alone.
    """

    abstract = True
    wait_time = constant(0)

    controller: Any = None

    buffer: SampleBuffer

    def on_start(self) -> None:
        self.buffer = self.controller.aggregator.register()

    def on_stop(self) -> None:
        buffer = getattr(self, "buffer", None)
        if buffer is not None:
            self.controller.aggregator.merge(buffer)

    @task
    def read_heavy_flow(self) -> None:
        fixture = self.controller.fixture
        if fixture is None:
            raise StopUser("Setup did not produce a shared fixture")

        run_iteration(
            self.client,
            fixture,
            self.buffer,
            think_time=self.controller.config.THINK_TIME_SECONDS,
            timeout=self.controller.config.REQUEST_TIMEOUT_SECONDS,
        )
