"""
Run lifecycle for the travel-planner load test.

:class:`RunController` owns everything that happens once per run:

1. **Setup**: log in and create the fixture group before any virtual
   user starts.  A failure here aborts the run before load is generated.
2. **Load**: Locust spawns :class:`~travel_loadtest.scenario.TravelPlannerUser`
   instances following the :class:`~travel_loadtest.schedule.RunSchedule`.
3. **Teardown**: delete the fixture group (when enabled).
4. **Verdict**: merge every user's samples, evaluate the thresholds,
   print the summary and set the process exit code.

Exit codes follow a three-state convention so that CI can distinguish
"thresholds breached" from "run never started":

- ``0``: all thresholds passed
- ``1``: at least one threshold was breached
- ``2``: setup failed, no load was generated

Key Concepts Demonstrated:
- Locust ``test_start`` / ``test_stop`` / ``quitting`` hooks as the
  run's lifecycle seams
- Explicit configuration passed in at construction, never read from
  module globals
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

import requests

from travel_loadtest.helpers import (
    SetupError,
    SharedFixture,
    create_group,
    delete_group,
    group_payload,
    login,
)
from travel_loadtest.metrics import MetricsAggregator
from travel_loadtest.report import export_summary, print_summary
from travel_loadtest.schedule import RunSchedule
from travel_loadtest.thresholds import ThresholdResult, evaluate_thresholds, load_thresholds

logger = logging.getLogger(__name__)

EXIT_PASS = 0
EXIT_THRESHOLD_BREACH = 1
EXIT_SETUP_FAILURE = 2


@dataclass(frozen=True)
class RunVerdict:
    """Threshold outcomes for a finished run."""

    results: list[ThresholdResult] = field(default_factory=list)
    setup_error: SetupError | None = None

    @property
    def passed(self) -> bool:
        return self.setup_error is None and all(result.passed for result in self.results)

    @property
    def exit_code(self) -> int:
        if self.setup_error is not None:
            return EXIT_SETUP_FAILURE
        if not self.passed:
            return EXIT_THRESHOLD_BREACH
        return EXIT_PASS


class RunController:
    """
    Drive one load-test run from setup to verdict.

    Args:
        config: A config class from :mod:`travel_loadtest.config`.
        session_factory: Callable returning a ``requests.Session``-like
            object used for setup and teardown calls.
        aggregator: Metric aggregator shared by every virtual user.

    Raises:
        ValueError: If the stages or thresholds in ``config`` are invalid.
        OSError: If the thresholds file cannot be read.
    """

    def __init__(
        self,
        config: Any,
        *,
        session_factory: Callable[[], Any] = requests.Session,
        aggregator: MetricsAggregator | None = None,
    ) -> None:
        self.config = config
        self.schedule = RunSchedule.from_config(config.STAGES, start_target=config.START_USERS)
        self.thresholds = load_thresholds(config.THRESHOLDS_PATH)
        self.aggregator = aggregator if aggregator is not None else MetricsAggregator()

        self.fixture: SharedFixture | None = None
        self.setup_error: SetupError | None = None
        self.verdict: RunVerdict | None = None

        self._session_factory = session_factory
        self._setup_attempted = False
        self._torn_down = False

    @property
    def aborted(self) -> bool:
        return self.setup_error is not None

    def setup(self) -> SharedFixture:
        """
        Log in and create the fixture group, exactly once per run.

        Returns:
            The shared fixture handed to every virtual user.

        Raises:
            SetupError: If login or group creation fails.  The error is
                also kept on ``setup_error`` and the run is marked aborted.
        """
        if self._setup_attempted:
            if self.setup_error is not None:
                raise self.setup_error
            return self.fixture

        self._setup_attempted = True
        base_url = self.config.BASE_URL
        timeout = self.config.REQUEST_TIMEOUT_SECONDS
        logger.info("Running setup against %s: authenticating and creating test data", base_url)

        try:
            with self._session_factory() as session:
                token = login(
                    session,
                    base_url,
                    email=self.config.LOGIN_EMAIL,
                    password=self.config.LOGIN_PASSWORD,
                    timeout=timeout,
                )
                logger.info("Setup: logged in, token obtained")

                group_id = create_group(
                    session,
                    base_url,
                    token=token,
                    payload=group_payload(self.config),
                    timeout=timeout,
                )
        except SetupError as exc:
            self.setup_error = exc
            raise

        logger.info("Setup: test group %s created", group_id)
        self.fixture = SharedFixture(auth_token=token, test_group_id=group_id)
        return self.fixture

    def teardown(self) -> bool:
        """
        Delete the fixture group if cleanup is enabled.

        Runs at most once.  A failed delete is logged and otherwise
        ignored; it never changes the run's verdict.

        Returns:
            ``True`` if the group was deleted.
        """
        if self._torn_down or self.fixture is None:
            return False
        self._torn_down = True

        if not self.config.CLEANUP_FIXTURE:
            logger.info("Teardown: keeping test group %s", self.fixture.test_group_id)
            return False

        with self._session_factory() as session:
            deleted = delete_group(
                session,
                self.config.BASE_URL,
                token=self.fixture.auth_token,
                group_id=self.fixture.test_group_id,
                timeout=self.config.REQUEST_TIMEOUT_SECONDS,
            )

        if deleted:
            logger.info("Teardown: test group %s deleted", self.fixture.test_group_id)
        else:
            logger.warning("Teardown: could not delete test group %s", self.fixture.test_group_id)
        return deleted

    def evaluate(self) -> RunVerdict:
        """Merge all buffered samples and evaluate every threshold."""
        self.aggregator.flush()
        results = evaluate_thresholds(self.thresholds, self.aggregator.summaries())
        self.verdict = RunVerdict(results=results, setup_error=self.setup_error)
        return self.verdict

    def exit_code(self) -> int:
        verdict = self.verdict if self.verdict is not None else self.evaluate()
        return verdict.exit_code

    def report(self) -> RunVerdict:
        """Evaluate, print the summary and export it when configured."""
        verdict = self.evaluate()
        summaries = self.aggregator.summaries()
        print_summary(verdict, summaries)

        if self.config.SUMMARY_PATH:
            path = export_summary(self.config.SUMMARY_PATH, verdict, summaries)
            logger.info("Summary written to %s", path)
        return verdict

    # ---- Locust event wiring ------------------------------------------

    def attach(self, events: Any) -> None:
        """Register this controller's lifecycle hooks on Locust's event bus."""
        events.test_start.add_listener(self._on_test_start)
        events.test_stop.add_listener(self._on_test_stop)
        events.quitting.add_listener(self._on_quitting)

    def _on_test_start(self, environment: Any = None, **_kwargs: Any) -> None:
        if self._setup_attempted:
            return
        try:
            self.setup()
        except SetupError as exc:
            logger.error("Setup failed, aborting before load generation: %s", exc)

    def _on_test_stop(self, environment: Any = None, **_kwargs: Any) -> None:
        self.teardown()

    def _on_quitting(self, environment: Any = None, **_kwargs: Any) -> None:
        self.teardown()
        verdict = self.report()
        if environment is not None:
            environment.process_exit_code = verdict.exit_code
