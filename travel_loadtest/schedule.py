"""
Ramp schedule for virtual-user concurrency.

A run is described as an ordered list of stages, each with a duration
and a target number of concurrent users.  Between stages the target
moves linearly, so ``{"duration": "30s", "target": 25}`` after a stage
ending at 0 users means "add users steadily until there are 25 after
30 seconds".  A stage lasting zero seconds jumps straight to its target.

:class:`RampShape` adapts a :class:`RunSchedule` to Locust's
``LoadTestShape`` protocol so Locust's runner spawns and retires users
to follow the interpolated target.

Key Concepts Demonstrated:
- k6-style stage notation (``"1m30s"``) parsed into plain seconds
- Pure interpolation logic kept separate from the Locust adapter so it
  can be unit tested without a running load test
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Iterable

from locust import LoadTestShape

logger = logging.getLogger(__name__)

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")

_UNIT_SECONDS = {
    "ms": 0.001,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: Any) -> float:
    """
    Convert a duration such as ``"30s"``, ``"1m30s"`` or ``45`` to seconds.

    Bare numbers are taken as seconds.

    Raises:
        ValueError: If the value is negative or not a recognised duration.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")

    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = str(value).strip().lower()
        if text == "":
            raise ValueError("Duration must not be empty")

        parts = _DURATION_PART.findall(text)
        # Every character must belong to a number+unit pair.
        if not parts or "".join(number + unit for number, unit in parts) != text:
            try:
                seconds = float(text)
            except ValueError as exc:
                raise ValueError(f"Invalid duration: {value!r}") from exc
        else:
            seconds = sum(float(number) * _UNIT_SECONDS[unit] for number, unit in parts)

    if seconds < 0 or math.isnan(seconds):
        raise ValueError(f"Duration must be non-negative: {value!r}")
    return seconds


@dataclass(frozen=True)
class Stage:
    """One ramp window: reach ``target`` users after ``duration_s`` seconds."""

    duration_s: float
    target: int

    def __post_init__(self) -> None:
        if self.duration_s < 0:
            raise ValueError(f"Stage duration must be non-negative, got {self.duration_s}")
        if self.target < 0:
            raise ValueError(f"Stage target must be non-negative, got {self.target}")

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "Stage":
        """Build a stage from ``{"duration": "30s", "target": 25}``."""
        try:
            duration = data["duration"]
            target = data["target"]
        except (KeyError, TypeError) as exc:
            raise ValueError(f"Stage must define duration and target: {data!r}") from exc

        if isinstance(target, bool) or not isinstance(target, int):
            raise ValueError(f"Stage target must be an integer: {target!r}")
        return cls(duration_s=parse_duration(duration), target=target)


class RunSchedule:
    """
    Ordered ramp stages with linear interpolation between their targets.

    Args:
        stages: Stages in execution order.
        start_target: Concurrency before the first stage begins.
    """

    def __init__(self, stages: Iterable[Stage], start_target: int = 0) -> None:
        self.stages: tuple[Stage, ...] = tuple(stages)
        if start_target < 0:
            raise ValueError(f"Start target must be non-negative, got {start_target}")
        self.start_target = start_target

    @classmethod
    def from_config(cls, stages: Iterable[Any], start_target: int = 0) -> "RunSchedule":
        """Build a schedule from ``Stage`` objects or k6-style stage mappings."""
        parsed = [
            stage if isinstance(stage, Stage) else Stage.from_mapping(stage)
            for stage in stages
        ]
        return cls(parsed, start_target=start_target)

    @property
    def total_duration(self) -> float:
        return sum(stage.duration_s for stage in self.stages)

    def target_at(self, elapsed: float) -> float | None:
        """
        Return the (possibly fractional) target concurrency at ``elapsed`` seconds.

        Returns ``None`` once ``elapsed`` is past the end of the last stage.
        """
        if elapsed < 0:
            raise ValueError(f"Elapsed time must be non-negative, got {elapsed}")
        if elapsed > self.total_duration:
            return None

        previous = float(self.start_target)
        stage_start = 0.0
        for stage in self.stages:
            stage_end = stage_start + stage.duration_s
            if stage.duration_s == 0:
                if elapsed >= stage_start:
                    previous = float(stage.target)
                    continue
                break
            if elapsed < stage_end:
                progress = (elapsed - stage_start) / stage.duration_s
                return previous + (stage.target - previous) * progress
            previous = float(stage.target)
            stage_start = stage_end

        return previous

    def users_at(self, elapsed: float) -> int | None:
        """Target concurrency rounded to whole users, or ``None`` when the run is over."""
        target = self.target_at(elapsed)
        if target is None:
            return None
        return int(round(target))


class RampShape(LoadTestShape):
    """
    Locust load shape that follows a :class:`RunSchedule`.

    Subclasses bind a ``controller`` (see
    :class:`~travel_loadtest.controller.RunController`); the shape reads the
    schedule from it and stops the run early when setup has failed.
    ``abstract = True`` keeps Locust from picking this base class up.
    """

    abstract = True

    controller: Any = None
    _abort_logged: bool = False

    def tick(self) -> tuple[int, float] | None:
        if self.controller.aborted:
            if not self._abort_logged:
                logger.error("Setup failed, stopping the load shape before any iteration runs")
                self._abort_logged = True
            return None

        users = self.controller.schedule.users_at(self.get_run_time())
        if users is None:
            return None

        # Spawn fast enough to reach each interpolated target within one tick.
        return users, float(max(users, 1))
