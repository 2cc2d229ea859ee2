"""
Unit tests for the ramp schedule and its Locust shape adapter.

Verifies duration parsing, linear interpolation between stage targets,
zero-length stages that jump straight to their target, and the shape's
behaviour at the end of the schedule or after a failed setup.

Key SDET Concepts Demonstrated:
- Boundary testing at stage edges and at the end of the run
- Table-driven cases with ``pytest.mark.parametrize``
- Testing a framework adapter through a stubbed collaborator
"""

from __future__ import annotations

import logging
from types import SimpleNamespace

import pytest

from travel_loadtest.schedule import RampShape, RunSchedule, Stage, parse_duration

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("30s", 30.0),
        ("1m", 60.0),
        ("1m30s", 90.0),
        ("500ms", 0.5),
        ("2h", 7200.0),
        ("0s", 0.0),
        (45, 45.0),
        ("12", 12.0),
    ],
)
def test_parse_duration_accepts_k6_notation(value, expected):
    """Test that k6-style durations and bare numbers convert to seconds."""
    assert parse_duration(value) == pytest.approx(expected)


@pytest.mark.parametrize("value", ["", "-5s", "abc", "10x", -1, True])
def test_parse_duration_rejects_invalid_values(value):
    """Test that malformed or negative durations raise ValueError."""
    with pytest.raises(ValueError):
        parse_duration(value)


def test_stage_rejects_negative_target():
    """Test that a stage cannot target a negative number of users."""
    with pytest.raises(ValueError):
        Stage(duration_s=10, target=-1)


def test_stage_from_mapping_requires_duration_and_target():
    """Test that a stage mapping missing a key is rejected."""
    with pytest.raises(ValueError):
        Stage.from_mapping({"duration": "10s"})


def test_target_interpolates_linearly_within_a_stage():
    """Test that concurrency moves linearly from the previous target."""
    # Arrange
    schedule = RunSchedule.from_config(
        [
            {"duration": "30s", "target": 25},
            {"duration": "1m", "target": 25},
            {"duration": "15s", "target": 0},
        ]
    )

    # Act & Assert
    assert schedule.target_at(0) == pytest.approx(0)
    assert schedule.target_at(15) == pytest.approx(12.5)
    assert schedule.target_at(30) == pytest.approx(25)
    assert schedule.target_at(60) == pytest.approx(25)
    assert schedule.target_at(90) == pytest.approx(25)
    assert schedule.target_at(97.5) == pytest.approx(12.5)
    assert schedule.target_at(105) == pytest.approx(0)


def test_target_is_none_after_the_last_stage():
    """Test that the schedule reports the run as over past its total duration."""
    # Arrange
    schedule = RunSchedule.from_config([{"duration": "10s", "target": 5}])

    # Act & Assert
    assert schedule.total_duration == 10
    assert schedule.target_at(10.01) is None
    assert schedule.users_at(11) is None


def test_zero_duration_stage_jumps_immediately():
    """Test that a zero-length stage sets its target with no interpolation window."""
    # Arrange
    schedule = RunSchedule.from_config(
        [
            {"duration": "0s", "target": 8},
            {"duration": "10s", "target": 8},
        ]
    )

    # Act & Assert
    assert schedule.target_at(0) == 8
    assert schedule.target_at(5) == 8


def test_zero_duration_stage_between_ramps():
    """Test a drop in the middle of the run happens exactly at the stage boundary."""
    # Arrange
    schedule = RunSchedule.from_config(
        [
            {"duration": "10s", "target": 10},
            {"duration": "0s", "target": 2},
            {"duration": "10s", "target": 2},
        ]
    )

    # Act & Assert
    assert schedule.target_at(9) == pytest.approx(9)
    assert schedule.target_at(10) == 2
    assert schedule.target_at(20) == 2


def test_start_target_is_the_first_ramp_origin():
    """Test that the first stage ramps from the configured starting users."""
    # Arrange
    schedule = RunSchedule.from_config([{"duration": "10s", "target": 20}], start_target=10)

    # Act & Assert
    assert schedule.target_at(5) == pytest.approx(15)


def test_users_at_rounds_to_whole_users():
    """Test that fractional targets are rounded for Locust."""
    # Arrange
    schedule = RunSchedule.from_config([{"duration": "4s", "target": 10}])

    # Act & Assert
    assert schedule.users_at(1) == 2
    assert schedule.users_at(3) == 8


class _Shape(RampShape):
    """Concrete shape bound to a stub controller per test."""


def _shape(controller, run_time: float) -> RampShape:
    shape = _Shape()
    shape.controller = controller
    shape.get_run_time = lambda: run_time
    return shape


def test_shape_follows_schedule():
    """Test that the shape reports the interpolated user count."""
    # Arrange
    controller = SimpleNamespace(
        aborted=False,
        schedule=RunSchedule.from_config([{"duration": "10s", "target": 10}]),
    )

    # Act
    users, spawn_rate = _shape(controller, 5.0).tick()

    # Assert
    assert users == 5
    assert spawn_rate >= 1


def test_shape_stops_when_schedule_ends():
    """Test that the shape returns None to end the run after the last stage."""
    # Arrange
    controller = SimpleNamespace(
        aborted=False,
        schedule=RunSchedule.from_config([{"duration": "10s", "target": 10}]),
    )

    # Act & Assert
    assert _shape(controller, 30.0).tick() is None


def test_shape_stops_when_setup_failed():
    """Test that a failed setup ends the run before users are spawned."""
    # Arrange
    controller = SimpleNamespace(
        aborted=True,
        schedule=RunSchedule.from_config([{"duration": "10s", "target": 10}]),
    )

    # Act & Assert
    assert _shape(controller, 0.0).tick() is None


def test_shape_logs_setup_abort_once(caplog):
    """Test that repeated ticks after a failed setup log a single error."""
    # Arrange
    controller = SimpleNamespace(
        aborted=True,
        schedule=RunSchedule.from_config([{"duration": "10s", "target": 10}]),
    )
    shape = _shape(controller, 0.0)

    # Act
    with caplog.at_level(logging.ERROR, logger="travel_loadtest.schedule"):
        shape.tick()
        shape.tick()

    # Assert
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == 1
    assert "Setup failed" in errors[0].getMessage()
