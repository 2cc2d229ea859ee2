"""
Load test for the travel-planning backend (Locust-based).

Contains the run controller, ramp schedule, read-heavy scenario and the
metric/threshold machinery that together exercise the ``/profile``,
``/groups`` and ``/groups/{id}`` endpoints after a one-time login and
fixture setup.

Key Concepts Demonstrated:
- One-time setup shared read-only by every virtual user
- Linear ramp stages driven through a Locust ``LoadTestShape``
- Per-user sample buffers merged by a single aggregator
- YAML threshold gates deciding the process exit code
"""
