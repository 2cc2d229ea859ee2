"""
Test suite for the travel-planner load test.

This package contains:
- unit/: pure logic (schedule, metrics, thresholds, config)
- integration/: setup helpers, the iteration and the run lifecycle,
  driven through fake HTTP clients and Locust's event bus
"""
