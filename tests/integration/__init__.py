"""
Integration tests for the load test.

These tests exercise the HTTP-facing pieces against hand-written fakes:
- setup and teardown helpers
- the profile -> groups -> group-detail iteration
- the controller lifecycle and exit codes
"""
