"""Unit tests for schedule, metrics, thresholds and configuration."""
