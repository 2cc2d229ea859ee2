"""
End-of-run summary output.

Prints a human-readable table of every custom metric and every
threshold to stdout for CI logs, and optionally writes the same data as
a JSON artifact for downstream tooling.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

from travel_loadtest.metrics import MetricSummary
from travel_loadtest.thresholds import ThresholdResult

WIDTH = 78


def _format_value(value: float | None) -> str:
    return "n/a" if value is None else f"{value:.2f}"


def print_summary(verdict: Any, summaries: Mapping[str, MetricSummary]) -> None:
    """Print metric aggregates and threshold outcomes to stdout."""
    print("Load Test Summary")
    print("=" * WIDTH)
    print(f"{'Metric':<26}{'Kind':<9}Aggregates")
    print("-" * WIDTH)
    for name in sorted(summaries):
        summary = summaries[name]
        aggregates = " ".join(
            f"{key}={value:.2f}" for key, value in summary.describe().items()
        )
        print(f"{name:<26}{summary.kind:<9}{aggregates}")

    print("-" * WIDTH)
    print(f"{'Threshold':<44}{'Actual':>12}{'Status':>12}")
    print("-" * WIDTH)
    for result in verdict.results:
        label = f"{result.threshold.metric_name} {result.threshold.expression}"
        status = "PASS" if result.passed else "FAIL"
        print(f"{label:<44}{_format_value(result.observed):>12}{status:>12}")

    print("-" * WIDTH)
    if verdict.setup_error is not None:
        print(f"Setup failed: {verdict.setup_error}")
    print(f"Overall: {'PASS' if verdict.passed else 'FAIL'}")


def _result_to_dict(result: ThresholdResult) -> dict[str, Any]:
    return {
        "metric": result.threshold.metric_name,
        "expression": result.threshold.expression,
        "observed": result.observed,
        "passed": result.passed,
    }


def build_summary(verdict: Any, summaries: Mapping[str, MetricSummary]) -> dict[str, Any]:
    """Return the JSON-serialisable form of the run summary."""
    return {
        "passed": verdict.passed,
        "setup_error": None if verdict.setup_error is None else str(verdict.setup_error),
        "metrics": {
            name: {"kind": summary.kind, **summary.describe()}
            for name, summary in sorted(summaries.items())
        },
        "thresholds": [_result_to_dict(result) for result in verdict.results],
    }


def export_summary(
    path: str | Path,
    verdict: Any,
    summaries: Mapping[str, MetricSummary],
) -> Path:
    """Write the run summary as JSON and return the path written."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as handle:
        json.dump(build_summary(verdict, summaries), handle, indent=2)
    return target
