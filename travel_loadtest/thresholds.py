"""
Pass/fail thresholds over aggregated metrics.

Thresholds are declared in :file:`thresholds.yml` using k6's compact
notation, one list of expressions per metric::

    ttfb_get_profile:
      - p(95)<500
    error_rate:
      - rate==0

They are evaluated once, when the run ends, against the summaries
produced by :class:`~travel_loadtest.metrics.MetricsAggregator`.

Key Concepts Demonstrated:
- Declarative SLOs kept in YAML so they can change without code edits
- Strict parsing that rejects malformed expressions before load starts
"""

from __future__ import annotations

import logging
import operator
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping

import yaml

from travel_loadtest.metrics import MetricSummary

logger = logging.getLogger(__name__)

_EXPRESSION = re.compile(
    r"^\s*(?P<aggregation>avg|min|med|max|count|rate|p\(\d+(?:\.\d+)?\))"
    r"\s*(?P<op><=|>=|==|!=|<|>)"
    r"\s*(?P<limit>-?\d+(?:\.\d+)?)\s*$"
)

OPERATORS: dict[str, Callable[[float, float], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
    "!=": operator.ne,
}


@dataclass(frozen=True)
class Threshold:
    """A predicate such as ``p(95)<500`` bound to one metric."""

    metric_name: str
    aggregation: str
    operator: str
    limit: float
    expression: str

    @classmethod
    def parse(cls, metric_name: str, expression: str) -> "Threshold":
        """
        Parse a k6-style threshold expression.

        Raises:
            ValueError: If the expression does not match
                ``<aggregation><operator><number>``.
        """
        match = _EXPRESSION.match(str(expression))
        if match is None:
            raise ValueError(f"Invalid threshold for {metric_name}: {expression!r}")
        return cls(
            metric_name=metric_name,
            aggregation=match.group("aggregation"),
            operator=match.group("op"),
            limit=float(match.group("limit")),
            expression=str(expression).replace(" ", ""),
        )

    def check(self, observed: float) -> bool:
        return OPERATORS[self.operator](observed, self.limit)


@dataclass(frozen=True)
class ThresholdResult:
    """Outcome of one threshold; ``observed`` is ``None`` when the metric had no data."""

    threshold: Threshold
    observed: float | None
    passed: bool


def parse_thresholds(data: Mapping[str, Any]) -> list[Threshold]:
    """Build thresholds from a ``metric -> expression(s)`` mapping."""
    if not isinstance(data, Mapping):
        raise ValueError("Thresholds must be a mapping of metric name to expressions")

    thresholds: list[Threshold] = []
    for metric_name, expressions in data.items():
        if isinstance(expressions, str):
            expressions = [expressions]
        if not isinstance(expressions, list) or not expressions:
            raise ValueError(f"Thresholds for {metric_name} must be a non-empty list")
        thresholds.extend(Threshold.parse(str(metric_name), expr) for expr in expressions)
    return thresholds


def load_thresholds(path: Path) -> list[Threshold]:
    """
    Read threshold expressions from a YAML file.

    Args:
        path: YAML file mapping metric names to lists of expressions.

    Returns:
        Parsed thresholds in file order.

    Raises:
        ValueError: If the file is not a mapping or an expression is invalid.
        OSError: If the file cannot be read.
    """
    with Path(path).open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    return parse_thresholds(data)


def evaluate_thresholds(
    thresholds: Iterable[Threshold],
    summaries: Mapping[str, MetricSummary],
) -> list[ThresholdResult]:
    """
    Evaluate each threshold against the aggregated metric summaries.

    A threshold on a metric that received no samples fails, so a run that
    never reached an endpoint cannot pass by default.
    """
    results: list[ThresholdResult] = []
    for threshold in thresholds:
        summary = summaries.get(threshold.metric_name)
        observed = None
        if summary is not None:
            try:
                observed = summary.value(threshold.aggregation)
            except ValueError as exc:
                logger.error("Cannot evaluate %s: %s", threshold.expression, exc)
        passed = observed is not None and threshold.check(observed)
        results.append(ThresholdResult(threshold=threshold, observed=observed, passed=passed))
    return results
