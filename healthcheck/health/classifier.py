"""Pure threshold classification — sample + thresholds → HealthState."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from typing import Any

from healthcheck.core.types import CheckResult, Direction, HealthState, MetricSpec, Threshold


def classify(value: float, threshold: Threshold) -> HealthState:
    """Classify a single reading.

    The alarm condition is evaluated before the warning condition, so a
    value that satisfies both is ALARM regardless of how the operator
    ordered the two thresholds.
    """
    if threshold.direction == Direction.HIGH_BAD:
        if value >= threshold.alarm:
            return HealthState.ALARM
        if value >= threshold.warning:
            return HealthState.WARN
        return HealthState.OK

    if value <= threshold.alarm:
        return HealthState.ALARM
    if value <= threshold.warning:
        return HealthState.WARN
    return HealthState.OK


def read_value(sample: Mapping[str, Any], spec: MetricSpec) -> float:
    """Extract ``sample[metric][field]`` (or a flat ``sample[metric]``) as float.

    Raises:
        KeyError: the metric or field is missing from the sample.
        ValueError / TypeError: the reading is not a finite number.
    """
    entry = sample[spec.metric]
    raw = entry[spec.field] if isinstance(entry, Mapping) else entry
    if isinstance(raw, bool):
        raise TypeError(f"{spec.metric}.{spec.field} is not numeric")
    value = float(raw)
    if not math.isfinite(value):
        raise ValueError(f"{spec.metric}.{spec.field} is not finite: {value}")
    return value


def classify_sample(
    sample: Mapping[str, Any],
    specs: Iterable[MetricSpec],
) -> dict[str, CheckResult]:
    """Classify every configured metric of a sample, keyed by metric name."""
    results: dict[str, CheckResult] = {}
    for spec in specs:
        value = read_value(sample, spec)
        results[spec.metric] = CheckResult(
            state=classify(value, spec.threshold),
            metric=spec.metric,
            field=spec.field,
            value=value,
        )
    return results
