"""Guessing of metric types and units, and loading of per-metric settings."""

from __future__ import annotations

from collections.abc import MutableMapping

from autograf.metric import Metric, MetricConfigError, MetricType, MetricUnit, load_config_from_help

_UNIT_MARKERS = (
    ("_cpu_seconds", MetricUnit.NONE),
    ("_seconds", MetricUnit.SECONDS),
    ("_bytes", MetricUnit.BYTES),
    ("_volt", MetricUnit.VOLT),
    ("_ampere", MetricUnit.AMPERE),
    ("_hertz", MetricUnit.HERTZ),
    ("_celsius", MetricUnit.CELSIUS),
)


def guess_metric_type(metric: Metric) -> None:
    """Correct the metric type from naming conventions."""
    if metric.name.endswith("_total"):
        metric.metric_type = MetricType.COUNTER
    if metric.name.endswith(("_info", "_labels")):
        metric.metric_type = MetricType.INFO
    if metric.metric_type == MetricType.HISTOGRAM and metric.name.endswith(("_sum", "_count")):
        metric.metric_type = MetricType.COUNTER


def guess_metric_unit(metric: Metric) -> None:
    """Set the unit from the first unit marker found in the metric name."""
    for marker, unit in _UNIT_MARKERS:
        if marker in metric.name:
            metric.unit = unit
            return


def drop_created_metrics(metrics: MutableMapping[str, Metric]) -> None:
    """Remove ``_created`` series that belong to another metric present."""
    for name in list(metrics):
        base = name.removesuffix("_created")
        if base == name:
            continue
        if any(candidate in metrics for candidate in (base, base + "_total", base + "_count")):
            del metrics[name]


def process_metrics(metrics: MutableMapping[str, Metric]) -> None:
    """Prepare metrics for dashboard generation, in place."""
    drop_created_metrics(metrics)
    for metric in metrics.values():
        guess_metric_unit(metric)
        guess_metric_type(metric)
        try:
            metric.config = load_config_from_help(metric.help)
        except MetricConfigError as exc:
            raise MetricConfigError(f"failed to parse autograf config in metric HELP: {exc}") from exc
        metric.threshold = metric.config.threshold_metric()