"""Metric model, per-metric panel configuration and query generation."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from autograf.promql import aggregate_query, metric_with_selector, rate_counter_query


class MetricType(str, Enum):
    """Type of a metric as exposed by Prometheus."""

    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"
    GAUGE_HISTOGRAM = "gaugehistogram"
    SUMMARY = "summary"
    INFO = "info"
    STATESET = "stateset"
    UNKNOWN = "unknown"


class MetricUnit(str, Enum):
    """Grafana unit identifiers used for metric panels."""

    NONE = "none"
    SECONDS = "s"
    BYTES = "decbytes"
    AMPERE = "amp"
    VOLT = "volt"
    HERTZ = "rothz"
    CELSIUS = "celsius"


class MetricConfigError(ValueError):
    """Raised when the configuration embedded in a metric HELP is invalid."""


CONFIG_SEPARATOR = " AUTOGRAF:"

_TIME_METRICS = re.compile(
    r".+(_time|_time_seconds|_timestamp|_timestamp_seconds|_update|_started|_last_seen)$"
)


@dataclass
class MetricConfig:
    """Panel settings for one metric."""

    row: str = ""
    aggregation: str = ""
    aggregate_by: list[str] = field(default_factory=list)
    stack: bool = False
    line_width: int = 0
    fill: int = 0
    scale: str = ""
    legend_position: str = ""
    legend_calcs: list[str] = field(default_factory=list)
    width: int = 0
    height: int = 0
    max_from_metric: str = ""
    min_from_metric: str = ""

    def threshold_metric(self) -> Metric | None:
        """Return the metric drawn as a limit line, if one is configured."""
        if self.max_from_metric:
            aggregation = "min"
        elif self.min_from_metric:
            aggregation = "max"
        else:
            return None
        config = MetricConfig(line_width=2, aggregation=aggregation)
        return Metric(name=self.max_from_metric, config=config)


@dataclass
class Metric:
    """A single metric and everything known about it."""

    name: str = ""
    metric_type: str = ""
    help: str = ""
    unit: str = ""
    comment: str = ""
    config: MetricConfig = field(default_factory=MetricConfig)
    threshold: Metric | None = None

    def promql_query(self, selector: str, range_selector: str) -> str:
        """Build the query that charts this metric, adjusting its unit and aggregation."""
        is_time = _TIME_METRICS.search(self.name) is not None
        query = metric_with_selector(self.name, selector)
        if self.metric_type == MetricType.GAUGE:
            if is_time:
                query = "time() - " + query
                self.unit = MetricUnit.SECONDS
        elif self.metric_type == MetricType.COUNTER:
            if is_time:
                query = "time() - " + self.name
                self.unit = MetricUnit.SECONDS
            else:
                query = rate_counter_query(query, range_selector)
        elif self.metric_type in (MetricType.HISTOGRAM, MetricType.SUMMARY):
            if self.metric_type == MetricType.HISTOGRAM:
                query = rate_counter_query(query, range_selector)
                self.config.aggregate_by.append("le")
            else:
                self.config.aggregate_by.append("quantile")
            self.config.aggregation = self.config.aggregation or "sum"
        if self.config.aggregation:
            query = aggregate_query(query, self.config.aggregation, self.config.aggregate_by)
        return query


# JSON key (matched case-insensitively) -> attribute name and kind.
_FIELDS: dict[str, tuple[str, type]] = {
    "row": ("row", str),
    "aggregation": ("aggregation", str),
    "aggregate_by": ("aggregate_by", list),
    "stack": ("stack", bool),
    "linewidth": ("line_width", int),
    "fill": ("fill", int),
    "scale": ("scale", str),
    "legend_position": ("legend_position", str),
    "legend_calculations": ("legend_calcs", list),
    "width": ("width", int),
    "height": ("height", int),
    "max_from_metric": ("max_from_metric", str),
    "min_from_metric": ("min_from_metric", str),
}
_CHOICES = {
    "scale": ("linear", "log2", "log10"),
    "legend_position": ("bottom", "right", "hide"),
}
_AGGREGATIONS = ("avg", "max", "min", "group", "count", "sum")
_RANGES = {"line_width": (0, 10), "fill": (0, 100), "width": (1, 12), "height": (1, 12)}


def _fail(message: str) -> MetricConfigError:
    return MetricConfigError(f"invalid autograf config: {message}")


def _reject_constant(name: str) -> Any:
    raise _fail(f"unsupported value {name}")


def _convert(key: str, kind: type, value: Any) -> Any:
    if kind is list and isinstance(value, list):
        items = ["" if item is None else item for item in value]
        if all(isinstance(item, str) for item in items):
            return items
    elif isinstance(value, kind) and (kind is bool or not isinstance(value, bool)):
        return value
    raise _fail(f"cannot use {json.dumps(value)} as value of {key!r}")


def _validate(config: MetricConfig, aggregate_by_given: bool) -> None:
    problems = []
    if config.aggregation and config.aggregation not in _AGGREGATIONS:
        problems.append(f"aggregation must be one of {' '.join(_AGGREGATIONS)}")
    if aggregate_by_given and not config.aggregation:
        problems.append("aggregate_by must not be set without aggregation")
    for name, (low, high) in _RANGES.items():
        if not low <= getattr(config, name) <= high:
            problems.append(f"{name} must be between {low} and {high}")
    for name, choices in _CHOICES.items():
        if getattr(config, name) not in choices:
            problems.append(f"{name} must be one of {' '.join(choices)}")
    if problems:
        raise _fail("; ".join(problems))


def load_config_from_help(help_text: str) -> MetricConfig:
    """Read the JSON panel configuration following `` AUTOGRAF:`` in a HELP text."""
    config = MetricConfig(
        line_width=1,
        fill=1,
        scale="linear",
        legend_position="bottom",
        legend_calcs=["max", "avg", "last"],
        width=8,
        height=5,
    )
    parts = help_text.split(CONFIG_SEPARATOR)
    if len(parts) < 2:
        return config
    try:
        data, _ = json.JSONDecoder(parse_constant=_reject_constant).raw_decode(parts[1].strip())
    except json.JSONDecodeError as exc:
        raise _fail(str(exc)) from exc
    if not isinstance(data, dict):
        raise _fail("expected a JSON object")

    aggregate_by_given = False
    for key, value in data.items():
        if key.lower() not in _FIELDS:
            raise _fail(f"unknown field {key!r}")
        attribute, kind = _FIELDS[key.lower()]
        if value is None:
            if kind is list:
                setattr(config, attribute, [])
            converted_given = False
        else:
            setattr(config, attribute, _convert(key, kind, value))
            converted_given = True
        if attribute == "aggregate_by":
            aggregate_by_given = converted_given

    _validate(config, aggregate_by_given)
    return config