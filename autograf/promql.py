"""Helpers that assemble PromQL expressions."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum


class LimitType(str, Enum):
    """Kind of limit a threshold series represents."""

    MAX = "max"
    MIN = "min"


def metric_with_selector(metric: str, selector: str) -> str:
    """Append a label selector to a metric name."""
    return f"{metric}{selector}"


def aggregate_query(query: str, aggregation: str, aggregate_by: Iterable[str]) -> str:
    """Wrap a query in an aggregation grouped by the given labels."""
    return f"{aggregation}({query}) by ({','.join(aggregate_by)})"


def rate_counter_query(query: str, range_selector: str) -> str:
    """Wrap a counter query in a rate over the given range."""
    return f"rate({query}[{range_selector}])"


def threshold_query(metric_name: str, selector: str, limit_type: LimitType | str) -> str:
    """Build the query for a limit line: min across series for a max limit, max for a min."""
    aggregation = "max" if limit_type == LimitType.MIN else "min"
    return aggregate_query(metric_with_selector(metric_name, selector), aggregation, [])