import pytest

from autograf.promql import (
    LimitType,
    aggregate_query,
    metric_with_selector,
    rate_counter_query,
    threshold_query,
)


@pytest.mark.parametrize(
    ("metric", "selector", "expected"),
    [
        ("queue_size", "", "queue_size"),
        ("queue_size", '{foo="bar"}', 'queue_size{foo="bar"}'),
    ],
    ids=["empty selector", "valid selector"],
)
def test_metric_with_selector(metric, selector, expected):
    assert metric_with_selector(metric, selector) == expected


@pytest.mark.parametrize(
    ("query", "aggregation", "aggregate_by", "expected"),
    [
        ("queue_size", "sum", [], "sum(queue_size) by ()"),
        ("queue_size", "avg", ["foo", "bar"], "avg(queue_size) by (foo,bar)"),
    ],
    ids=["empty aggregate_by", "valid aggregate_by"],
)
def test_aggregate_query(query, aggregation, aggregate_by, expected):
    assert aggregate_query(query, aggregation, aggregate_by) == expected


@pytest.mark.parametrize(
    ("query", "range_selector", "expected"),
    [
        ("events_total", "$__range_interval", "rate(events_total[$__range_interval])"),
        ("events_total", "5m", "rate(events_total[5m])"),
    ],
    ids=["variable range", "valid range"],
)
def test_rate_counter_query(query, range_selector, expected):
    assert rate_counter_query(query, range_selector) == expected


def test_threshold_query_max_limit_uses_min():
    assert threshold_query("limit", '{a="b"}', LimitType.MAX) == 'min(limit{a="b"}) by ()'


def test_threshold_query_min_limit_uses_max():
    assert threshold_query("limit", "", LimitType.MIN) == "max(limit) by ()"


def test_threshold_query_accepts_plain_string():
    assert threshold_query("limit", "", "min") == threshold_query("limit", "", LimitType.MIN)