import pytest

from autograf.metric import (
    Metric,
    MetricConfig,
    MetricConfigError,
    MetricType,
    MetricUnit,
    load_config_from_help,
)


@pytest.mark.parametrize(
    ("metric", "expected"),
    [
        (Metric(metric_type=MetricType.GAUGE, name="queue_size"), 'queue_size{foo="bar"}'),
        (
            Metric(metric_type=MetricType.COUNTER, name="counter_total"),
            'rate(counter_total{foo="bar"}[5m])',
        ),
        (
            Metric(metric_type=MetricType.HISTOGRAM, name="histogram_count"),
            'sum(rate(histogram_count{foo="bar"}[5m])) by (le)',
        ),
        (
            Metric(metric_type=MetricType.SUMMARY, name="summary"),
            'sum(summary{foo="bar"}) by (quantile)',
        ),
        (Metric(metric_type=MetricType.INFO, name="app_info"), 'app_info{foo="bar"}'),
        (
            Metric(metric_type=MetricType.GAUGE, name="last_timestamp_seconds"),
            'time() - last_timestamp_seconds{foo="bar"}',
        ),
    ],
    ids=["gauge", "counter", "histogram", "summary", "info", "gauge with time"],
)
def test_promql_query(metric, expected):
    assert metric.promql_query('{foo="bar"}', "5m") == expected


def test_time_gauge_switches_unit_to_seconds():
    metric = Metric(metric_type=MetricType.GAUGE, name="last_timestamp_seconds")
    metric.promql_query("", "5m")
    assert metric.unit == MetricUnit.SECONDS


def test_time_counter_ignores_selector():
    metric = Metric(metric_type=MetricType.COUNTER, name="job_last_seen")
    assert metric.promql_query('{foo="bar"}', "5m") == "time() - job_last_seen"
    assert metric.unit == "s"


def test_plain_string_type_is_understood():
    metric = Metric(metric_type="counter", name="requests_total")
    assert metric.promql_query("", "1m") == "rate(requests_total[1m])"


def test_unknown_type_uses_plain_selector():
    metric = Metric(metric_type="", name="something")
    assert metric.promql_query('{a="b"}', "5m") == 'something{a="b"}'


def test_configured_aggregation_is_applied():
    metric = Metric(
        metric_type=MetricType.GAUGE,
        name="queue_size",
        config=MetricConfig(aggregation="max", aggregate_by=["job"]),
    )
    assert metric.promql_query("", "5m") == "max(queue_size) by (job)"


def test_histogram_keeps_configured_aggregation():
    metric = Metric(
        metric_type=MetricType.HISTOGRAM,
        name="latency_bucket",
        config=MetricConfig(aggregation="avg"),
    )
    assert metric.promql_query("", "5m") == "avg(rate(latency_bucket[5m])) by (le)"


def test_help_without_marker_gives_defaults():
    config = load_config_from_help("Number of requests")
    assert config == MetricConfig(
        line_width=1,
        fill=1,
        scale="linear",
        legend_position="bottom",
        legend_calcs=["max", "avg", "last"],
        width=8,
        height=5,
    )


def test_help_config_overrides_defaults():
    config = load_config_from_help(
        'Requests AUTOGRAF: {"row": "web", "Width": 12, "stack": true, '
        '"aggregation": "sum", "aggregate_by": ["job"], "legend_position": "right"}'
    )
    assert config.row == "web"
    assert config.width == 12
    assert config.stack is True
    assert config.aggregation == "sum"
    assert config.aggregate_by == ["job"]
    assert config.legend_position == "right"
    assert config.height == 5


def test_field_names_match_case_insensitively():
    config = load_config_from_help('x AUTOGRAF: {"LINEWIDTH": 4}')
    assert config.line_width == 4


def test_unknown_field_is_rejected():
    with pytest.raises(MetricConfigError):
        load_config_from_help('x AUTOGRAF: {"colour": "red"}')


def test_invalid_json_is_rejected():
    with pytest.raises(MetricConfigError):
        load_config_from_help("x AUTOGRAF: {not json")


def test_empty_config_is_rejected():
    with pytest.raises(MetricConfigError):
        load_config_from_help("x AUTOGRAF:   ")


@pytest.mark.parametrize(
    "payload",
    [
        '{"width": 13}',
        '{"height": 0}',
        '{"fill": 101}',
        '{"linewidth": 11}',
        '{"scale": "log3"}',
        '{"legend_position": "top"}',
        '{"aggregation": "median"}',
        '{"aggregate_by": ["job"]}',
    ],
)
def test_out_of_range_values_are_rejected(payload):
    with pytest.raises(MetricConfigError):
        load_config_from_help("x AUTOGRAF: " + payload)


@pytest.mark.parametrize(
    "payload",
    ['{"width": "8"}', '{"width": 2.5}', '{"stack": 1}', '{"width": true}', '{"row": 3}'],
)
def test_wrong_types_are_rejected(payload):
    with pytest.raises(MetricConfigError):
        load_config_from_help("x AUTOGRAF: " + payload)


def test_threshold_from_max_metric():
    threshold = MetricConfig(max_from_metric="queue_capacity").threshold_metric()
    assert threshold.name == "queue_capacity"
    assert threshold.config.aggregation == "min"
    assert threshold.config.line_width == 2


def test_threshold_from_min_metric_uses_max_aggregation():
    threshold = MetricConfig(min_from_metric="queue_floor").threshold_metric()
    assert threshold.config.aggregation == "max"


def test_no_threshold_without_limit_metrics():
    assert MetricConfig().threshold_metric() is None