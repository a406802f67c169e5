"""Grafana panel definitions for single metrics."""

from __future__ import annotations

import copy
import re
from collections.abc import Mapping
from typing import Any

from autograf.metric import Metric, MetricType
from autograf.promql import LimitType, threshold_query

RATE_INTERVAL = "$__rate_interval"

_TIME_SERIES_FORMAT = "time_series"
_HEATMAP_FORMAT = "heatmap"
_TABLE_FORMAT = "table"
_PANEL_HEIGHT_COEFFICIENT = 1
_FULL_WIDTH = 24

_BRACED = re.compile(r"\{[^{}]*\}")

_SCALES: dict[str, dict[str, Any]] = {
    "linear": {"type": "linear"},
    "log2": {"type": "log", "log": 2},
    "log10": {"type": "log", "log": 10},
}

_LIMIT_PROPERTIES: tuple[tuple[str, Any], ...] = (
    ("custom.fillOpacity", 0),
    ("color", {"mode": "fixed", "fixedColor": "red"}),
    ("custom.lineWidth", 3),
    ("custom.lineStyle", {"fill": "dash"}),
)


def panel_name_from_query(query: str) -> str:
    """Strip every label selector from a query to get a readable title."""
    return _BRACED.sub("", query)


def _grid_pos(width: int, height: int) -> dict[str, int]:
    return {"h": height, "w": width, "x": 0, "y": 0}


def _target(
    ref_id: str,
    expr: str,
    query_format: str,
    *,
    datasource: Mapping[str, Any] | None = None,
    instant: bool = False,
    legend_format: str | None = None,
) -> dict[str, Any]:
    target: dict[str, Any] = {}
    if datasource is not None:
        target["datasource"] = dict(datasource)
    target["refId"] = ref_id
    target["expr"] = expr
    if instant:
        target["instant"] = True
    else:
        target["range"] = True
    target["format"] = query_format
    if legend_format is not None:
        target["legendFormat"] = legend_format
    return target


def _add_limit_target(
    panel: dict[str, Any], limit_type: LimitType, metric_name: str, selector: str
) -> None:
    panel["targets"].append(
        _target(
            metric_name,
            threshold_query(metric_name, selector, limit_type),
            _TIME_SERIES_FORMAT,
            legend_format=f"{limit_type} limit",
        )
    )
    panel["fieldConfig"]["overrides"].append(
        {
            "matcher": {"id": "byName", "options": metric_name},
            "properties": [{"id": key, "value": copy.deepcopy(value)} for key, value in _LIMIT_PROPERTIES],
        }
    )


def time_series_panel(
    datasource: Mapping[str, Any], selector: str, metric: Metric
) -> dict[str, Any]:
    """Build a time series panel charting the metric."""
    metric = copy.deepcopy(metric)
    query = metric.promql_query(selector, RATE_INTERVAL)
    config = metric.config
    custom: dict[str, Any] = {
        "lineWidth": float(config.line_width),
        "lineStyle": {"fill": "solid"},
        "drawStyle": "line",
        "showPoints": "auto",
        "pointSize": 1,
    }
    if config.stack:
        custom["stacking"] = {"mode": "normal"}
    scale = _SCALES.get(config.scale)
    if scale is not None:
        custom["scaleDistribution"] = dict(scale)

    panel: dict[str, Any] = {
        "type": "timeseries",
        "title": panel_name_from_query(query),
        "description": metric.help,
        "datasource": dict(datasource),
        "gridPos": _grid_pos(config.width, config.height * _PANEL_HEIGHT_COEFFICIENT),
        "options": {
            "legend": {
                "displayMode": "table",
                "placement": "bottom",
                "calcs": list(config.legend_calcs),
                "showLegend": False,
            },
            "tooltip": {"mode": "single", "sort": "desc"},
        },
        "fieldConfig": {
            "defaults": {"unit": str(metric.unit), "custom": custom},
            "overrides": [],
        },
        "targets": [
            _target(metric.name, query, _TIME_SERIES_FORMAT, datasource=datasource),
        ],
    }
    if config.max_from_metric:
        _add_limit_target(panel, LimitType.MAX, config.max_from_metric, selector)
    if config.min_from_metric:
        _add_limit_target(panel, LimitType.MIN, config.min_from_metric, selector)
    return panel


def heatmap_panel(datasource: Mapping[str, Any], selector: str, metric: Metric) -> dict[str, Any]:
    """Build a heatmap panel for a histogram metric."""
    metric = copy.deepcopy(metric)
    query = metric.promql_query(selector, RATE_INTERVAL)
    unit = str(metric.unit)
    return {
        "type": "heatmap",
        "title": panel_name_from_query(query),
        "description": metric.help,
        "datasource": dict(datasource),
        "gridPos": _grid_pos(
            metric.config.width, metric.config.height * _PANEL_HEIGHT_COEFFICIENT
        ),
        "options": {
            "calculate": False,
            "cellGap": 1,
            "cellValues": {"unit": unit},
            "color": {
                "mode": "opacity",
                "exponent": 0.3,
                "steps": 20,
                "fill": "super-light-blue",
            },
            "legend": {"show": True},
            "tooltip": {"yHistogram": True, "showColorScale": True},
            "yAxis": {"axisPlacement": "left", "unit": unit},
        },
        "fieldConfig": {"defaults": {"unit": unit}, "overrides": []},
        "targets": [
            _target(
                metric.name,
                query,
                _HEATMAP_FORMAT,
                datasource=datasource,
                legend_format="{{le}}",
            ),
        ],
    }


def info_panel(datasource: Mapping[str, Any], selector: str, metric: Metric) -> dict[str, Any]:
    """Build a full-width table panel listing the labels of an info metric."""
    metric = copy.deepcopy(metric)
    query = metric.promql_query(selector, RATE_INTERVAL)
    return {
        "type": "table",
        "description": metric.help,
        "gridPos": _grid_pos(_FULL_WIDTH, metric.config.height * _PANEL_HEIGHT_COEFFICIENT),
        "fieldConfig": {
            "defaults": {"displayName": panel_name_from_query(metric.name)},
            "overrides": [
                {
                    "matcher": {"id": "byRegexp", "options": "(__name__|Time|Value)"},
                    "properties": [{"id": "custom.hidden", "value": True}],
                }
            ],
        },
        "targets": [
            _target(metric.name, query, _TABLE_FORMAT, datasource=datasource, instant=True),
        ],
    }


def build_panel(
    datasource: Mapping[str, Any], selector: str, metric: Metric
) -> tuple[dict[str, Any], bool]:
    """Build the panel suited to the metric type.

    Returns the panel and whether it is an info panel.
    """
    metric_type = metric.metric_type
    if metric_type in (MetricType.GAUGE, MetricType.COUNTER, MetricType.SUMMARY):
        return time_series_panel(datasource, selector, metric), False
    if metric_type == MetricType.HISTOGRAM:
        return heatmap_panel(datasource, selector, metric), False
    if metric_type == MetricType.INFO:
        return info_panel(datasource, selector, metric), True
    metric = copy.deepcopy(metric)
    metric.help = f"WARNING: Unknown metric type {metric_type}!\n\n{metric.help}"
    return time_series_panel(datasource, selector, metric), False