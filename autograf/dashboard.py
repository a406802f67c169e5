"""Assembly of a complete Grafana dashboard from a pseudo dashboard."""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from autograf.grouping import PseudoDashboard
from autograf.metric import Metric
from autograf.panels import build_panel

_GRID_WIDTH = 24
_MAX_TITLE_CHARS = 150
_SORT_ALPHABETICAL_ASC = 1
_REFRESH_ON_TIME_RANGE_CHANGED = 2
_CURSOR_SYNC_CROSSHAIR = 1
_SCHEMA_VERSION = 39


def selector_with_variables_filter(selector: str, filter_variables: Iterable[str]) -> str:
    """Extend a selector with regex matchers on the dashboard variables."""
    start = "{" if selector == "" else selector.removesuffix("}") + ","
    filters = ",".join(f"{name}=~'${name}'" for name in filter_variables)
    return start + filters + "}"


def label_variable(datasource: Mapping[str, Any], selector: str, name: str) -> dict[str, Any]:
    """Build a multi-value query variable listing the values of a label."""
    return {
        "type": "query",
        "name": name,
        "datasource": dict(datasource),
        "query": f"label_values({selector or 'up'}, {name})",
        "allValue": ".*",
        "includeAll": True,
        "multi": True,
        "sort": _SORT_ALPHABETICAL_ASC,
        "refresh": _REFRESH_ON_TIME_RANGE_CHANGED,
    }


def build_row(
    datasource: Mapping[str, Any], selector: str, name: str, metrics: Sequence[Metric]
) -> dict[str, Any]:
    """Build a collapsed row holding one panel per metric.

    A lone metric is widened to half of the dashboard, which is kept on the metric.
    """
    metric_names: list[str] = []
    title_chars = 0
    trimmed = False
    panels: list[dict[str, Any]] = []
    for metric in metrics:
        short_name = metric.name.removeprefix(name)
        length = len(short_name.encode("utf-8"))
        if title_chars + length < _MAX_TITLE_CHARS:
            metric_names.append(short_name)
            title_chars += length
        else:
            trimmed = True
        if len(metrics) == 1:
            metric.config.width = 12
        panel, is_info = build_panel(datasource, selector, metric)
        if is_info:
            panels.insert(0, panel)
        else:
            panels.append(panel)

    title = name
    if len(metric_names) > 1:
        title = name + " ❯ " + " ❙ ".join(metric_names)
        if trimmed:
            title += " | ..."
    return {"type": "row", "title": title, "collapsed": True, "panels": panels}


class _GridLayout:
    """Places rows and their panels on the dashboard grid, left to right."""

    def __init__(self) -> None:
        self.x = 0
        self.y = 0
        self.last_height = 0

    def place_row(self, row: dict[str, Any]) -> None:
        y = self.y + self.last_height
        row["gridPos"] = {"h": 1, "w": _GRID_WIDTH, "x": 0, "y": y}
        self.x = 0
        self.y = y + 1
        self.last_height = 0
        for panel in row["panels"]:
            self._place_panel(panel)

    def _place_panel(self, panel: dict[str, Any]) -> None:
        pos = panel["gridPos"]
        pos["x"], pos["y"] = self.x, self.y
        if pos["x"] + pos["w"] > _GRID_WIDTH:
            pos["x"] = 0
            pos["y"] = self.y + self.last_height
            self.last_height = pos["h"]
        self.last_height = max(self.last_height, pos["h"])
        self.x = pos["x"] + pos["w"]
        self.y = pos["y"]


def build_dashboard(
    name: str,
    datasource_uid: str,
    selector: str,
    filter_variables: Sequence[str],
    pseudo_dashboard: PseudoDashboard,
) -> dict[str, Any]:
    """Build the dashboard JSON model, with rows in name order."""
    datasource = {"type": "prometheus", "uid": "${datasource}"}
    variables: list[dict[str, Any]] = [
        {
            "type": "datasource",
            "name": "datasource",
            "label": "Datasource",
            "query": "prometheus",
            "current": {"value": datasource_uid, "selected": True},
        }
    ]
    variables.extend(label_variable(datasource, selector, v) for v in filter_variables)

    row_selector = selector_with_variables_filter(selector, filter_variables)
    layout = _GridLayout()
    panels = []
    for row_name in sorted(pseudo_dashboard.rows):
        row = build_row(
            copy.deepcopy(datasource),
            row_selector,
            row_name,
            pseudo_dashboard.rows[row_name].metrics,
        )
        layout.place_row(row)
        panels.append(row)

    return {
        "title": name,
        "editable": True,
        "tags": ["autograf", "generated"],
        "timezone": "browser",
        "graphTooltip": _CURSOR_SYNC_CROSSHAIR,
        "time": {"from": "now-1h", "to": "now"},
        "refresh": "1m",
        "fiscalYearStartMonth": 0,
        "schemaVersion": _SCHEMA_VERSION,
        "templating": {"list": variables},
        "panels": panels,
    }