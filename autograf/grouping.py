"""Grouping of metrics into dashboard rows by their name prefixes."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, field

from autograf.metric import Metric

_MIN_GROUP_SIZE = 3


@dataclass
class PseudoRow:
    """Metrics shown together in one dashboard row."""

    metrics: list[Metric] = field(default_factory=list)


@dataclass
class PseudoDashboard:
    """Dashboard layout independent of any particular dashboard tool."""

    rows: dict[str, PseudoRow] = field(default_factory=dict)

    def add_row_panels(self, row_name: str, metrics: Iterable[Metric]) -> None:
        """Add metrics to a row, creating the row if needed."""
        row = self.rows.get(row_name)
        if row is None:
            self.rows[row_name] = PseudoRow(list(metrics))
        else:
            row.metrics.extend(metrics)

    def to_json(self) -> str:
        """Render the layout as indented JSON."""
        rows = {
            name: {"panels": [asdict(metric) for metric in self.rows[name].metrics]}
            for name in sorted(self.rows)
        }
        return json.dumps({"rows": rows}, indent=2, ensure_ascii=False)

    def __str__(self) -> str:
        return self.to_json()


class _MetricsTree:
    """Prefix tree over underscore-separated metric names."""

    def __init__(self, prefix: str) -> None:
        self.prefix = prefix
        self.metric: Metric | None = None
        self.leafs: dict[str, _MetricsTree] = {}

    def add(self, metric: Metric) -> None:
        stripped = metric.name.removeprefix(self.prefix).removeprefix("_")
        if not stripped:
            self.metric = metric
            return
        head = stripped.split("_", 1)[0]
        leaf = self.leafs.get(head)
        if leaf is None:
            leaf = self.leafs[head] = _MetricsTree(f"{self.prefix}_{head}".removeprefix("_"))
        leaf.add(metric)

    def metrics(self) -> list[Metric]:
        found = [self.metric] if self.metric is not None else []
        for leaf in self.leafs.values():
            if leaf.metric is not None:
                found.append(leaf.metric)
            else:
                found.extend(leaf.metrics())
        return found

    def metric_groups(self) -> dict[str, list[Metric]]:
        others: list[Metric] = []
        groups: dict[str, list[Metric]] = {}
        for leaf in self.leafs.values():
            subtree = leaf.metrics()
            if len(subtree) < _MIN_GROUP_SIZE and self.prefix:
                others.extend(subtree)
            else:
                groups.update(leaf.metric_groups())
        if len(others) == 1:
            groups[others[0].name] = others
        elif others:
            groups[self.prefix] = others
        return groups


def group_into_pseudo_dashboard(metrics: Mapping[str, Metric]) -> PseudoDashboard:
    """Lay metrics out in rows, using configured rows or shared name prefixes."""
    tree = _MetricsTree("")
    dashboard = PseudoDashboard()
    for name in sorted(metrics):
        metric = metrics[name]
        if metric.config.row:
            dashboard.add_row_panels(metric.config.row, [metric])
        else:
            tree.add(metric)
    for row_name, group in tree.metric_groups().items():
        dashboard.add_row_panels(row_name, group)
    return dashboard