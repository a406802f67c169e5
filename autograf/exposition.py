"""Reading metric names, types, help and units from exposition text."""

from __future__ import annotations

import re
from collections.abc import Iterator

from autograf.metric import Metric, MetricType


class ExpositionParseError(ValueError):
    """Raised when metrics text is not valid exposition format."""


_NAME = r"[a-zA-Z_:][a-zA-Z0-9_:]*"
_LABEL = r'[ \t]*[a-zA-Z_][a-zA-Z0-9_]*[ \t]*=[ \t]*"(?:[^"\\\n]|\\.)*"[ \t]*'
_LABELS = rf"\{{(?:{_LABEL}(?:,{_LABEL})*,?)?[ \t]*\}}"
_TEXT_SERIES = re.compile(rf"({_NAME})[ \t]*(?:{_LABELS})?[ \t]+(.*)\Z")
_OPENMETRICS_SERIES = re.compile(rf"({_NAME})(?:{_LABELS})?[ \t]+(.*)\Z")
_METRIC_NAME = re.compile(_NAME)
_TEXT_META = re.compile(r"#[ \t]+(HELP|TYPE)[ \t]+(\S+)(?:[ \t]+(.*))?\Z")
_OPENMETRICS_META = re.compile(r"# (HELP|TYPE|UNIT) (\S+)(?: (.*))?\Z")
_EOF = "# EOF"

_TEXT_TYPES = {
    "counter": MetricType.COUNTER,
    "gauge": MetricType.GAUGE,
    "histogram": MetricType.HISTOGRAM,
    "summary": MetricType.SUMMARY,
    "untyped": MetricType.UNKNOWN,
}
_OPENMETRICS_TYPES = {metric_type.value: metric_type for metric_type in MetricType}


def _error(lineno: int, message: str) -> ExpositionParseError:
    return ExpositionParseError(f"line {lineno}: {message}")


def _unescape_help(text: str, open_metrics: bool) -> str:
    escapes = {"\\": "\\", "n": "\n", **({'"': '"'} if open_metrics else {})}
    return re.sub(r"\\(.)", lambda m: escapes.get(m.group(1), m.group(0)), text)


def _is_number(token: str, integer: bool = False) -> bool:
    try:
        int(token) if integer else float(token)
    except ValueError:
        return False
    return "_" not in token


def _parse_series(line: str, lineno: int, open_metrics: bool) -> str:
    """Validate a sample line and return its metric name."""
    match = (_OPENMETRICS_SERIES if open_metrics else _TEXT_SERIES).match(line)
    if match is None:
        raise _error(lineno, "invalid sample line")
    rest = match.group(2)
    if open_metrics:
        rest = rest.partition(" # ")[0]
    fields = rest.split()
    if not 1 <= len(fields) <= 2:
        raise _error(lineno, "expected a value and an optional timestamp")
    if not _is_number(fields[0]):
        raise _error(lineno, f"invalid value {fields[0]!r}")
    if len(fields) == 2 and not _is_number(fields[1], integer=not open_metrics):
        raise _error(lineno, f"invalid timestamp {fields[1]!r}")
    return match.group(1)


def _entries(text: str, open_metrics: bool) -> Iterator[tuple[str, str, str]]:
    lines = text.split("\n")
    if open_metrics:
        if lines and lines[-1] == "":
            lines.pop()
        if not lines or lines.pop() != _EOF:
            raise ExpositionParseError("data does not end with # EOF")
    for lineno, line in enumerate(lines, 1):
        if not open_metrics:
            line = line.strip(" \t\r")
            if not line:
                continue
        elif not line:
            raise _error(lineno, "unexpected blank line")
        if not line.startswith("#"):
            yield "series", _parse_series(line, lineno, open_metrics), ""
            continue
        if open_metrics and line == _EOF:
            raise _error(lineno, "unexpected data after # EOF")
        match = (_OPENMETRICS_META if open_metrics else _TEXT_META).match(line)
        if match is None:
            if open_metrics:
                raise _error(lineno, f"invalid comment {line!r}")
            continue
        keyword, name, rest = match.group(1), match.group(2), match.group(3) or ""
        if _METRIC_NAME.fullmatch(name) is None:
            raise _error(lineno, f"invalid metric name {name!r}")
        if keyword == "HELP":
            yield "help", name, _unescape_help(rest, open_metrics)
        elif keyword == "UNIT":
            if rest and not name.endswith(rest):
                raise _error(lineno, f"unit {rest!r} not a suffix of metric {name!r}")
            yield "unit", name, rest
        else:
            types = _OPENMETRICS_TYPES if open_metrics else _TEXT_TYPES
            metric_type = types.get(rest if open_metrics else rest.strip())
            if metric_type is None:
                raise _error(lineno, f"invalid metric type {rest!r}")
            yield "type", name, metric_type


def _merge(metrics: dict[str, Metric], name: str, **fields: str) -> None:
    existing = metrics.get(name)
    if existing is None:
        metrics[name] = Metric(name=name, **fields)
        return
    for key, value in fields.items():
        if value:
            setattr(existing, key, value)


def parse_metrics_text(text: str | bytes, open_metrics: bool = False) -> dict[str, Metric]:
    """Collect the metrics described by Prometheus or OpenMetrics exposition text.

    Histograms are replaced by their ``_bucket``, ``_sum`` and ``_count`` series.
    """
    if isinstance(text, bytes):
        try:
            text = text.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ExpositionParseError(f"metrics text is not valid UTF-8: {exc}") from exc
    metrics: dict[str, Metric] = {}
    histograms: list[str] = []
    for kind, name, value in _entries(text, open_metrics):
        if kind == "type":
            if value == MetricType.HISTOGRAM:
                histograms.append(name)
            _merge(metrics, name, metric_type=value)
        elif kind == "help":
            _merge(metrics, name, help=value)
        elif kind == "unit":
            _merge(metrics, name, unit=value)
        else:
            _merge(metrics, name)
    for name in histograms:
        base = metrics.pop(name, None)
        if base is None:
            continue
        for suffix in ("_bucket", "_sum", "_count"):
            _merge(
                metrics,
                base.name + suffix,
                metric_type=MetricType.HISTOGRAM,
                help=base.help,
                unit=base.unit,
            )
    metrics.pop("", None)
    return metrics