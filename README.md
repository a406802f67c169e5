# autograf

Generate a Grafana dashboard from Prometheus metrics. The metrics come either
from an application's `/metrics` output (Prometheus text or OpenMetrics
format) or from a running Prometheus server.

Metrics are grouped into collapsed rows by their shared name prefix. A metric
can also be placed in a row of its own choosing. Each metric gets a panel
suited to its type:

- gauges, counters and summaries get time-series panels
- histograms get heatmaps
- info metrics get tables, placed first in their row

Counters are charted as rates. Time and timestamp metrics are charted as the
age in seconds. Units are guessed from metric names such as `_seconds`,
`_bytes` and `_celsius`.

By default the dashboard JSON is printed to standard output. It can also be
uploaded straight to Grafana.

## Installation

```
pip install .
```

## Usage

From a metrics exposition read on stdin:

```
curl http://app.example.com/metrics | autograf --metrics-file -
```

From a file in OpenMetrics format:

```
autograf --metrics-file metrics.txt --open-metrics-format
```

From a Prometheus instance, uploading the result to Grafana:

```
GRAFANA_TOKEN=token autograf \
    --prometheus-url http://prometheus.example.com \
    --selector '{app="foo"}' \
    --grafana-url http://grafana.example.com
```

Run `autograf --help` for all options:

- `-f, --metrics-file`: file with metrics; `-` reads stdin
- `--open-metrics-format`: the metrics file is in OpenMetrics format
- `-p, --prometheus-url`: Prometheus to query metrics from
- `--prometheus-bearer-token`: bearer token sent to Prometheus
- `-s, --selector`: series selector, such as `{job="foo"}`
- `--grafana-variables`: labels offered as dashboard filters; comma separated and repeatable (default: `job`, `instance`)
- `--grafana-url`: Grafana to upload to; without it the JSON is printed
- `--grafana-folder`: target folder, created if missing (default: `Autograf`)
- `--grafana-dashboard-name`: dashboard title (default: `Autograf dashboard`)
- `--grafana-datasource` (also `--grafana-data-source`): name of the Prometheus datasource in Grafana
- `--open-browser`: open the uploaded dashboard with the system's URL handler
- `-i, --ignore-config`: do not read a config file
- `--debug`: enable debug logging
- `--version`: print the version and exit

Either `--metrics-file` or `--prometheus-url` must be given, on the command
line or in the config file. When a Prometheus URL is used, the tool runs the
query `group(<selector>) by (__name__)` and reads type, help and unit from
the metric metadata endpoint.

Uploading needs a Grafana API token in the `GRAFANA_TOKEN` environment
variable or in the config file. The dashboard UID is a slug of its title, so
uploading again replaces the earlier dashboard. On success the dashboard URL
is printed. The command exits with status 1 on any error.

## Configuration file

Defaults are read from the file named by `AUTOGRAF_CONFIG`. Without that
variable, `~/.autograf.json` is used if it exists, or else
`~/.config/autograf.json`. Options given on the command line take precedence.
Keys match regardless of case. Unknown keys and `null` values are ignored. A
file that cannot be parsed is reported with a warning and then ignored.

```json
{
  "prometheus_url": "http://prometheus.example.com",
  "prometheus_bearer_token": "token",
  "grafana_url": "http://grafana.example.com",
  "grafana_token": "token",
  "grafana_folder": "Autograf",
  "grafana_dashboard_name": "Autograf dashboard",
  "grafana_datasource": "Prometheus",
  "grafana_variables": ["job", "instance"],
  "open_browser": true
}
```

## Per-metric settings

A metric's HELP text can tune its panel. Add ` AUTOGRAF:` followed by a JSON
object:

```
# HELP queue_size Items waiting. AUTOGRAF:{"Row": "queues", "Stack": true, "Width": 12}
```

Keys match regardless of case:

| Key | Meaning | Allowed values | Default |
| --- | --- | --- | --- |
| `Row` | row to place the panel in | any text | grouped by prefix |
| `Aggregation` | aggregation of the query | `avg` `max` `min` `group` `count` `sum` | none |
| `aggregate_by` | labels to aggregate by; needs `Aggregation` | list of labels | empty |
| `Stack` | stack the series | `true`, `false` | `false` |
| `LineWidth` | line thickness | 0 to 10 | 1 |
| `Fill` | fill opacity | 0 to 100 | 1 |
| `Scale` | Y axis scale | `linear` `log2` `log10` | `linear` |
| `legend_position` | legend placement | `bottom` `right` `hide` | `bottom` |
| `legend_calculations` | legend calculations | list | `max`, `avg`, `last` |
| `Width` | panel width | 1 to 12 | 8 |
| `Height` | panel height | 1 to 12 | 5 |
| `max_from_metric` | metric drawn as a max limit line | metric name | none |
| `min_from_metric` | metric drawn as a min limit line | metric name | none |

Unknown keys, wrong types and out-of-range values are errors. A row holding a
single metric is drawn at width 12.

## Library use

```python
from autograf.exposition import parse_metrics_text
from autograf.processor import process_metrics
from autograf.grouping import group_into_pseudo_dashboard
from autograf.dashboard import build_dashboard

with open("metrics.txt", "rb") as handle:
    metrics = parse_metrics_text(handle.read(), open_metrics=False)
process_metrics(metrics)
board = build_dashboard("My dashboard", "Prometheus", "", ["job"],
                        group_into_pseudo_dashboard(metrics))
```

`build_dashboard` returns the dashboard JSON model as a dict. The remaining
modules are:

- `autograf.prometheus_api`: `PrometheusClient.metrics_for_selector`
- `autograf.grafana_client`: `GrafanaClient` with `ensure_folder`, `datasource_uid_by_name` and `upsert_dashboard`
- `autograf.panels`: the single-panel builders
- `autograf.metric`: `Metric`, `MetricConfig` and `load_config_from_help`
- `autograf.promql`: query helpers

## Limitations

- Only classic Prometheus text and OpenMetrics exposition are read; protobuf exposition is not supported.
- Dashboards are only created or overwritten. Nothing is read back from Grafana or deleted.