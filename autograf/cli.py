"""Command line entry point generating a Grafana dashboard from Prometheus metrics."""

from __future__ import annotations

import argparse
import json
import logging
import os
import subprocess
import sys
from collections.abc import Sequence
from dataclasses import dataclass, field, fields

from autograf.config import Config, load_config
from autograf.dashboard import build_dashboard
from autograf.exposition import parse_metrics_text
from autograf.grafana_client import GrafanaClient
from autograf.grouping import group_into_pseudo_dashboard
from autograf.metric import Metric
from autograf.processor import process_metrics
from autograf.prometheus_api import PrometheusClient

_VERSION = "dev"
_COMMIT = "none"
_DATE = "unknown"

_PROMETHEUS_TIMEOUT = 30.0
_DEFAULT_FOLDER = "Autograf"
_DEFAULT_DASHBOARD_NAME = "Autograf dashboard"
_DEFAULT_VARIABLES = ("job", "instance")

_logger = logging.getLogger("autograf")

_DESCRIPTION = """
Autograf generates Grafana dashboard from Prometheus metrics either read from a /metrics endpoint or queried from live Prometheus instance.
The dashboard JSON is by default printed to stdout. But can also upload the dashboard directly to your Grafana instance.
You can configure most of the flags using config file. See the docs.

Example from /metrics:
  curl http://app.example.com/metrics | autograf --metrics-file -

Example from Prometheus query:
  GRAFANA_TOKEN=xxx autograf --prometheus-url http://prometheus.example.com --selector '{app="foo"}' --grafana-url http://grafana.example.com
"""


@dataclass
class Options:
    """Everything the command needs to know to generate a dashboard."""

    debug: bool = False
    version: bool = False
    ignore_config: bool = False
    metrics_file: str = ""
    open_metrics_format: bool = False
    prometheus_url: str = ""
    prometheus_bearer_token: str = ""
    selector: str = ""
    grafana_variables: list[str] = field(default_factory=list)
    grafana_url: str = ""
    grafana_folder: str = ""
    grafana_dashboard_name: str = ""
    grafana_datasource: str = ""
    open_browser: bool = False
    grafana_token: str = ""

    def update_from_config(self, config: Config) -> None:
        """Fill options left unset from the config file, then from built-in defaults."""
        if not self.prometheus_url:
            self.prometheus_url = config.prometheus_url
        if not self.prometheus_bearer_token:
            self.prometheus_bearer_token = config.prometheus_bearer_token
        if not self.grafana_url:
            self.grafana_url = config.grafana_url
        if not self.grafana_folder:
            self.grafana_folder = config.grafana_folder or _DEFAULT_FOLDER
        if not self.grafana_dashboard_name:
            self.grafana_dashboard_name = config.grafana_dashboard_name or _DEFAULT_DASHBOARD_NAME
        if not self.grafana_datasource:
            self.grafana_datasource = config.grafana_datasource
        if not self.grafana_token:
            self.grafana_token = config.grafana_token
        if config.open_browser:
            self.open_browser = True
        if not self.grafana_variables:
            self.grafana_variables = list(config.grafana_variables or _DEFAULT_VARIABLES)


def build_parser() -> argparse.ArgumentParser:
    """Create the parser for the command's flags."""
    parser = argparse.ArgumentParser(
        prog="autograf",
        description=_DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="store_true", help="Print Autograf version and exit")
    parser.add_argument(
        "-i", "--ignore-config", action="store_true", help="Ignore any config file"
    )
    parser.add_argument(
        "-f",
        "--metrics-file",
        default="",
        help="File containing the metrics exposed by app (will read stdin if set to - )",
    )
    parser.add_argument(
        "--open-metrics-format",
        action="store_true",
        help="Metrics data are in the application/openmetrics-text format.",
    )
    parser.add_argument(
        "-p", "--prometheus-url", default="", help="URL of Prometheus instance to fetch the metrics from."
    )
    parser.add_argument(
        "--prometheus-bearer-token",
        default="",
        help="Bearer token to use for authentication with Prometheus instance.",
    )
    parser.add_argument(
        "-s", "--selector", default="", help="Selector to filter metrics from the Prometheus instance."
    )
    parser.add_argument(
        "--grafana-variables",
        action="append",
        default=None,
        help="Labels used as a variables for filtering in dashboard (comma separated, repeatable)",
    )
    parser.add_argument(
        "--grafana-url",
        default="",
        help="URL of Grafana to upload the dashboard to, if not specified, dashboard JSON is printed to stdout",
    )
    parser.add_argument("--grafana-folder", default="", help="Name of target Grafana folder")
    parser.add_argument(
        "--grafana-dashboard-name", default="", help="Name of the Grafana dashboard"
    )
    parser.add_argument(
        "--grafana-data-source",
        "--grafana-datasource",
        dest="grafana_datasource",
        default="",
        help="Name of the Grafana datasource to use",
    )
    parser.add_argument(
        "--open-browser",
        action="store_true",
        help="Open the Grafana dashboard automatically in browser",
    )
    return parser


def _options_from_args(args: argparse.Namespace) -> Options:
    values = vars(args)
    variables = [
        item for chunk in values.get("grafana_variables") or [] for item in chunk.split(",") if item
    ]
    options = Options(
        **{f.name: values[f.name] for f in fields(Options) if f.name in values and f.name != "grafana_variables"}
    )
    options.grafana_variables = variables
    return options


def open_in_browser(url: str) -> None:
    """Open the URL with the platform's default handler, without waiting for it."""
    if sys.platform.startswith("linux"):
        command = ["xdg-open", url]
    elif sys.platform == "win32":
        command = ["rundll32", "url.dll,FileProtocolHandler", url]
    elif sys.platform == "darwin":
        command = ["open", url]
    else:
        return
    subprocess.Popen(command)


def _read_metrics(options: Options) -> dict[str, Metric]:
    if options.metrics_file:
        if options.metrics_file == "-":
            data = sys.stdin.buffer.read()
        else:
            with open(options.metrics_file.strip(), "rb") as handle:
                data = handle.read()
        return parse_metrics_text(data, options.open_metrics_format)
    if options.prometheus_url:
        client = PrometheusClient(
            options.prometheus_url.strip(),
            options.prometheus_bearer_token,
            timeout=_PROMETHEUS_TIMEOUT,
            logger=_logger,
        )
        return client.metrics_for_selector(options.selector.strip())
    raise ValueError("at least one of inputs metrics file or Prometheus URL is required")


def run(options: Options) -> None:
    """Generate the dashboard and either upload it to Grafana or print its JSON."""
    metrics = _read_metrics(options)
    process_metrics(metrics)
    pseudo_dashboard = group_into_pseudo_dashboard(metrics)
    dashboard = build_dashboard(
        options.grafana_dashboard_name.strip(),
        options.grafana_datasource.strip(),
        options.selector.strip(),
        list(options.grafana_variables),
        pseudo_dashboard,
    )
    if not options.grafana_url:
        print(json.dumps(dashboard, ensure_ascii=False, separators=(",", ":")))
        return
    if not options.grafana_token:
        raise ValueError("you have to specify the GRAFANA_TOKEN variable")
    client = GrafanaClient(options.grafana_url, options.grafana_token)
    folder_uid = client.ensure_folder(options.grafana_folder.strip())
    # The datasource variable only works when its current value is the datasource UID.
    try:
        datasource_uid = client.datasource_uid_by_name(options.grafana_datasource.strip())
    except RuntimeError as exc:
        raise RuntimeError(f"error getting datasource ID: {exc}") from exc
    for variable in dashboard["templating"]["list"]:
        if variable.get("type") == "datasource":
            variable.setdefault("current", {})["value"] = datasource_uid
    dashboard_url = client.upsert_dashboard(folder_uid, dashboard)
    print("Dashboard successfully generated, see " + dashboard_url)
    if options.open_browser:
        open_in_browser(dashboard_url)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command and return its exit status."""
    options = _options_from_args(build_parser().parse_args(argv))
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if options.debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if options.version:
        print(f"Autograf version: {_VERSION} (commit: {_COMMIT}, date: {_DATE})")
        return 0
    options.grafana_token = os.environ.get("GRAFANA_TOKEN", "")
    if not options.ignore_config:
        options.update_from_config(load_config())
    if not options.prometheus_url and not options.metrics_file:
        _logger.error(
            "Error, at least one of the --prometheus-url or --metrics-file flags have to be set"
        )
        return 1
    try:
        run(options)
    except (OSError, ValueError, RuntimeError) as exc:
        print(f"autograf: error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())