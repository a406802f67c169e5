"""Generate Grafana dashboards from Prometheus metrics, on the command line or as a library."""

__version__ = "0.1.0"