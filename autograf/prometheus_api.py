"""Discovery of metrics and their metadata from a running Prometheus."""

from __future__ import annotations

import logging
import re
import time
from typing import Any

import requests

from autograf.metric import Metric

_SPECIAL_SUFFIX = re.compile(r"(.+)_(total|info|sum|count|bucket)")


class PrometheusError(RuntimeError):
    """Raised when Prometheus cannot be queried or answers with an error."""


def strip_special_suffixes(metric_name: str) -> str:
    """Drop the conventional series suffix so the metadata name can be found."""
    return _SPECIAL_SUFFIX.sub(r"\1", metric_name)


class PrometheusClient:
    """Minimal client of the Prometheus HTTP API."""

    def __init__(
        self,
        url: str,
        bearer_token: str = "",
        *,
        timeout: float = 30.0,
        session: requests.Session | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.url = url.strip().rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._headers = {"Authorization": f"Bearer {bearer_token}"} if bearer_token else {}
        self._logger = logger or logging.getLogger(__name__)

    def _call(self, method: str, endpoint: str, **kwargs: Any) -> requests.Response:
        try:
            return self._session.request(
                method,
                f"{self.url}/api/v1/{endpoint}",
                headers=self._headers,
                timeout=self.timeout,
                **kwargs,
            )
        except requests.RequestException as exc:
            raise PrometheusError(f"querying Prometheus failed: {exc}") from exc

    @staticmethod
    def _data(response: requests.Response) -> tuple[Any, list[Any]]:
        try:
            body = response.json()
        except ValueError:
            raise PrometheusError(
                f"server returned HTTP status {response.status_code} {response.reason}"
            ) from None
        if not isinstance(body, dict):
            raise PrometheusError("unexpected response from Prometheus")
        if body.get("status") != "success":
            raise PrometheusError(f"{body.get('errorType', 'error')}: {body.get('error', '')}")
        return body.get("data") or {}, body.get("warnings") or []

    def _query(self, query: str) -> list[dict[str, Any]]:
        self._logger.info("querying prometheus: %s", query)
        params = {"query": query, "time": f"{time.time():.3f}"}
        response = self._call("POST", "query", data=params)
        if response.status_code in (405, 501):
            response = self._call("GET", "query", params=params)
        data, warnings = self._data(response)
        if warnings:
            self._logger.warning("encountered warnings while querying Prometheus: %s", warnings)
        result_type = data.get("resultType")
        if result_type != "vector":
            raise PrometheusError(f"unexpected result type {result_type} expected vector")
        return data.get("result") or []

    def metrics_for_selector(self, selector: str) -> dict[str, Metric]:
        """Return the metrics matching a selector, with type, help and unit where known."""
        samples = self._query(f"group({selector}) by (__name__)")
        self._logger.info("querying prometheus metric metadata")
        metadata, _ = self._data(self._call("GET", "metadata"))
        metrics: dict[str, Metric] = {}
        for sample in samples:
            name = (sample.get("metric") or {}).get("__name__", "")
            entries = metadata.get(strip_special_suffixes(name))
            if entries is None:
                entries = metadata.get(name, [])
            metric = Metric(name=name)
            if entries:
                metric.metric_type = entries[0].get("type", "")
                metric.help = entries[0].get("help", "")
                metric.unit = entries[0].get("unit", "")
            metrics[name] = metric
        return metrics