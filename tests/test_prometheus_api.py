import logging
from urllib.parse import parse_qs

import pytest
import responses

from autograf.prometheus_api import PrometheusClient, PrometheusError, strip_special_suffixes

BASE = "http://prometheus.example.com"
QUERY_URL = BASE + "/api/v1/query"
METADATA_URL = BASE + "/api/v1/metadata"


def _vector(*names, warnings=None):
    body = {
        "status": "success",
        "data": {
            "resultType": "vector",
            "result": [{"metric": {"__name__": n}, "value": [1700000000, "1"]} for n in names],
        },
    }
    if warnings:
        body["warnings"] = warnings
    return body


METADATA = {
    "status": "success",
    "data": {
        "http_requests": [{"type": "counter", "help": "Requests.", "unit": ""}],
        "queue_size": [{"type": "gauge", "help": "Queue.", "unit": ""}],
    },
}


@pytest.mark.parametrize("suffix", ["_total", "_info", "_sum", "_count", "_bucket"])
def test_strip_special_suffixes_removes_suffix(suffix):
    assert strip_special_suffixes("http_requests" + suffix) == "http_requests"


@pytest.mark.parametrize("name", ["queue_size", "_total", "total"])
def test_strip_special_suffixes_keeps_other_names(name):
    assert strip_special_suffixes(name) == name


def test_metrics_for_selector_joins_metadata():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, QUERY_URL, json=_vector("http_requests_total", "queue_size", "mystery"))
        rsps.add(responses.GET, METADATA_URL, json=METADATA)
        metrics = PrometheusClient(BASE).metrics_for_selector('{job="api"}')
    assert set(metrics) == {"http_requests_total", "queue_size", "mystery"}
    assert metrics["http_requests_total"].metric_type == "counter"
    assert metrics["http_requests_total"].help == "Requests."
    assert metrics["queue_size"].metric_type == "gauge"
    assert metrics["mystery"].metric_type == ""
    assert metrics["mystery"].help == ""


def test_query_and_authorization_are_sent():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, QUERY_URL, json=_vector())
        rsps.add(responses.GET, METADATA_URL, json=METADATA)
        result = PrometheusClient(BASE + "/", "token").metrics_for_selector('{job="api"}')
        request = rsps.calls[0].request
        form = parse_qs(request.body)
        assert form["query"] == ['group({job="api"}) by (__name__)']
        assert request.headers["Authorization"] == "Bearer token"
        assert rsps.calls[1].request.headers["Authorization"] == "Bearer token"
    assert result == {}


def test_falls_back_to_get_when_post_is_not_allowed():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, QUERY_URL, status=405)
        rsps.add(responses.GET, QUERY_URL, json=_vector("queue_size"))
        rsps.add(responses.GET, METADATA_URL, json=METADATA)
        metrics = PrometheusClient(BASE).metrics_for_selector("up")
        assert [call.request.method for call in rsps.calls] == ["POST", "GET", "GET"]
    assert metrics["queue_size"].help == "Queue."


def test_error_status_raises():
    body = {"status": "error", "errorType": "bad_data", "error": "parse error"}
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, QUERY_URL, json=body, status=400)
        with pytest.raises(PrometheusError, match="parse error"):
            PrometheusClient(BASE).metrics_for_selector("{")


def test_non_vector_result_raises():
    body = {"status": "success", "data": {"resultType": "matrix", "result": []}}
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, QUERY_URL, json=body)
        with pytest.raises(PrometheusError, match="expected vector"):
            PrometheusClient(BASE).metrics_for_selector("up")


def test_non_json_response_raises():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, QUERY_URL, body="oops", status=500)
        with pytest.raises(PrometheusError, match="500"):
            PrometheusClient(BASE).metrics_for_selector("up")


def test_metadata_error_raises():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, QUERY_URL, json=_vector("queue_size"))
        rsps.add(
            responses.GET,
            METADATA_URL,
            json={"status": "error", "errorType": "internal", "error": "metadata down"},
            status=500,
        )
        with pytest.raises(PrometheusError, match="metadata down"):
            PrometheusClient(BASE).metrics_for_selector("up")


def test_warnings_are_logged(caplog):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, QUERY_URL, json=_vector("queue_size", warnings=["partial data"]))
        rsps.add(responses.GET, METADATA_URL, json=METADATA)
        with caplog.at_level(logging.WARNING):
            metrics = PrometheusClient(BASE).metrics_for_selector("up")
    assert "partial data" in caplog.text
    assert set(metrics) == {"queue_size"}