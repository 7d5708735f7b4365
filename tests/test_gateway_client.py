"""Tests for the gateway and observer API clients."""
import pytest
import requests
from unittest.mock import MagicMock, patch

from monitor.api.gateway import CORE_HEALTH_PATH, INFO_PATH, GatewayClient, parse_prometheus
from monitor.api.observer import ObserverClient
from utils.http_client import APIError, HTTPClient

METRICS_TEXT = """\
# HELP last_height_imported Last block height imported
# TYPE last_height_imported gauge
last_height_imported 1499900
# TYPE arns_cache_hit counter
arns_cache_hit_total 300
# TYPE arns_cache_miss counter
arns_cache_miss_total 100
# TYPE data_items_indexed counter
data_items_indexed_total 5000
# TYPE bundles counter
bundles_total 250
# TYPE get_data_errors counter
get_data_errors_total 7
# TYPE circuit counter
circuit{name="GraphQLRootTxIndex",event="success"} 40
circuit{name="GraphQLRootTxIndex",event="fire",release="55-pre"} 12
"""


def test_parse_prometheus():
    values, labeled = parse_prometheus(METRICS_TEXT)
    assert values["last_height_imported"] == 1499900
    assert values["arns_cache_hit_total"] == 300
    fire = [s for s in labeled if s.labels.get("event") == "fire"]
    assert fire[0].value == 12


@pytest.fixture
def psutil_gauges():
    with patch("psutil.cpu_percent", return_value=12.5), \
         patch("psutil.virtual_memory", return_value=MagicMock(percent=40.0)), \
         patch("psutil.disk_usage", return_value=MagicMock(percent=70.0)):
        yield


def _client(metrics=METRICS_TEXT, info=None, probe=(True, 15, {"uptime": 3600.7}, None)):
    client = GatewayClient("http://core", "http://observer", metrics_path="/metrics")
    client.core = MagicMock()

    def get(path):
        if path == "/metrics":
            if isinstance(metrics, Exception):
                raise metrics
            return metrics
        if path == INFO_PATH:
            if info is None:
                raise APIError("HTTP 404", status_code=404)
            return info
        raise AssertionError(path)

    client.core.get.side_effect = get
    client.core.probe.return_value = probe
    return client


def test_get_metrics_combines_sources(psutil_gauges):
    sample = _client(info={"height": 1500000}).get_metrics()
    assert sample.cpu_percent == 12.5
    assert sample.memory_percent == 40.0
    assert sample.disk_percent == 70.0
    assert sample.uptime_seconds == 3600
    assert sample.last_height_imported == 1499900
    assert sample.current_network_height == 1500000
    assert sample.height_difference == 100
    assert sample.arns_cache_hit_rate == 75.0
    assert sample.http_requests_total == 5250
    assert sample.arns_errors == 7
    assert sample.graphql_requests_total == 12


def test_get_metrics_tolerates_missing_endpoints(psutil_gauges):
    client = _client(metrics=APIError("HTTP 503", status_code=503), probe=(False, 5000, None, "timeout"))
    sample = client.get_metrics()
    assert sample.cpu_percent == 12.5
    assert sample.http_requests_total is None
    assert sample.arns_errors is None
    assert sample.arns_cache_hit_rate is None
    assert sample.current_network_height is None
    assert sample.height_difference is None
    assert sample.uptime_seconds is None


def test_get_metrics_disk_failure(psutil_gauges):
    with patch("psutil.disk_usage", side_effect=FileNotFoundError("/data")):
        sample = _client().get_metrics()
    assert sample.disk_percent is None
    assert sample.memory_percent == 40.0


def test_get_metrics_keeps_zero_request_counters(psutil_gauges):
    text = "data_items_indexed_total 0\nbundles_total 0\nget_data_errors_total 0\n"
    sample = _client(metrics=text).get_metrics()
    assert sample.http_requests_total == 0
    assert sample.arns_errors == 0


def test_get_metrics_request_total_from_single_counter(psutil_gauges):
    sample = _client(metrics="bundles_total 250\n").get_metrics()
    assert sample.http_requests_total == 250


def test_check_health():
    client = GatewayClient("http://core", "http://observer")
    client.core = MagicMock()
    client.observer = MagicMock()
    client.core.probe.return_value = (True, 42, {"uptime": 10}, None)
    client.observer.probe.return_value = (False, 5000, None, "HTTP 502")

    health = client.check_health()
    client.core.probe.assert_called_with(CORE_HEALTH_PATH)
    assert health.core.is_healthy
    assert health.core.uptime == 10
    assert not health.observer.is_healthy
    assert health.observer.error == "HTTP 502"
    assert health.overall == "degraded"


def test_from_config():
    client = GatewayClient.from_config({"gateway": {"core_url": "http://gw:4000/", "request_timeout": 3}})
    assert client.core.base_url == "http://gw:4000"
    assert client.core.timeout == 3


# ── HTTPClient ───────────────────────────────────────

def _response(status, json_data=None, text=""):
    resp = MagicMock(status_code=status, text=text, headers={})
    if json_data is None:
        resp.json.side_effect = ValueError("not json")
    else:
        resp.json.return_value = json_data
    return resp


def test_http_client_returns_text_for_non_json():
    client = HTTPClient("http://core", max_retries=0)
    with patch.object(client.session, "request", return_value=_response(200, text="metric 1")):
        assert client.get("/metrics") == "metric 1"


def test_http_client_does_not_retry_404():
    client = HTTPClient("http://core", max_retries=3)
    with patch.object(client.session, "request", return_value=_response(404)) as req:
        with pytest.raises(APIError) as exc:
            client.get("/missing")
    assert exc.value.status_code == 404
    assert req.call_count == 1


def test_http_client_retries_connection_errors():
    client = HTTPClient("http://core", max_retries=1)
    with patch.object(client.session, "request",
                      side_effect=[requests.ConnectionError("refused"), _response(200, {"ok": 1})]), \
         patch("utils.http_client.time.sleep"):
        assert client.get("/x") == {"ok": 1}


def test_probe_reports_errors():
    client = HTTPClient("http://core")
    with patch.object(client.session, "get", side_effect=requests.Timeout("slow")):
        ok, latency, body, error = client.probe("/ar-io/healthcheck")
    assert not ok
    assert body is None
    assert "slow" in error


# ── ObserverClient ───────────────────────────────────

ADDRESS = "gw-address-1"

CURRENT_EPOCH = {
    "epochIndex": 42,
    "startTimestamp": 1_709_200_000_000,
    "endTimestamp": 1_709_286_400_000,
    "prescribedNames": ["ardrive", "arweave"],
    "prescribedObservers": [
        {"gatewayAddress": "other", "normalizedCompositeWeight": 0.2},
        {"gatewayAddress": ADDRESS, "normalizedCompositeWeight": 0.73},
    ],
    "observations": {"reports": {ADDRESS: "tx-123"}, "failureSummaries": {"bad-gw": ["other"]}},
}


def _observer(network_responses):
    client = ObserverClient("http://observer", ADDRESS, network_url="http://network")
    client.local = MagicMock()
    client.local.get.return_value = {"message": "Report pending"}
    client.network = MagicMock()
    client.network.get.side_effect = lambda path: network_responses[path]
    return client


def test_observer_status_from_network():
    status = _observer({"/epochs/current": CURRENT_EPOCH}).check_observer_status()
    assert status.epoch_index == 42
    assert status.is_selected is True
    assert status.observer_weight == 0.73
    assert status.has_submitted_report is True
    assert status.report_tx_id == "tx-123"
    assert status.prescribed_names == ["ardrive", "arweave"]


def test_observer_not_prescribed():
    epoch = dict(CURRENT_EPOCH, prescribedObservers=[{"gatewayAddress": "other"}],
                 observations={"reports": {}})
    status = _observer({"/epochs/current": epoch}).check_observer_status()
    assert status.is_selected is False
    assert status.observer_weight is None
    assert status.has_submitted_report is False


def test_observer_status_without_network():
    client = ObserverClient("http://observer", ADDRESS)
    client.local = MagicMock()
    client.local.get.return_value = {"epochIndex": 7, "epochEndTimestamp": 123}
    status = client.check_observer_status()
    assert status.epoch_index == 7
    assert status.epoch_end_timestamp == 123
    assert status.is_selected is None


def test_epoch_stats():
    client = _observer({
        "/epochs/42": CURRENT_EPOCH,
        "/epochs/42/distributions": {
            "totalEligibleGateways": 4,
            "totalEligibleRewards": 2_000_000_000,
            "totalDistributedRewards": 1_500_000_000,
            "distributedTimestamp": 1_709_300_000_000,
        },
    })
    stats = client.get_epoch_stats(42)
    assert stats.observation_count == 1
    assert stats.total_observers == 2
    assert stats.observation_percentage == 50.0
    assert stats.total_eligible_rewards == 2000.0
    assert stats.distribution_percentage == 75.0
    assert stats.gateways_failed == 1
    assert stats.gateways_passed == 3
    assert stats.pass_percentage == 75.0
    assert stats.is_distributed


def test_epoch_stats_propagates_api_errors():
    client = ObserverClient("http://observer", ADDRESS, network_url="http://network")
    client.network = MagicMock()
    client.network.get.side_effect = APIError("HTTP 500", status_code=500)
    with pytest.raises(APIError):
        client.get_epoch_stats(1)


def test_epoch_stats_rejects_non_json_body():
    client = _observer({"/epochs/11": "<html>bad gateway</html>"})
    with pytest.raises(APIError):
        client.get_epoch_stats(11)


def test_epoch_stats_tolerates_malformed_fields():
    epoch = dict(CURRENT_EPOCH, prescribedObservers="n/a",
                 observations={"reports": 5, "failureSummaries": "none"})
    client = _observer({
        "/epochs/42": epoch,
        "/epochs/42/distributions": "<html>bad gateway</html>",
    })
    stats = client.get_epoch_stats(42)
    assert stats.epoch_index == 42
    assert stats.observation_count is None
    assert stats.total_observers is None
    assert stats.gateways_failed is None
    assert stats.total_eligible_gateways is None
    assert stats.is_distributed is False


def test_observer_status_ignores_non_json_body():
    status = _observer({"/epochs/current": "<html>bad gateway</html>"}).check_observer_status()
    assert status.epoch_index is None
    assert status.is_selected is None


def test_observer_status_tolerates_malformed_fields():
    epoch = dict(CURRENT_EPOCH, prescribedObservers=["other", {"gatewayAddress": ADDRESS}],
                 observations="unavailable")
    status = _observer({"/epochs/current": epoch}).check_observer_status()
    assert status.epoch_index == 42
    assert status.is_selected is True
    assert status.has_submitted_report is None
