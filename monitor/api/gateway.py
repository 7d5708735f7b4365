"""Gateway client: health probes, Prometheus counters and host resource gauges."""
import logging

import psutil
from prometheus_client.parser import text_string_to_metric_families

from models.metrics import GatewayHealth, MetricSample, ServiceHealth
from utils.constants import now_ms
from utils.http_client import HTTPClient, APIError

logger = logging.getLogger("gwmonitor.gateway")

CORE_HEALTH_PATH = "/ar-io/healthcheck"
OBSERVER_HEALTH_PATH = "/ar-io/observer/healthcheck"
INFO_PATH = "/ar-io/info"
DEFAULT_METRICS_PATH = "/ar-io/__gateway_metrics"


def parse_prometheus(text):
    """Flatten exposition text into {sample_name: first value} plus labeled samples."""
    values = {}
    labeled = []
    for family in text_string_to_metric_families(text):
        for sample in family.samples:
            values.setdefault(sample.name, sample.value)
            if sample.labels:
                labeled.append(sample)
    return values, labeled


def _labeled_value(labeled, name, /, **labels):
    for sample in labeled:
        if sample.name == name and all(sample.labels.get(k) == v for k, v in labels.items()):
            return sample.value
    return None


def _positive_int(value):
    return int(value) if value else None


class GatewayClient:
    """Reads everything the resource and health checks need from one gateway.

    Never raises for partial data: unavailable values stay None.
    """

    def __init__(self, core_url, observer_url, metrics_path=DEFAULT_METRICS_PATH,
                 timeout=5, max_retries=1, disk_path="/"):
        self.core = HTTPClient(core_url, timeout=timeout, max_retries=max_retries, source="core")
        self.observer = HTTPClient(observer_url, timeout=timeout, max_retries=max_retries, source="observer")
        self.metrics_path = metrics_path
        self.disk_path = disk_path

    @classmethod
    def from_config(cls, config):
        gw = config.get("gateway", {})
        return cls(
            core_url=gw.get("core_url", "http://localhost:4000"),
            observer_url=gw.get("observer_url", "http://localhost:5050"),
            metrics_path=gw.get("metrics_path", DEFAULT_METRICS_PATH),
            timeout=gw.get("request_timeout", 5),
            max_retries=gw.get("max_retries", 1),
        )

    # --- health ---

    def _service_health(self, client, path):
        ok, latency, body, error = client.probe(path)
        uptime = body.get("uptime") if ok and isinstance(body, dict) else None
        return ServiceHealth(is_healthy=ok, response_time_ms=latency, error=error, uptime=uptime)

    def check_health(self):
        return GatewayHealth(
            core=self._service_health(self.core, CORE_HEALTH_PATH),
            observer=self._service_health(self.observer, OBSERVER_HEALTH_PATH),
            timestamp=now_ms(),
        )

    # --- metrics ---

    def get_metrics(self):
        fields = {}
        fields.update(self._prometheus_fields())
        fields.update(self._system_fields())

        network_height = self._network_height()
        fields["current_network_height"] = network_height
        imported = fields.get("last_height_imported")
        if network_height and imported:
            fields["height_difference"] = network_height - imported
        return MetricSample(timestamp=now_ms(), **fields)

    def _prometheus_fields(self):
        try:
            text = self.core.get(self.metrics_path)
        except APIError as e:
            logger.warning(f"Gateway metrics unavailable: {e}")
            return {}
        if not isinstance(text, str):
            logger.warning("Gateway metrics endpoint did not return exposition text")
            return {}
        try:
            raw, labeled = parse_prometheus(text)
        except ValueError as e:
            logger.warning(f"Could not parse gateway metrics: {e}")
            return {}

        hits = raw.get("arns_cache_hit_total") or 0
        misses = raw.get("arns_cache_miss_total") or 0
        hit_rate = hits / (hits + misses) * 100 if hits + misses > 0 else None
        request_counters = [raw[name] for name in ("data_items_indexed_total", "bundles_total") if name in raw]
        requests_total = int(sum(request_counters)) if request_counters else None
        graphql = _labeled_value(labeled, "circuit", name="GraphQLRootTxIndex", event="fire")

        return {
            "last_height_imported": _positive_int(raw.get("last_height_imported")),
            "http_requests_total": requests_total,
            "arns_resolutions": _positive_int(raw.get("arns_resolution_resolver_count")),
            "arns_errors": int(raw["get_data_errors_total"]) if "get_data_errors_total" in raw else None,
            "arns_cache_hit_rate": hit_rate,
            "graphql_requests_total": _positive_int(graphql),
        }

    def _system_fields(self):
        fields = {}
        try:
            fields["cpu_percent"] = psutil.cpu_percent(interval=0.1)
            fields["memory_percent"] = psutil.virtual_memory().percent
        except (psutil.Error, OSError) as e:
            logger.warning(f"CPU/memory gauges unavailable: {e}")
        try:
            fields["disk_percent"] = psutil.disk_usage(self.disk_path).percent
        except OSError as e:
            logger.warning(f"Disk gauge unavailable for {self.disk_path}: {e}")

        ok, _, body, _ = self.core.probe(CORE_HEALTH_PATH)
        if ok and isinstance(body, dict) and body.get("uptime") is not None:
            fields["uptime_seconds"] = int(body["uptime"])
        return fields

    def _network_height(self):
        try:
            info = self.core.get(INFO_PATH)
        except APIError as e:
            logger.debug(f"Network height unavailable: {e}")
            return None
        if isinstance(info, dict) and info.get("height"):
            return int(info["height"])
        return None

    def get_info(self):
        """Raw /ar-io/info payload, or {} when unreachable."""
        try:
            info = self.core.get(INFO_PATH)
        except APIError as e:
            logger.warning(f"Gateway info unavailable: {e}")
            return {}
        return info if isinstance(info, dict) else {}

    def close(self):
        self.core.close()
        self.observer.close()
