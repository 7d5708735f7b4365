"""Observer status and epoch statistics from the local observer and a network JSON API."""
import logging

from models.metrics import EpochStats, ObserverStatus
from utils.http_client import HTTPClient, APIError

logger = logging.getLogger("gwmonitor.observer")

MARIO_PER_ARIO = 1_000_000


def _pct(part, whole):
    return part / whole * 100 if whole else None


def _ario(value):
    return value / MARIO_PER_ARIO if isinstance(value, (int, float)) else None


def _as_dict(value):
    return value if isinstance(value, dict) else {}


def _as_list(value):
    return value if isinstance(value, list) else None


class ObserverClient:
    """Combines the local observer report with network epoch data.

    The network API is optional (``network.api_url``). It must serve
    ``/epochs/current``, ``/epochs/{index}`` and ``/epochs/{index}/distributions``
    as JSON. Without it only what the local report exposes is known.
    """

    def __init__(self, observer_url, address, network_url=None, timeout=10):
        self.address = address
        self.local = HTTPClient(observer_url, timeout=timeout, source="observer")
        self.network = HTTPClient(network_url, timeout=timeout, source="network") if network_url else None

    @classmethod
    def from_config(cls, config):
        gw = config.get("gateway", {})
        net = config.get("network", {})
        return cls(
            observer_url=gw.get("observer_url", "http://localhost:5050"),
            address=gw.get("address", ""),
            network_url=net.get("api_url") or None,
            timeout=net.get("request_timeout", 10),
        )

    def get_local_report(self):
        """Current report from the observer service, None when pending or unreachable."""
        if not self.address:
            return None
        try:
            data = self.local.get(f"/ar-io/observer/reports/{self.address}")
        except APIError as e:
            logger.debug(f"Local observer report unavailable: {e}")
            return None
        if not isinstance(data, dict) or data.get("message") == "Report pending":
            return None
        return data

    def check_observer_status(self):
        report = self.get_local_report() or {}
        status = ObserverStatus(
            epoch_index=report.get("epochIndex"),
            epoch_start_timestamp=report.get("epochStartTimestamp"),
            epoch_end_timestamp=report.get("epochEndTimestamp"),
        )
        if self.network is None or not self.address:
            return status

        try:
            epoch = self.network.get("/epochs/current")
        except APIError as e:
            logger.warning(f"Network epoch data unavailable: {e}")
            return status
        if not isinstance(epoch, dict):
            return status

        status.epoch_index = epoch.get("epochIndex", status.epoch_index)
        status.epoch_start_timestamp = epoch.get("startTimestamp") or status.epoch_start_timestamp
        status.epoch_end_timestamp = epoch.get("endTimestamp") or status.epoch_end_timestamp
        status.prescribed_names = epoch.get("prescribedNames") or []

        observers = _as_list(epoch.get("prescribedObservers"))
        if observers is not None:
            mine = next((o for o in observers
                         if isinstance(o, dict) and o.get("gatewayAddress") == self.address), None)
            status.is_selected = mine is not None
            if mine is not None:
                status.observer_weight = mine.get("normalizedCompositeWeight")

        reports = _as_dict(epoch.get("observations")).get("reports")
        if isinstance(reports, dict):
            status.report_tx_id = reports.get(self.address)
            status.has_submitted_report = bool(status.report_tx_id)
        return status

    def get_epoch_stats(self, epoch_index):
        """Reward and observation totals for an epoch. Raises APIError if the network API fails."""
        if self.network is None:
            return EpochStats(epoch_index=epoch_index)

        epoch = self.network.get(f"/epochs/{epoch_index}")
        if not isinstance(epoch, dict):
            raise APIError(f"Unexpected epoch payload for epoch {epoch_index}", source="network")
        dist = _as_dict(self.network.get(f"/epochs/{epoch_index}/distributions"))

        observations = _as_dict(epoch.get("observations"))
        reports = observations.get("reports")
        if not isinstance(reports, (dict, list)):
            reports = None
        prescribed = _as_list(epoch.get("prescribedObservers"))
        observation_count = len(reports) if reports is not None else None
        total_observers = len(prescribed) if prescribed is not None else None

        failures = observations.get("failureSummaries")
        if not isinstance(failures, (dict, list)):
            failures = None
        eligible_gateways = dist.get("totalEligibleGateways")
        if not isinstance(eligible_gateways, int) or isinstance(eligible_gateways, bool):
            eligible_gateways = None
        failed = len(failures) if failures is not None else None
        passed = eligible_gateways - failed if eligible_gateways is not None and failed is not None else None

        eligible_rewards = _ario(dist.get("totalEligibleRewards"))
        distributed_rewards = _ario(dist.get("totalDistributedRewards"))

        return EpochStats(
            epoch_index=epoch.get("epochIndex", epoch_index),
            start_timestamp=epoch.get("startTimestamp"),
            end_timestamp=epoch.get("endTimestamp"),
            distribution_timestamp=dist.get("distributedTimestamp"),
            total_eligible_gateways=eligible_gateways,
            total_eligible_rewards=eligible_rewards,
            total_distributed_rewards=distributed_rewards,
            distribution_percentage=(
                _pct(distributed_rewards, eligible_rewards) if distributed_rewards is not None else None
            ),
            observation_count=observation_count,
            total_observers=total_observers,
            observation_percentage=(
                _pct(observation_count, total_observers) if observation_count is not None else None
            ),
            gateways_passed=passed,
            gateways_failed=failed,
            pass_percentage=_pct(passed, eligible_gateways) if passed is not None else None,
            fail_percentage=_pct(failed, eligible_gateways) if failed is not None else None,
            is_distributed=bool(dist.get("distributedTimestamp")),
        )

    def close(self):
        self.local.close()
        if self.network is not None:
            self.network.close()
