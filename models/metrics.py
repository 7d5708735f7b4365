"""Dataclasses for gateway samples, health and observer/epoch status."""
from dataclasses import dataclass, field, fields, asdict
from typing import Optional

from utils.constants import now_ms


@dataclass(frozen=True)
class MetricSample:
    """One point-in-time reading. None means the value was unavailable this cycle."""
    timestamp: int = field(default_factory=now_ms)
    # Resource gauges
    cpu_percent: Optional[float] = None
    memory_percent: Optional[float] = None
    disk_percent: Optional[float] = None
    uptime_seconds: Optional[int] = None
    # Monotonic counters
    http_requests_total: Optional[int] = None
    arns_resolutions: Optional[int] = None
    arns_errors: Optional[int] = None
    graphql_requests_total: Optional[int] = None
    # Derived gauges
    arns_cache_hit_rate: Optional[float] = None
    average_response_time_ms: Optional[float] = None
    # Block sync
    last_height_imported: Optional[int] = None
    current_network_height: Optional[int] = None
    height_difference: Optional[int] = None
    # Observer
    observer_selected: Optional[bool] = None
    observer_report_submitted: Optional[bool] = None
    observer_weight: Optional[float] = None

    def to_row(self):
        """Flatten into a dict for DB storage (booleans as 0/1, None kept)."""
        row = asdict(self)
        for key in ("observer_selected", "observer_report_submitted"):
            if row[key] is not None:
                row[key] = int(row[key])
        return row

    @classmethod
    def from_row(cls, row):
        """Reconstruct from a DB row, ignoring unknown columns."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in dict(row).items() if k in known}
        for key in ("observer_selected", "observer_report_submitted"):
            if values.get(key) is not None:
                values[key] = bool(values[key])
        return cls(**values)

    def with_observer(self, status):
        """Copy with observer fields taken from an ObserverStatus (if any)."""
        if status is None:
            return self
        data = asdict(self)
        data["observer_selected"] = status.is_selected
        data["observer_report_submitted"] = status.has_submitted_report
        data["observer_weight"] = status.observer_weight
        return MetricSample(**data)


@dataclass
class ServiceHealth:
    is_healthy: bool = False
    response_time_ms: int = 0
    error: Optional[str] = None
    uptime: Optional[float] = None


@dataclass
class GatewayHealth:
    core: ServiceHealth = field(default_factory=ServiceHealth)
    observer: ServiceHealth = field(default_factory=ServiceHealth)
    timestamp: int = field(default_factory=now_ms)

    @property
    def overall(self):
        if self.core.is_healthy and self.observer.is_healthy:
            return "healthy"
        if not self.core.is_healthy and not self.observer.is_healthy:
            return "down"
        return "degraded"


@dataclass
class ObserverStatus:
    """Observer participation for the current epoch. Any field may be unknown."""
    epoch_index: Optional[int] = None
    is_selected: Optional[bool] = None
    has_submitted_report: Optional[bool] = None
    observer_weight: Optional[float] = None
    epoch_start_timestamp: Optional[int] = None
    epoch_end_timestamp: Optional[int] = None
    prescribed_names: list = field(default_factory=list)
    report_tx_id: Optional[str] = None

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_dict(cls, d):
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (d or {}).items() if k in known})


@dataclass
class EpochStats:
    """Reward/observation totals for one epoch. Everything but the index is optional."""
    epoch_index: int
    start_timestamp: Optional[int] = None
    end_timestamp: Optional[int] = None
    distribution_timestamp: Optional[int] = None
    total_eligible_gateways: Optional[int] = None
    total_eligible_rewards: Optional[float] = None
    total_distributed_rewards: Optional[float] = None
    distribution_percentage: Optional[float] = None
    observation_count: Optional[int] = None
    total_observers: Optional[int] = None
    observation_percentage: Optional[float] = None
    gateways_passed: Optional[int] = None
    gateways_failed: Optional[int] = None
    pass_percentage: Optional[float] = None
    fail_percentage: Optional[float] = None
    is_distributed: bool = False


@dataclass(frozen=True)
class DailyAggregate:
    day: str
    avg_cpu: Optional[float]
    avg_memory: Optional[float]
    total_requests: int = 0


@dataclass
class EpochCheckState:
    """Per-epoch observer bookkeeping; in-memory only."""
    epoch_index: int
    was_selected: bool = False
    had_report: bool = False
