"""Data models."""
from models.enums import Severity, SuppressedBy, EpochPhase, ConfigPreset, AlertCategory
from models.metrics import (
    MetricSample, ServiceHealth, GatewayHealth, ObserverStatus, EpochStats,
    DailyAggregate, EpochCheckState,
)
from models.alerts import AlertCandidate, AlertRecord, DispatchOutcome, MuteState
