"""Enums for severity, dispatch outcomes, epoch phases and config presets."""
from enum import Enum


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class SuppressedBy(str, Enum):
    NONE = "none"
    COOLDOWN = "cooldown"
    GLOBAL_MUTE = "global_mute"
    CATEGORY_MUTE = "category_mute"


class EpochPhase(str, Enum):
    AWAITING_SELECTION_RESULT = "awaiting_selection_result"
    AWAITING_REPORT = "awaiting_report"
    SATISFIED = "satisfied"
    FAILED = "failed"


class ConfigPreset(str, Enum):
    RELAXED = "relaxed"
    BALANCED = "balanced"
    STRICT = "strict"


class AlertCategory(str, Enum):
    RESOURCE_CPU = "resource_cpu"
    RESOURCE_MEMORY = "resource_memory"
    RESOURCE_DISK = "resource_disk"
    RESOURCE_RESPONSE_TIME = "resource_response_time"
    RESOURCE_LATENCY = "resource_latency"
    PERFORMANCE_BLOCK_SYNC = "performance_block_sync"
    PERFORMANCE_ARNS_CACHE = "performance_arns_cache"
    PERFORMANCE_ERROR_RATE = "performance_error_rate"
    OBSERVER_REPORT = "observer_report"
    OBSERVER_REPORT_FAILED = "observer_report_failed"
    OBSERVER_NOT_SELECTED = "observer_not_selected"
    OBSERVER_LOW_WEIGHT = "observer_low_weight"
    EPOCH = "epoch"
    SERVICE_HEALTH = "service_health"
    SYSTEM = "system"
