"""Runtime-adjustable thresholds, intervals and feature flags, persisted in the database."""
import math
import sqlite3
import logging

from models.enums import ConfigPreset

logger = logging.getLogger("gwmonitor.config")

RUNTIME_CONFIG_KEY = "runtime_config"


class ConfigError(ValueError):
    """A runtime configuration value failed validation."""


# key -> (type, minimum, maximum); None means unbounded
SCHEMA = {
    "cpu_threshold": (float, 0, 100),
    "cpu_duration_minutes": (int, 1, 10),
    "memory_threshold": (float, 0, 100),
    "disk_threshold": (float, 0, 100),
    "response_time_threshold": (int, 1, None),
    "latency_threshold": (int, 1, None),
    "error_rate_threshold": (float, 0, 100),
    "error_rate_min_requests": (int, 1, None),
    "block_sync_lag_threshold": (int, 0, None),
    "arns_cache_hit_rate_threshold": (float, 0, 100),
    "not_selected_epochs_threshold": (int, 1, 20),
    "low_observer_weight_threshold": (float, 0, None),
    "alert_cooldown_seconds": (int, 0, None),
    "health_check_interval": (int, 10, None),
    "observer_check_interval": (int, 10, None),
    "resource_check_interval": (int, 10, None),
    "enable_daily_summary": (bool, None, None),
    "enable_weekly_summary": (bool, None, None),
}

DEFAULTS = {
    "cpu_threshold": 80.0,
    "cpu_duration_minutes": 5,
    "memory_threshold": 90.0,
    "disk_threshold": 85.0,
    "response_time_threshold": 2000,
    "latency_threshold": 1000,
    "error_rate_threshold": 5.0,
    "error_rate_min_requests": 100,
    "block_sync_lag_threshold": 100,
    "arns_cache_hit_rate_threshold": 50.0,
    "not_selected_epochs_threshold": 5,
    "low_observer_weight_threshold": 0.5,
    "alert_cooldown_seconds": 600,
    "health_check_interval": 60,
    "observer_check_interval": 300,
    "resource_check_interval": 60,
    "enable_daily_summary": True,
    "enable_weekly_summary": True,
}

PRESETS = {
    ConfigPreset.RELAXED: {
        "cpu_threshold": 90.0,
        "cpu_duration_minutes": 10,
        "memory_threshold": 95.0,
        "disk_threshold": 90.0,
        "response_time_threshold": 10000,
        "latency_threshold": 2000,
        "error_rate_threshold": 10.0,
        "error_rate_min_requests": 50,
        "block_sync_lag_threshold": 2000,
        "arns_cache_hit_rate_threshold": 30.0,
        "alert_cooldown_seconds": 1800,
    },
    ConfigPreset.BALANCED: {
        "cpu_threshold": 80.0,
        "cpu_duration_minutes": 5,
        "memory_threshold": 90.0,
        "disk_threshold": 85.0,
        "response_time_threshold": 5000,
        "latency_threshold": 1000,
        "error_rate_threshold": 5.0,
        "error_rate_min_requests": 100,
        "block_sync_lag_threshold": 1000,
        "arns_cache_hit_rate_threshold": 50.0,
        "alert_cooldown_seconds": 600,
    },
    ConfigPreset.STRICT: {
        "cpu_threshold": 70.0,
        "cpu_duration_minutes": 3,
        "memory_threshold": 85.0,
        "disk_threshold": 80.0,
        "response_time_threshold": 3000,
        "latency_threshold": 500,
        "error_rate_threshold": 2.0,
        "error_rate_min_requests": 150,
        "block_sync_lag_threshold": 500,
        "arns_cache_hit_rate_threshold": 60.0,
        "alert_cooldown_seconds": 300,
    },
}

_TRUE = {"1", "true", "yes", "on", "enabled"}
_FALSE = {"0", "false", "no", "off", "disabled"}


def coerce_value(key, value):
    """Convert and range-check a value for key. Raises ConfigError."""
    if key not in SCHEMA:
        raise ConfigError(f"Unknown config key: {key}")
    kind, lo, hi = SCHEMA[key]

    if kind is bool:
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise ConfigError(f"{key} expects true/false, got {value!r}")

    if isinstance(value, bool):
        raise ConfigError(f"{key} expects a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} expects a number, got {value!r}")
    if math.isnan(number) or math.isinf(number):
        raise ConfigError(f"{key} must be a finite number")
    if kind is int:
        if number != int(number):
            raise ConfigError(f"{key} expects a whole number, got {value!r}")
        number = int(number)
    if lo is not None and number < lo:
        raise ConfigError(f"{key} must be >= {lo}")
    if hi is not None and number > hi:
        raise ConfigError(f"{key} must be <= {hi}")
    return number


def defaults_from_config(config):
    """Build runtime defaults from the static YAML config, falling back to DEFAULTS per key."""
    merged = dict(DEFAULTS)
    if not config:
        return merged
    for section in ("thresholds", "monitor", "reports"):
        for key, value in (config.get(section) or {}).items():
            if key not in SCHEMA:
                continue
            try:
                merged[key] = coerce_value(key, value)
            except ConfigError as e:
                logger.warning(f"Ignoring static config {section}.{key}: {e}")
    return merged


class RuntimeConfig:
    """Named settings readable and writable while the monitor runs.

    Values live in memory and are saved to the database after every change.
    An invalid value never replaces the current one.
    """

    def __init__(self, db=None, defaults=None):
        self.db = db
        self.defaults = dict(defaults or DEFAULTS)
        self._values = dict(self.defaults)
        self._load()

    def _load(self):
        if self.db is None:
            return
        try:
            stored = self.db.get_value(RUNTIME_CONFIG_KEY) or {}
        except sqlite3.Error as e:
            logger.error(f"Failed to load runtime config: {e}")
            return
        if not isinstance(stored, dict):
            logger.warning(f"Ignoring malformed stored runtime config: {stored!r}")
            return
        for key, value in stored.items():
            try:
                self._values[key] = coerce_value(key, value)
            except ConfigError as e:
                logger.warning(f"Skipping stored runtime config entry: {e}")

    def _save(self):
        if self.db is None:
            return
        try:
            self.db.set_value(RUNTIME_CONFIG_KEY, self._values)
        except sqlite3.Error as e:
            logger.error(f"Failed to persist runtime config: {e}")

    def get(self, key):
        return self._values[key]

    def __getitem__(self, key):
        return self._values[key]

    def as_dict(self):
        return dict(self._values)

    def set(self, key, value):
        """Validate and store one value. Returns False and keeps the old value on error."""
        try:
            coerced = coerce_value(key, value)
        except ConfigError as e:
            logger.warning(f"Rejected config change: {e}")
            return False
        old = self._values.get(key)
        self._values[key] = coerced
        self._save()
        logger.info(f"Config {key}: {old} -> {coerced}")
        return True

    def toggle(self, key):
        if SCHEMA.get(key, (None,))[0] is not bool:
            raise ConfigError(f"{key} is not a feature flag")
        self.set(key, not self._values[key])
        return self._values[key]

    def set_preset(self, name):
        preset = PRESETS[ConfigPreset(name)]
        self._values.update(preset)
        self._save()
        logger.info(f"Applied {ConfigPreset(name).value} preset ({len(preset)} keys)")

    def reset(self):
        self._values = dict(self.defaults)
        self._save()
        logger.info("Runtime config reset to defaults")

    def format_for_display(self):
        rows = []
        for key in SCHEMA:
            value = self._values[key]
            marker = "" if value == self.defaults.get(key) else " *"
            rows.append(f"{key}: {value}{marker}")
        return "\n".join(rows)
