"""Configuration management."""
import os
import yaml
from pathlib import Path

_config = None
_DEFAULT_CONFIG = Path(__file__).parent / "default_config.yaml"

ENV_OVERRIDES = {
    "TELEGRAM_BOT_TOKEN": ("telegram", "bot_token"),
    "TELEGRAM_CHAT_ID": ("telegram", "chat_id"),
    "GATEWAY_CORE_URL": ("gateway", "core_url"),
    "GATEWAY_OBSERVER_URL": ("gateway", "observer_url"),
    "GATEWAY_ADDRESS": ("gateway", "address"),
    "NETWORK_API_URL": ("network", "api_url"),
    "GW_MONITOR_DB_PATH": ("database", "path"),
    "GW_MONITOR_LOG_LEVEL": ("logging", "level"),
    "GW_MONITOR_LOG_FILE": ("logging", "file"),
    "CPU_THRESHOLD": ("thresholds", "cpu_threshold"),
    "MEMORY_THRESHOLD": ("thresholds", "memory_threshold"),
    "DISK_THRESHOLD": ("thresholds", "disk_threshold"),
    "RESPONSE_TIME_THRESHOLD": ("thresholds", "response_time_threshold"),
    "ALERT_COOLDOWN_SECONDS": ("thresholds", "alert_cooldown_seconds"),
    "HEALTH_CHECK_INTERVAL": ("monitor", "health_check_interval"),
    "OBSERVER_CHECK_INTERVAL": ("monitor", "observer_check_interval"),
    "DAILY_SUMMARY_TIME": ("reports", "daily_summary_time"),
}

# Keys whose env value must stay a string even when it looks numeric
STRING_KEYS = {"chat_id", "bot_token", "address", "daily_summary_time"}


def load_config(path=None):
    """Load config from YAML, merging defaults with optional overrides."""
    global _config

    with open(_DEFAULT_CONFIG) as f:
        config = yaml.safe_load(f)

    if path and Path(path).exists():
        with open(path) as f:
            overrides = yaml.safe_load(f) or {}
        config = _deep_merge(config, overrides)

    for env_key, config_path in ENV_OVERRIDES.items():
        val = os.environ.get(env_key)
        if val:
            d = config
            for k in config_path[:-1]:
                d = d.setdefault(k, {})
            d[config_path[-1]] = _coerce(config_path[-1], val)

    # Supplying both telegram credentials through the environment enables the channel
    if os.environ.get("TELEGRAM_BOT_TOKEN") and os.environ.get("TELEGRAM_CHAT_ID"):
        config["telegram"]["enabled"] = True

    _validate_config(config)
    _config = config
    return config


def get_config():
    """Return cached config, loading defaults if needed."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def _coerce(key, val):
    if key in STRING_KEYS:
        return val
    for cast in (int, float):
        try:
            return cast(val)
        except ValueError:
            continue
    return val


def _deep_merge(base, override):
    """Recursively merge override into base dict."""
    result = base.copy()
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _validate_config(config):
    """Basic config validation."""
    required_sections = ["gateway", "telegram", "thresholds", "monitor", "reports", "database"]
    for section in required_sections:
        if section not in config:
            raise ValueError(f"Missing required config section: {section}")

    tg = config["telegram"]
    if tg.get("enabled") and not (tg.get("bot_token") and str(tg.get("chat_id") or "")):
        raise ValueError("Telegram is enabled but bot_token or chat_id is missing")

    if not 0 <= int(config["reports"].get("weekly_summary_day", 1)) <= 6:
        raise ValueError("weekly_summary_day must be 0 (Sunday) through 6 (Saturday)")
