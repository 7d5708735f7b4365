"""Tests for static config loading and the alert message builders."""
import pytest

from alerts.messages import epoch_message, estimate_sync_time, render_alert
from config import load_config
from models.alerts import AlertCandidate
from models.enums import Severity
from models.metrics import EpochStats

ENV_KEYS = ("TELEGRAM_BOT_TOKEN", "TELEGRAM_CHAT_ID", "GATEWAY_ADDRESS", "CPU_THRESHOLD", "GW_MONITOR_DB_PATH")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults_load():
    config = load_config()
    assert config["gateway"]["core_url"] == "http://localhost:4000"
    assert config["telegram"]["enabled"] is False
    assert config["database"]["retention_days"] == 7


def test_user_file_is_merged(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("gateway:\n  address: my-gateway\nthresholds:\n  cpu_threshold: 70\n")
    config = load_config(str(path))
    assert config["gateway"]["address"] == "my-gateway"
    assert config["gateway"]["core_url"] == "http://localhost:4000"
    assert config["thresholds"]["cpu_threshold"] == 70
    assert config["thresholds"]["memory_threshold"] == 90


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123:abc")
    monkeypatch.setenv("TELEGRAM_CHAT_ID", "987654")
    monkeypatch.setenv("CPU_THRESHOLD", "65.5")
    config = load_config()
    assert config["telegram"]["enabled"] is True
    assert config["telegram"]["chat_id"] == "987654"
    assert config["thresholds"]["cpu_threshold"] == 65.5


def test_enabled_telegram_requires_credentials(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("telegram:\n  enabled: true\n")
    with pytest.raises(ValueError, match="Telegram"):
        load_config(str(path))


def test_weekly_day_range(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("reports:\n  weekly_summary_day: 7\n")
    with pytest.raises(ValueError, match="weekly_summary_day"):
        load_config(str(path))


# ── messages ─────────────────────────────────────────

@pytest.mark.parametrize("blocks,expected", [
    (0, None),
    (100, "~5 minutes"),
    (2000, "~2 hours"),
    (40000, "~2 days"),
])
def test_estimate_sync_time(blocks, expected):
    assert estimate_sync_time(blocks) == expected


def test_render_alert():
    text = render_alert(AlertCandidate(severity=Severity.CRITICAL, title="High Disk Usage", body="Current: 97.0%"))
    assert text == "🔴 *CRITICAL*\n\n*High Disk Usage*\n\nCurrent: 97.0%"
    untitled = render_alert(AlertCandidate(severity=Severity.INFO, body="Core service is back UP"))
    assert untitled == "ℹ️ *INFO*\n\nCore service is back UP"


def test_epoch_message_distributed():
    stats = EpochStats(
        epoch_index=12, start_timestamp=1_000_000, end_timestamp=1_000_000 + 86_400_000,
        total_eligible_rewards=1000.0, total_distributed_rewards=900.0, distribution_percentage=90.0,
        gateways_passed=8, gateways_failed=2, pass_percentage=80.0, fail_percentage=20.0,
        is_distributed=True,
    )
    text = epoch_message("ended", stats)
    assert text.startswith("✅ *Epoch 12 Ended*")
    assert "Duration: 24h 0m" in text
    assert "Distributed: 900.00 ARIO (90.0%)" in text
    assert "Pass: 8 (80.0%) | Fail: 2 (20.0%)" in text
