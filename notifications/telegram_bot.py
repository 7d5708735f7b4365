"""Telegram Bot API client for Gateway Monitor.

Uses raw HTTP POST via requests; no bot framework needed.
"""
import logging
from datetime import datetime, timezone

import requests

from utils.formatters import format_number, format_pct, format_signed

logger = logging.getLogger("gwmonitor.telegram")

TELEGRAM_API = "https://api.telegram.org/bot{token}"


class TelegramBot:
    """Thin wrapper around Telegram Bot API."""

    def __init__(self, bot_token: str, chat_id: str, timeout: int = 30):
        self.bot_token = bot_token
        self.chat_id = str(chat_id)
        self.timeout = timeout
        self.base_url = TELEGRAM_API.format(token=bot_token)

    # ── core API ─────────────────────────────────────

    def send_message(self, text: str, chat_id: str = None,
                     parse_mode: str = "Markdown", inline_keyboard=None) -> dict:
        """Send a text message. Returns Telegram API response dict."""
        url = f"{self.base_url}/sendMessage"
        payload = {
            "chat_id": chat_id or self.chat_id,
            "text": text,
            "parse_mode": parse_mode,
        }
        if inline_keyboard:
            payload["reply_markup"] = {"inline_keyboard": inline_keyboard}
        try:
            resp = requests.post(url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
            if not data.get("ok"):
                logger.warning(f"Telegram API error: {data.get('description')}")
            return data
        except requests.RequestException as e:
            logger.error(f"Telegram send failed: {e}")
            raise

    def verify_token(self) -> dict:
        """Verify bot token via getMe endpoint."""
        url = f"{self.base_url}/getMe"
        resp = requests.get(url, timeout=10)
        resp.raise_for_status()
        return resp.json()

    # ── high-level sends ─────────────────────────────

    def send_daily_summary(self, summary: dict) -> dict:
        return self.send_message(format_daily_summary(summary))

    def send_weekly_summary(self, summary: dict) -> dict:
        return self.send_message(format_weekly_summary(summary))


# ── formatters ───────────────────────────────────

def _day(ts_ms):
    return datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d")


def _performance_lines(s):
    return [
        f"Avg CPU: {format_pct(s.get('avg_cpu'))}",
        f"Avg Memory: {format_pct(s.get('avg_memory'))}",
        f"Avg Disk: {format_pct(s.get('avg_disk'))}",
        f"Uptime: {format_pct(s.get('uptime_pct'))}",
    ]


def format_daily_summary(s: dict) -> str:
    """Format a daily summary dict into Telegram Markdown."""
    current = s.get("current")
    previous = s.get("previous")

    lines = [f"📊 *Daily Summary - {_day(s['period_end'])}*", "", "*⚙️ System Performance*"]
    lines += _performance_lines(s)
    lines += [
        "",
        "*📦 Gateway Activity*",
        f"Blocks Synced: {format_number(s.get('blocks_synced', 0))}",
        f"Total Requests: {format_number(s.get('total_requests', 0))}",
    ]
    if current is not None and current.arns_cache_hit_rate is not None:
        lines.append(f"Cache Hit Rate: {format_pct(current.arns_cache_hit_rate)}")

    if s.get("observer_selections", 0) > 0:
        lines += ["", "*🔍 Observer Status*", "Selected as Observer: Yes"]
        if current is not None and current.observer_weight is not None:
            lines.append(f"Observer Weight: {current.observer_weight:.4f}")

    lines.append("")
    if s.get("total_alerts", 0) > 0:
        lines.append(f"*🚨 Alerts ({s['total_alerts']})*")
        for alert in s.get("recent_alerts", []):
            when = datetime.fromtimestamp(alert.timestamp / 1000).strftime("%H:%M")
            label = alert.title or alert.message.split("\n")[0]
            lines.append(f"• {when}: {label}")
    else:
        lines.append("*✅ No Alerts Today*")

    if current is not None and previous is not None and current is not previous:
        lines += ["", "*📈 vs Yesterday*"]
        if current.last_height_imported and previous.last_height_imported:
            lines.append(f"Blocks: {format_signed(current.last_height_imported - previous.last_height_imported)}")
        if current.http_requests_total and previous.http_requests_total:
            lines.append(f"Requests: {format_signed(current.http_requests_total - previous.http_requests_total)}")

    return "\n".join(lines)


def format_weekly_summary(s: dict) -> str:
    """Format a weekly summary dict into Telegram Markdown."""
    total_requests = s.get("total_requests", 0)
    total_alerts = s.get("total_alerts", 0)

    lines = [
        "📈 *Weekly Summary*",
        f"{_day(s['period_start'])} - {_day(s['period_end'])}",
        "",
        "*⚙️ Overall Performance*",
    ]
    lines += _performance_lines(s)
    lines += [
        "",
        "*📦 Gateway Activity*",
        f"Blocks Synced: {format_number(s.get('blocks_synced', 0))}",
        f"Total Requests: {format_number(total_requests)}",
        f"Avg Requests/Day: {format_number(total_requests // 7)}",
    ]

    if s.get("observer_selections", 0) > 0:
        lines += ["", "*🔍 Observer Performance*", f"Times Selected: {s['observer_selections']}"]

    lines += [
        "",
        "*🚨 Alerts*",
        f"Total: {total_alerts}",
        f"Avg per Day: {total_alerts / 7:.1f}",
    ]

    recorded = [d for d in s.get("daily_averages", []) if d.avg_cpu is not None or d.avg_memory is not None]
    if recorded:
        lines += ["", "*📊 Daily Trends (Last 3 Days)*"]
        for day in recorded[-3:]:
            lines.append(f"{day.day}:")
            lines.append(f"  CPU {format_pct(day.avg_cpu)} | Mem {format_pct(day.avg_memory)}")

    return "\n".join(lines)
