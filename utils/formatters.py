"""Formatting utilities for alert and summary text."""
from datetime import datetime

from utils.constants import DAY_MS, HOUR_MS, MINUTE_MS, now_ms


def format_pct(value, decimals=1):
    """Format a percentage, 'N/A' when missing."""
    if value is None:
        return "N/A"
    return f"{float(value):.{decimals}f}%"


def format_number(value):
    """Format an integer-ish count with thousands separators."""
    if value is None:
        return "N/A"
    return f"{int(value):,}"


def format_signed(value):
    """Format a delta with an explicit sign: 1200 -> '+1,200'."""
    if value is None:
        return "N/A"
    value = int(value)
    sign = "+" if value > 0 else ""
    return f"{sign}{value:,}"


def format_timestamp(ts_ms):
    """Format an epoch-ms timestamp in local time."""
    if not ts_ms:
        return "N/A"
    return datetime.fromtimestamp(ts_ms / 1000).strftime("%Y-%m-%d %H:%M")


def format_duration(start_ms, end_ms):
    """Human-readable span between two timestamps: '23h 59m'."""
    if not start_ms or not end_ms or end_ms <= start_ms:
        return "N/A"
    total_minutes = (end_ms - start_ms) // MINUTE_MS
    hours, minutes = divmod(total_minutes, 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def format_remaining(ms):
    """Compact remaining-time label for mute listings: '2d 3h', '45m'."""
    if ms is None or ms <= 0:
        return "expired"
    if ms >= DAY_MS:
        return f"{ms // DAY_MS}d {(ms % DAY_MS) // HOUR_MS}h"
    if ms >= HOUR_MS:
        return f"{ms // HOUR_MS}h {(ms % HOUR_MS) // MINUTE_MS}m"
    return f"{max(ms // MINUTE_MS, 1)}m"


def parse_duration(text):
    """Parse '30m', '6h', '1d' into milliseconds. 'forever' -> None (indefinite)."""
    text = text.strip().lower()
    if text in ("forever", "indefinite", "inf"):
        return None
    units = {"m": MINUTE_MS, "h": HOUR_MS, "d": DAY_MS}
    if len(text) < 2 or text[-1] not in units or not text[:-1].isdigit():
        raise ValueError(f"Invalid duration: {text!r} (use e.g. 30m, 6h, 1d, forever)")
    return int(text[:-1]) * units[text[-1]]


def time_ago(ts_ms, now=None):
    """Return human-readable time since ts_ms. E.g., '3h ago', '2d ago'."""
    if ts_ms is None:
        return "N/A"
    now = now if now is not None else now_ms()
    seconds = max(int((now - ts_ms) / 1000), 0)

    if seconds < 60:
        return f"{seconds}s ago"
    elif seconds < 3600:
        return f"{seconds // 60}m ago"
    elif seconds < 86400:
        return f"{seconds // 3600}h ago"
    else:
        return f"{seconds // 86400}d ago"
