"""Daily and weekly rollups computed from the retention store."""
import logging

from utils.constants import DAY_MS, WEEK_MS, now_ms

logger = logging.getLogger("gwmonitor.digest")

RECENT_ALERTS_LIMIT = 10


def average(values):
    """Mean of the available values; None when nothing was recorded."""
    present = [v for v in values if v is not None]
    if not present:
        return None
    return sum(present) / len(present)


def counter_growth(values):
    """Total growth of a monotonic counter, tolerating provider restarts.

    A decrease is a reset, so the post-reset value itself is the growth
    since the restart.
    """
    total = 0
    previous = None
    for value in values:
        if value is None:
            continue
        if previous is not None:
            delta = value - previous
            total += delta if delta >= 0 else value
        previous = value
    return total


def gauge_span(values):
    present = [v for v in values if v is not None]
    if len(present) < 2:
        return 0
    return max(present[-1] - present[0], 0)


class SummaryBuilder:
    """Builds summary dicts for the notification formatters and the CLI."""

    def __init__(self, db, clock=now_ms):
        self.db = db
        self.clock = clock

    def _summarize(self, span_ms):
        now = self.clock()
        start = now - span_ms
        samples = self.db.samples_since(start)
        alerts = self.db.alerts_since(start)

        summary = {
            "period_start": start,
            "period_end": now,
            "sample_count": len(samples),
            "current": samples[-1] if samples else None,
            "previous": samples[0] if samples else None,
            "avg_cpu": average(s.cpu_percent for s in samples),
            "avg_memory": average(s.memory_percent for s in samples),
            "avg_disk": average(s.disk_percent for s in samples),
            "uptime_pct": None,
            "total_alerts": len(alerts),
            "recent_alerts": alerts[-RECENT_ALERTS_LIMIT:],
            "blocks_synced": gauge_span(s.last_height_imported for s in samples),
            "total_requests": counter_growth(s.http_requests_total for s in samples),
            "observer_selections": sum(1 for s in samples if s.observer_selected),
        }
        if samples:
            up = sum(1 for s in samples if s.uptime_seconds and s.uptime_seconds > 0)
            summary["uptime_pct"] = up / len(samples) * 100
        return summary

    def daily(self):
        summary = self._summarize(DAY_MS)
        logger.debug(f"Daily summary over {summary['sample_count']} samples")
        return summary

    def weekly(self):
        summary = self._summarize(WEEK_MS)
        summary["daily_averages"] = self.db.daily_averages(7, now=summary["period_end"])
        logger.debug(f"Weekly summary over {summary['sample_count']} samples")
        return summary
