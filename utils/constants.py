"""Time spans and alerting constants."""
import time

SECOND_MS = 1000
MINUTE_MS = 60 * SECOND_MS
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS
WEEK_MS = 7 * DAY_MS

# "Until unmute" is stored as a concrete timestamp ~10 years out
INDEFINITE_MUTE_MS = 315_360_000_000

# Sliding window retention
RESOURCE_WINDOW_MS = 10 * MINUTE_MS
ERROR_RATE_WINDOW_MS = 10 * MINUTE_MS
OBSERVER_HISTORY_MAX = 20

# value >= threshold * factor escalates a threshold alert to critical
HYSTERESIS_FACTOR = 1.2

# Observer report deadline warning window (hours before epoch end)
REPORT_WARNING_HOURS = 12

# Rough import rate used for catch-up estimates on block lag alerts
AVG_BLOCKS_PER_MINUTE = 20

MAX_ALERT_HISTORY = 100


def now_ms():
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)
