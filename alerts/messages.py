"""Text builders for alert bodies and the rendered notification header."""
import math

from models.enums import Severity
from utils.constants import AVG_BLOCKS_PER_MINUTE
from utils.formatters import format_duration, format_number, format_timestamp

SEVERITY_EMOJI = {
    Severity.CRITICAL: "🔴",
    Severity.WARNING: "⚠️",
    Severity.INFO: "ℹ️",
}

RESOURCE_TITLES = {
    "cpu": "High CPU Usage",
    "memory": "High Memory Usage",
    "disk": "High Disk Usage",
    "response_time": "Slow Response Time",
    "latency": "High Service Latency",
}


def render_alert(candidate):
    """Full notification text: severity header, bold title, body."""
    severity = Severity(candidate.severity)
    header = f"{SEVERITY_EMOJI[severity]} *{severity.value.upper()}*"
    if candidate.title:
        return f"{header}\n\n*{candidate.title}*\n\n{candidate.body}"
    return f"{header}\n\n{candidate.body}"


def resource_body(kind, value, threshold, duration_minutes=None, service=None):
    lines = []
    if service:
        lines.append(f"Service: {service.capitalize()}")
    if kind in ("response_time", "latency"):
        lines.append(f"Current: {value:.0f}ms")
        lines.append(f"Threshold: {threshold:g}ms")
    else:
        lines.append(f"Current: {value:.1f}%")
        lines.append(f"Threshold: {threshold:g}%")
    if duration_minutes:
        lines.append(f"Duration: {duration_minutes} minutes")
    if kind == "disk":
        lines.append("\nConsider freeing up disk space")
    elif kind == "latency":
        lines.append("\nCheck service performance")
    return "\n".join(lines)


def estimate_sync_time(blocks_behind):
    """Rough catch-up estimate at the average import rate, None when not behind."""
    if not blocks_behind or blocks_behind <= 0:
        return None
    minutes = math.ceil(blocks_behind / AVG_BLOCKS_PER_MINUTE)
    if minutes < 60:
        return f"~{minutes} minutes"
    if minutes < 1440:
        return f"~{math.ceil(minutes / 60)} hours"
    return f"~{math.ceil(minutes / 1440)} days"


def block_sync_body(sample, threshold):
    lines = [
        f"Blocks Behind: {format_number(sample.height_difference)}",
        f"Threshold: {format_number(threshold)}",
    ]
    estimate = estimate_sync_time(sample.height_difference)
    if sample.last_height_imported is not None and sample.current_network_height is not None:
        lines.append("")
        lines.append(f"Current: {format_number(sample.last_height_imported)}")
        lines.append(f"Expected: {format_number(sample.current_network_height)}")
    if estimate:
        lines.append(f"Estimated catch-up: {estimate}")
    lines.append("\nCheck gateway sync status")
    return "\n".join(lines)


def cache_body(hit_rate, threshold):
    return (
        f"Cache Hit Rate: {hit_rate:.1f}%\n"
        f"Threshold: {threshold:g}%\n"
        f"\nConsider checking Redis or cache configuration"
    )


def error_rate_body(rate, threshold, errors, requests, window_minutes, errors_delta, requests_delta):
    return (
        f"Error Rate: {rate:.1f}%\n"
        f"Threshold: {threshold:g}%\n\n"
        f"{errors} errors in {requests:,} requests (last {window_minutes} min)\n"
        f"{errors_delta} errors in {requests_delta:,} requests (latest interval)"
    )


def report_due_body(epoch_index, hours_remaining):
    return (
        f"No observation report submitted!\n\n"
        f"Epoch: {epoch_index}\n"
        f"Time remaining: {int(hours_remaining)} hours\n"
        f"Action: Submit observations now!"
    )


def report_failed_body(epoch_index):
    return (
        f"Epoch: {epoch_index}\n\n"
        f"Epoch deadline has passed\n\n"
        f"Check observer service logs and connectivity"
    )


def not_selected_body(count, first_epoch, last_epoch):
    return (
        f"Consecutive Epochs: {count}\n"
        f"Alert Threshold: {count} epochs\n\n"
        f"Epochs {first_epoch} - {last_epoch}\n\n"
        f"Check gateway stake and performance metrics"
    )


def low_weight_body(weight, threshold):
    return (
        f"Current Weight: {weight:.4f}\n"
        f"Threshold: {threshold:g}\n\n"
        f"Lower weights reduce selection probability"
    )


def service_down_body(name, health):
    return (
        f"{name} service is DOWN\n"
        f"Error: {health.error or 'No response'}\n"
        f"Response time: {health.response_time_ms}ms"
    )


def service_up_body(name, health):
    return f"{name} service is back UP\nResponse time: {health.response_time_ms}ms"


def _fixed(value, decimals):
    return "N/A" if value is None else f"{value:.{decimals}f}"


def epoch_message(event, stats):
    """Epoch 'started' / 'ended' announcement. Missing stats render as fallback text."""
    started = event == "started"
    emoji = "🚀" if started else "✅"
    verb = "Started" if started else "Ended"
    lines = [f"{emoji} *Epoch {stats.epoch_index} {verb}*"]

    if started:
        lines.append(f"Start: {format_timestamp(stats.start_timestamp)}")
        lines.append(f"Planned End: {format_timestamp(stats.end_timestamp)}")
    else:
        lines.append(f"Ended: {format_timestamp(stats.end_timestamp)}")
        lines.append(f"Duration: {format_duration(stats.start_timestamp, stats.end_timestamp)}")

    lines.append("")
    lines.append("*Observers*")
    if None not in (stats.total_observers, stats.observation_count, stats.observation_percentage):
        lines.append(
            f"Reports Submitted: {stats.observation_count}/{stats.total_observers} "
            f"({stats.observation_percentage:.1f}%)"
        )
    else:
        lines.append("Reports Submitted: Data unavailable")

    lines.append("")
    lines.append("*Rewards*")
    lines.append(f"Eligible Rewards: {_fixed(stats.total_eligible_rewards, 2)} ARIO")
    if stats.is_distributed:
        lines.append(
            f"Distributed: {_fixed(stats.total_distributed_rewards, 2)} ARIO "
            f"({_fixed(stats.distribution_percentage, 1)}%)"
        )
        if None not in (stats.gateways_passed, stats.gateways_failed,
                        stats.pass_percentage, stats.fail_percentage):
            lines.append(
                f"Pass: {stats.gateways_passed} ({stats.pass_percentage:.1f}%) | "
                f"Fail: {stats.gateways_failed} ({stats.fail_percentage:.1f}%)"
            )
    else:
        lines.append("Distribution: Pending")
    return "\n".join(lines)
