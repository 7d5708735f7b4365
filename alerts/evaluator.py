"""Threshold rules turning samples, health probes and observer status into alert candidates."""
import logging

from alerts import messages
from alerts.epoch_tracker import EpochTracker
from alerts.windows import WindowAggregator
from models.alerts import AlertCandidate
from models.enums import AlertCategory, Severity
from models.metrics import EpochStats
from utils.constants import ERROR_RATE_WINDOW_MS, HYSTERESIS_FACTOR, MINUTE_MS, now_ms

logger = logging.getLogger("gwmonitor.evaluator")


def severity_for(value, threshold, inverted=False):
    """Critical at 1.2x past the threshold (or 1/1.2 under it for inverted rules)."""
    if inverted:
        critical = value <= threshold / HYSTERESIS_FACTOR
    else:
        critical = value >= threshold * HYSTERESIS_FACTOR
    return Severity.CRITICAL if critical else Severity.WARNING


class ThresholdEvaluator:
    """Applies the alert rules. Thresholds are re-read from runtime config on every call.

    Owns the sliding windows and the epoch tracker; persists nothing.
    """

    def __init__(self, runtime_config, aggregator=None, epoch_tracker=None,
                 epoch_provider=None, clock=now_ms):
        self.config = runtime_config
        self.windows = aggregator or WindowAggregator()
        self.epochs = epoch_tracker or EpochTracker()
        self.epoch_provider = epoch_provider
        self.clock = clock
        self._previous_health = None

    # --- resource / performance samples ---

    def evaluate(self, sample, previous=None):
        now = sample.timestamp
        candidates = []
        for rule in (self._check_cpu, self._check_memory, self._check_disk,
                     self._check_response_time, self._check_block_sync,
                     self._check_cache_hit_rate):
            candidate = rule(sample, now)
            if candidate:
                candidates.append(candidate)
        error_alert = self._check_error_rate(sample, previous, now)
        if error_alert:
            candidates.append(error_alert)
        return candidates

    def _resource_alert(self, kind, value, threshold, now, duration_minutes=None, service=None):
        return AlertCandidate(
            category=f"resource_{kind}",
            severity=severity_for(value, threshold),
            title=messages.RESOURCE_TITLES[kind],
            body=messages.resource_body(kind, value, threshold, duration_minutes, service),
            timestamp=now,
            threshold=threshold,
            value=value,
        )

    def _check_cpu(self, sample, now):
        if sample.cpu_percent is None:
            return None
        self.windows.push_cpu(sample.cpu_percent, now)

        threshold = self.config.get("cpu_threshold")
        duration = self.config.get("cpu_duration_minutes")
        span = self.windows.cpu.window_since(duration * MINUTE_MS, now)
        if (len(span) >= duration
                and all(p.value >= threshold for p in span)
                and sample.cpu_percent >= threshold):
            logger.warning(f"CPU sustained high: {sample.cpu_percent:.1f}% for {duration}min")
            return self._resource_alert("cpu", sample.cpu_percent, threshold, now, duration_minutes=duration)
        return None

    def _check_memory(self, sample, now):
        threshold = self.config.get("memory_threshold")
        if sample.memory_percent is not None and sample.memory_percent >= threshold:
            logger.warning(f"Memory high: {sample.memory_percent:.1f}%")
            return self._resource_alert("memory", sample.memory_percent, threshold, now)
        return None

    def _check_disk(self, sample, now):
        threshold = self.config.get("disk_threshold")
        if sample.disk_percent is not None and sample.disk_percent >= threshold:
            logger.warning(f"Disk space high: {sample.disk_percent:.1f}%")
            return self._resource_alert("disk", sample.disk_percent, threshold, now)
        return None

    def _check_response_time(self, sample, now):
        threshold = self.config.get("response_time_threshold")
        value = sample.average_response_time_ms
        if value is not None and value >= threshold:
            return self._resource_alert("response_time", value, threshold, now)
        return None

    def _check_block_sync(self, sample, now):
        threshold = self.config.get("block_sync_lag_threshold")
        lag = sample.height_difference
        if lag is None or lag <= threshold:
            return None
        logger.warning(f"Block sync lagging: {lag} blocks behind")
        return AlertCandidate(
            category=AlertCategory.PERFORMANCE_BLOCK_SYNC.value,
            severity=severity_for(lag, threshold),
            title="Block Import Falling Behind",
            body=messages.block_sync_body(sample, threshold),
            timestamp=now,
            threshold=threshold,
            value=lag,
        )

    def _check_cache_hit_rate(self, sample, now):
        threshold = self.config.get("arns_cache_hit_rate_threshold")
        rate = sample.arns_cache_hit_rate
        if rate is None or rate >= threshold:
            return None
        logger.warning(f"ArNS cache hit rate low: {rate:.1f}%")
        return AlertCandidate(
            category=AlertCategory.PERFORMANCE_ARNS_CACHE.value,
            severity=severity_for(rate, threshold, inverted=True),
            title="Low ArNS Cache Hit Rate",
            body=messages.cache_body(rate, threshold),
            timestamp=now,
            threshold=threshold,
            value=rate,
        )

    def _check_error_rate(self, sample, previous, now):
        if previous is None:
            return None
        counters = (sample.arns_errors, sample.http_requests_total,
                    previous.arns_errors, previous.http_requests_total)
        if any(c is None for c in counters):
            return None

        raw_errors = sample.arns_errors - previous.arns_errors
        raw_requests = sample.http_requests_total - previous.http_requests_total
        if raw_errors < 0 or raw_requests < 0:
            # Provider restarted; deltas across a reset are meaningless
            logger.info("Counter reset detected, clearing error-rate window")
            self.windows.error_rate.clear()
            return None

        if raw_requests == 0:
            return None
        self.windows.push_errors(raw_errors, raw_requests, now)

        errors, total = self.windows.aggregate_errors()
        if total < self.config.get("error_rate_min_requests") or total <= 0:
            return None
        rate = errors / total * 100
        threshold = self.config.get("error_rate_threshold")
        if rate <= threshold:
            return None

        logger.warning(f"Error rate high (smoothed): {rate:.2f}% ({errors} errors / {total} requests)")
        return AlertCandidate(
            category=AlertCategory.PERFORMANCE_ERROR_RATE.value,
            severity=severity_for(rate, threshold),
            title="High Error Rate Detected",
            body=messages.error_rate_body(
                rate, threshold, errors, total, ERROR_RATE_WINDOW_MS // MINUTE_MS,
                raw_errors, raw_requests,
            ),
            timestamp=now,
            threshold=threshold,
            value=rate,
        )

    # --- service health ---

    def evaluate_health(self, health):
        """Down/up transitions per service plus latency against latency_threshold."""
        now = health.timestamp
        candidates = []
        services = (("Core", health.core), ("Observer", health.observer))

        if self._previous_health is not None:
            for name, service in services:
                was_healthy = self._previous_health[name]
                if was_healthy == service.is_healthy:
                    continue
                if service.is_healthy:
                    logger.info(f"{name} service recovered")
                    candidates.append(AlertCandidate(
                        category=AlertCategory.SERVICE_HEALTH.value,
                        severity=Severity.INFO,
                        body=messages.service_up_body(name, service),
                        timestamp=now,
                    ))
                else:
                    logger.error(f"{name} service went DOWN")
                    candidates.append(AlertCandidate(
                        category=AlertCategory.SERVICE_HEALTH.value,
                        severity=Severity.CRITICAL,
                        body=messages.service_down_body(name, service),
                        timestamp=now,
                    ))

        threshold = self.config.get("latency_threshold")
        for name, service in services:
            if service.is_healthy and service.response_time_ms > threshold:
                logger.warning(f"High {name.lower()} latency: {service.response_time_ms}ms")
                candidates.append(self._resource_alert(
                    "latency", service.response_time_ms, threshold, now, service=name.lower(),
                ))

        self._previous_health = {name: service.is_healthy for name, service in services}
        return candidates

    # --- observer / epochs ---

    def evaluate_observer(self, status, now=None):
        now = self.clock() if now is None else now
        candidates = []
        update = self.epochs.update(status, now)

        if update.epoch_changed:
            for event, index in (("ended", update.previous_epoch), ("started", status.epoch_index)):
                candidates.append(AlertCandidate(
                    category=AlertCategory.EPOCH.value,
                    severity=Severity.INFO,
                    body=messages.epoch_message(event, self._epoch_stats(index)),
                    timestamp=now,
                ))

        if update.warn_report_due:
            logger.warning(f"Observer report not submitted, {update.hours_remaining:.1f}h remaining")
            candidates.append(AlertCandidate(
                category=AlertCategory.OBSERVER_REPORT.value,
                severity=Severity.WARNING,
                title="Observer Report Pending",
                body=messages.report_due_body(status.epoch_index, update.hours_remaining),
                timestamp=now,
            ))

        if update.report_failed:
            candidates.append(AlertCandidate(
                category=AlertCategory.OBSERVER_REPORT_FAILED.value,
                severity=Severity.CRITICAL,
                title="Failed to Submit Observer Report",
                body=messages.report_failed_body(status.epoch_index),
                timestamp=now,
            ))

        if update.record_selection:
            self.windows.push_selection(status.epoch_index, bool(status.is_selected), now)
            streak = self._not_selected_streak()
            if streak:
                candidates.append(streak)

        weight_alert = self._check_observer_weight(status, now)
        if weight_alert:
            candidates.append(weight_alert)
        return candidates

    def _not_selected_streak(self):
        needed = self.config.get("not_selected_epochs_threshold")
        recent = self.windows.observer_history.last(needed)
        if len(recent) < needed or any(p.selected for p in recent):
            return None
        first, last = recent[0].epoch_index, recent[-1].epoch_index
        logger.warning(f"Not selected for {needed} consecutive epochs")
        return AlertCandidate(
            category=AlertCategory.OBSERVER_NOT_SELECTED.value,
            severity=Severity.WARNING,
            title="Not Selected as Observer",
            body=messages.not_selected_body(needed, first, last),
            timestamp=recent[-1].timestamp,
            threshold=needed,
            value=needed,
        )

    def _check_observer_weight(self, status, now):
        if status is None or status.observer_weight is None:
            return None
        threshold = self.config.get("low_observer_weight_threshold")
        if status.observer_weight >= threshold:
            return None
        return AlertCandidate(
            category=AlertCategory.OBSERVER_LOW_WEIGHT.value,
            severity=Severity.WARNING,
            title="Low Observer Weight",
            body=messages.low_weight_body(status.observer_weight, threshold),
            timestamp=now,
            threshold=threshold,
            value=status.observer_weight,
        )

    def _epoch_stats(self, epoch_index):
        if self.epoch_provider is None:
            return EpochStats(epoch_index=epoch_index)
        try:
            return self.epoch_provider.get_epoch_stats(epoch_index)
        except Exception as e:
            logger.warning(f"Failed to fetch stats for epoch {epoch_index}: {e}")
            return EpochStats(epoch_index=epoch_index)
