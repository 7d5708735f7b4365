"""GatewayMonitor - Central orchestrator for checking, alerting, recording and reporting."""
import sqlite3
import logging

from digest.summaries import SummaryBuilder
from notifications.telegram_bot import format_daily_summary, format_weekly_summary
from utils.constants import DAY_MS, now_ms

logger = logging.getLogger("gwmonitor.monitor")


class GatewayMonitor:
    def __init__(self, db, gateway, observer, evaluator, dispatcher, runtime_config,
                 config=None, clock=now_ms):
        self.db = db
        self.gateway = gateway
        self.observer = observer
        self.evaluator = evaluator
        self.dispatcher = dispatcher
        self.runtime = runtime_config
        self.config = config or {}
        self.clock = clock
        self.summaries = SummaryBuilder(db, clock=clock)

        self.last_health = None
        self.latest_sample = None
        self.previous_sample = None
        self.last_observer_status = None
        self._last_recorded_ts = None

    @property
    def address(self):
        return self.config.get("gateway", {}).get("address", "")

    def _dispatch(self, candidates):
        return self.dispatcher.dispatch_all(candidates)

    # --- check cycles ---

    def check_health(self):
        health = self.gateway.check_health()
        candidates = self.evaluator.evaluate_health(health)
        self._dispatch(candidates)
        self.last_health = health
        logger.debug(
            f"Health: {health.overall} (core {health.core.response_time_ms}ms, "
            f"observer {health.observer.response_time_ms}ms)"
        )
        return candidates

    def check_resources(self):
        sample = self.gateway.get_metrics()
        candidates = self.evaluator.evaluate(sample, self.previous_sample)
        self._dispatch(candidates)
        self.previous_sample = sample
        self.latest_sample = sample
        return candidates

    def check_observer(self):
        if not self.address:
            logger.debug("Gateway address not configured, skipping observer check")
            return []
        status = self.observer.check_observer_status()
        candidates = self.evaluator.evaluate_observer(status, now=self.clock())
        self._dispatch(candidates)
        self.last_observer_status = status
        try:
            self.db.save_snapshot("observer", "status", status.to_dict())
        except sqlite3.Error as e:
            logger.error(f"Failed to store observer snapshot: {e}")
        return candidates

    def record_metrics(self):
        """Persist the latest sample, enriched with the last observer status."""
        sample = self.latest_sample
        if sample is None or sample.timestamp == self._last_recorded_ts:
            sample = self.gateway.get_metrics()
        sample = sample.with_observer(self.last_observer_status)
        try:
            self.db.append_sample(sample)
        except sqlite3.Error as e:
            logger.error(f"Failed to record metrics: {e}")
            return None
        self._last_recorded_ts = sample.timestamp
        return sample

    # --- reports ---

    def _broadcast(self, text):
        sent = False
        for channel in self.dispatcher.channels:
            try:
                sent = channel.send(text) or sent
            except Exception as e:
                logger.error(f"{type(channel).__name__} failed to send report: {e}")
        return sent

    def send_daily_summary(self, force=False):
        if not force and not self.runtime.get("enable_daily_summary"):
            logger.info("Daily summary disabled")
            return None
        logger.info("Generating daily summary report...")
        summary = self.summaries.daily()
        if self._broadcast(format_daily_summary(summary)):
            logger.info("Daily summary sent")
        return summary

    def send_weekly_summary(self, force=False):
        if not force and not self.runtime.get("enable_weekly_summary"):
            logger.info("Weekly summary disabled")
            return None
        logger.info("Generating weekly summary report...")
        summary = self.summaries.weekly()
        if self._broadcast(format_weekly_summary(summary)):
            logger.info("Weekly summary sent")
        self.prune()
        return summary

    def prune(self):
        retention_days = self.config.get("database", {}).get("retention_days", 7)
        cutoff = self.clock() - retention_days * DAY_MS
        try:
            removed = self.db.prune_older_than(cutoff)
            self.db.vacuum()
        except sqlite3.Error as e:
            logger.error(f"Failed to prune old metrics: {e}")
            return 0
        logger.info("Old metrics cleared")
        return removed

    def announce_startup(self):
        gw = self.config.get("gateway", {})
        text = (
            "🚀 *Gateway Monitor Started*\n\n"
            f"Core: {gw.get('core_url', 'N/A')}\n"
            f"Observer: {gw.get('observer_url', 'N/A')}\n"
            f"Address: {gw.get('address') or 'not configured'}"
        )
        return self._broadcast(text)
