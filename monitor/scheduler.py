"""Single-threaded scheduler driving the monitor's periodic checks and reports."""
import logging
import time

import schedule

logger = logging.getLogger("gwmonitor.scheduler")

WEEKDAYS = ["sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]
FAILURE_ALERT_THRESHOLD = 5


class MonitorScheduler:
    """Runs each check at its own cadence on one thread.

    A job that is still running when its next run comes due is skipped, not
    queued. Daily and weekly reports fire at wall-clock times; runs missed
    while the process was down are not replayed.
    """

    def __init__(self, monitor, runtime_config, config=None, scheduler=None):
        self.monitor = monitor
        self.runtime = runtime_config
        self.config = config or {}
        self.scheduler = scheduler or schedule.Scheduler()
        self._running = False
        self._active = set()
        self._consecutive_failures = {}

    def _guarded(self, name, func):
        def job():
            return self.run_job(name, func)
        return job

    def run_job(self, name, func):
        """Run func unless a previous run of the same job is still in flight."""
        if name in self._active:
            logger.warning(f"Skipping {name}: previous run still in progress")
            return None
        self._active.add(name)
        try:
            result = func()
            self._consecutive_failures[name] = 0
            return result
        except Exception as e:
            count = self._consecutive_failures.get(name, 0) + 1
            self._consecutive_failures[name] = count
            logger.error(f"{name} failed ({count} consecutive): {e}")
            if count >= FAILURE_ALERT_THRESHOLD:
                logger.critical(f"{FAILURE_ALERT_THRESHOLD}+ consecutive {name} failures!")
            return None
        finally:
            self._active.discard(name)

    def failures(self, name):
        return self._consecutive_failures.get(name, 0)

    def setup(self):
        """Register all jobs from the current runtime and static config."""
        self.scheduler.clear()
        monitor_cfg = self.config.get("monitor", {})
        reports = self.config.get("reports", {})

        periodic = [
            ("health", self.runtime.get("health_check_interval"), self.monitor.check_health),
            ("resources", self.runtime.get("resource_check_interval"), self.monitor.check_resources),
            ("observer", self.runtime.get("observer_check_interval"), self.monitor.check_observer),
            ("metrics", monitor_cfg.get("metrics_record_interval", 300), self.monitor.record_metrics),
        ]
        for name, seconds, func in periodic:
            self.scheduler.every(int(seconds)).seconds.do(self._guarded(name, func)).tag(name)
            logger.info(f"Scheduled {name} every {seconds}s")

        daily_at = reports.get("daily_summary_time", "09:00")
        self.scheduler.every().day.at(daily_at).do(
            self._guarded("daily_summary", self.monitor.send_daily_summary)
        ).tag("daily_summary")
        logger.info(f"Daily summary scheduled at {daily_at}")

        weekday = WEEKDAYS[int(reports.get("weekly_summary_day", 1))]
        weekly_at = reports.get("weekly_summary_time", "09:00")
        getattr(self.scheduler.every(), weekday).at(weekly_at).do(
            self._guarded("weekly_summary", self.monitor.send_weekly_summary)
        ).tag("weekly_summary")
        logger.info(f"Weekly summary scheduled on {weekday.capitalize()} at {weekly_at}")

    def run_initial(self):
        """Immediate first pass so alerts don't wait a full interval after startup."""
        self.run_job("health", self.monitor.check_health)
        self.run_job("resources", self.monitor.check_resources)
        self.run_job("observer", self.monitor.check_observer)

    def run_forever(self):
        self._running = True
        self.setup()
        self.run_initial()
        logger.info("Scheduler started")
        while self._running:
            self.scheduler.run_pending()
            time.sleep(1)

    def stop(self):
        self._running = False
        self.scheduler.clear()
        logger.info("Scheduler stopped")
