"""Cooldown deduplication, mute suppression and delivery of alert candidates."""
import sqlite3
import logging
from collections import deque

from alerts.channels import mute_action
from alerts.messages import render_alert
from models.alerts import DispatchOutcome
from models.enums import SuppressedBy
from utils.constants import MAX_ALERT_HISTORY, SECOND_MS, now_ms

logger = logging.getLogger("gwmonitor.dispatcher")


class AlertDispatcher:
    """Single entry point between the evaluator and the notification channels.

    Per call: sweep expired mutes, drop duplicates inside the cooldown
    (no history), record the alert, then apply global and category mutes
    before sending. Cooldown state is in memory only.
    """

    def __init__(self, mutes, channels=None, runtime_config=None, db=None, clock=now_ms):
        self.mutes = mutes
        self.channels = list(channels or [])
        self.config = runtime_config
        self.db = db
        self.clock = clock
        self.last_sent = {}
        self.history = deque(maxlen=MAX_ALERT_HISTORY)

    @property
    def cooldown_ms(self):
        seconds = self.config.get("alert_cooldown_seconds") if self.config is not None else 600
        return seconds * SECOND_MS

    def dispatch(self, candidate):
        now = self.clock()
        self.mutes.sweep(now)

        key = candidate.dedup_key
        last = self.last_sent.get(key)
        if last is not None and now - last < self.cooldown_ms:
            logger.debug(f"Cooldown active for {key}")
            return DispatchOutcome(sent=False, suppressed_by=SuppressedBy.COOLDOWN)
        self.last_sent[key] = now

        record = candidate.to_record(timestamp=now)
        self.history.append(record)
        if self.db is not None:
            try:
                self.db.append_alert(record)
            except sqlite3.Error as e:
                logger.error(f"Failed to store alert history: {e}")

        summary = candidate.title or candidate.body.split("\n")[0]
        if self.mutes.is_globally_muted(now):
            logger.info(f"Alert muted: {summary}")
            return DispatchOutcome(sent=False, suppressed_by=SuppressedBy.GLOBAL_MUTE)

        mute_key = candidate.mute_key
        if self.mutes.is_category_muted(mute_key, now):
            logger.info(f"Alert category '{mute_key}' is muted: {summary}")
            return DispatchOutcome(sent=False, suppressed_by=SuppressedBy.CATEGORY_MUTE)

        text = render_alert(candidate)
        actions = [mute_action(mute_key)]
        sent = False
        for channel in self.channels:
            try:
                ok = channel.send(text, actions)
            except Exception as e:
                logger.error(f"{type(channel).__name__} raised while sending: {e}")
                continue
            if ok:
                sent = True
            else:
                logger.warning(f"{type(channel).__name__} failed to deliver alert: {summary}")
        if sent:
            logger.info(f"Sent {record.severity} alert: {summary}")
        return DispatchOutcome(sent=sent, suppressed_by=SuppressedBy.NONE)

    def dispatch_all(self, candidates):
        return [self.dispatch(c) for c in candidates]
