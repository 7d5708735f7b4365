"""Global and per-category alert muting with expiry, persisted across restarts."""
import math
import sqlite3
import logging

from models.alerts import MuteState
from utils.constants import INDEFINITE_MUTE_MS, now_ms

logger = logging.getLogger("gwmonitor.mutes")

MUTE_STATE_KEY = "mute_state"
CATEGORY_MUTES_KEY = "category_mutes"


def _is_timestamp(value, allow_none=False):
    if value is None:
        return allow_none
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


class MuteRegistry:
    """Owns MuteState and the category -> expiry map.

    Expiry is checked lazily on read; ``sweep`` removes expired entries and
    persists the change. An indefinite mute is a timestamp ten years out.
    """

    def __init__(self, db=None, clock=now_ms):
        self.db = db
        self.clock = clock
        self.state = MuteState()
        self.category_mutes = {}
        self._restore()

    def _restore(self):
        if self.db is None:
            return
        try:
            raw_state = self.db.get_value(MUTE_STATE_KEY)
            stored = self.db.get_value(CATEGORY_MUTES_KEY) or {}
        except sqlite3.Error as e:
            logger.error(f"Failed to restore mute state: {e}")
            return

        if raw_state is not None:
            state = MuteState.from_dict(raw_state) if isinstance(raw_state, dict) else None
            if state is None or not _is_timestamp(state.mute_until, allow_none=not state.is_muted):
                logger.warning(f"Ignoring malformed stored mute state: {raw_state!r}")
            else:
                self.state = state

        if not isinstance(stored, dict):
            logger.warning(f"Ignoring malformed stored category mutes: {stored!r}")
            stored = {}
        for category, until in stored.items():
            if not _is_timestamp(until):
                logger.warning(f"Skipping stored mute for {category!r}: bad expiry {until!r}")
                continue
            self.category_mutes[str(category)] = int(until)

        if self.state.is_muted or self.category_mutes:
            logger.info(f"Restored mutes: global={self.state.is_muted}, categories={sorted(self.category_mutes)}")

    def _persist(self):
        if self.db is None:
            return
        try:
            self.db.set_value(MUTE_STATE_KEY, self.state.to_dict())
            self.db.set_value(CATEGORY_MUTES_KEY, self.category_mutes)
        except sqlite3.Error as e:
            logger.error(f"Failed to persist mute state: {e}")

    def _until(self, duration_ms):
        now = self.clock()
        return now + (INDEFINITE_MUTE_MS if duration_ms is None else int(duration_ms))

    # --- queries ---

    def is_globally_muted(self, now=None):
        now = self.clock() if now is None else now
        return self.state.active(now)

    def is_category_muted(self, category, now=None):
        now = self.clock() if now is None else now
        until = self.category_mutes.get(category)
        return until is not None and now < until

    def muted_categories(self, now=None):
        now = self.clock() if now is None else now
        return {c: until for c, until in self.category_mutes.items() if now < until}

    # --- mutations ---

    def mute_global(self, duration_ms=None):
        self.state = MuteState(is_muted=True, mute_until=self._until(duration_ms))
        self._persist()
        logger.info(f"Alerts muted until {self.state.mute_until}")

    def unmute(self):
        self.state = MuteState()
        self._persist()
        logger.info("Alerts unmuted")

    def mute_category(self, category, duration_ms=None):
        self.category_mutes[category] = self._until(duration_ms)
        self._persist()
        logger.info(f"Category {category} muted until {self.category_mutes[category]}")

    def unmute_category(self, category):
        if self.category_mutes.pop(category, None) is not None:
            self._persist()
            logger.info(f"Category {category} unmuted")

    def unmute_all(self):
        self.state = MuteState()
        self.category_mutes = {}
        self._persist()
        logger.info("All mutes cleared")

    def sweep(self, now=None):
        """Drop expired mutes. Returns the number of entries removed."""
        now = self.clock() if now is None else now
        removed = 0
        if self.state.is_muted and not self.state.active(now):
            self.state = MuteState()
            removed += 1
            logger.info("Global mute expired")
        for category in [c for c, until in self.category_mutes.items() if now >= until]:
            del self.category_mutes[category]
            removed += 1
            logger.info(f"Category mute expired: {category}")
        if removed:
            self._persist()
        return removed
