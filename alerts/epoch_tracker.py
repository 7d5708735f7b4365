"""Per-epoch observer duty state machine: selection, report deadline, epoch boundaries."""
import logging
from dataclasses import dataclass
from typing import Optional

from models.enums import EpochPhase
from models.metrics import EpochCheckState
from utils.constants import HOUR_MS, REPORT_WARNING_HOURS

logger = logging.getLogger("gwmonitor.epoch")


@dataclass
class EpochUpdate:
    """What changed on one observer poll. Consumed by the evaluator."""
    epoch_changed: bool = False
    previous_epoch: Optional[int] = None
    record_selection: bool = False
    warn_report_due: bool = False
    report_failed: bool = False
    hours_remaining: Optional[float] = None


class EpochTracker:
    """AWAITING_SELECTION_RESULT -> AWAITING_REPORT -> SATISFIED | FAILED, per epoch index.

    An epoch where the gateway is not prescribed goes straight to SATISFIED.
    FAILED and SATISFIED are terminal until the epoch index changes.
    """

    def __init__(self):
        self.state = None
        self.phase = EpochPhase.AWAITING_SELECTION_RESULT
        self._selection_recorded = False
        self._warned = False

    def _start_epoch(self):
        self.phase = EpochPhase.AWAITING_SELECTION_RESULT
        self._selection_recorded = False
        self._warned = False

    def update(self, status, now):
        update = EpochUpdate()
        if status is None or status.epoch_index is None:
            return update

        epoch = status.epoch_index
        if self.state is None or self.state.epoch_index != epoch:
            if self.state is not None:
                update.epoch_changed = True
                update.previous_epoch = self.state.epoch_index
                logger.info(f"Epoch changed: {self.state.epoch_index} -> {epoch}")
            self._start_epoch()

        if status.is_selected is not None and not self._selection_recorded:
            update.record_selection = True
            self._selection_recorded = True

        if status.epoch_end_timestamp is not None:
            update.hours_remaining = (status.epoch_end_timestamp - now) / HOUR_MS

        self._advance(status, update)

        self.state = EpochCheckState(
            epoch_index=epoch,
            was_selected=bool(status.is_selected),
            had_report=bool(status.has_submitted_report),
        )
        return update

    def _advance(self, status, update):
        if self.phase == EpochPhase.AWAITING_SELECTION_RESULT:
            if status.is_selected is True:
                self.phase = EpochPhase.AWAITING_REPORT
            elif status.is_selected is False:
                self.phase = EpochPhase.SATISFIED

        if self.phase != EpochPhase.AWAITING_REPORT:
            return

        if status.has_submitted_report:
            self.phase = EpochPhase.SATISFIED
            return

        hours = update.hours_remaining
        if hours is None:
            return
        if hours <= 0:
            self.phase = EpochPhase.FAILED
            update.report_failed = True
            logger.error(f"Observer report deadline passed for epoch {status.epoch_index}")
        elif hours < REPORT_WARNING_HOURS and not self._warned:
            self._warned = True
            update.warn_report_due = True
