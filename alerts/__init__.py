"""Alert evaluation, muting and delivery."""
from alerts.windows import SlidingWindow, WindowAggregator
from alerts.mutes import MuteRegistry
from alerts.epoch_tracker import EpochTracker, EpochUpdate
from alerts.evaluator import ThresholdEvaluator
from alerts.dispatcher import AlertDispatcher
from alerts.channels import AlertChannel, ConsoleChannel, FileChannel
