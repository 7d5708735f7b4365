"""Bounded sliding windows backing the sustained-CPU, error-rate and observer-history rules."""
from collections import deque, namedtuple

from utils.constants import RESOURCE_WINDOW_MS, ERROR_RATE_WINDOW_MS, OBSERVER_HISTORY_MAX

CpuPoint = namedtuple("CpuPoint", ["value", "timestamp"])
ErrorPoint = namedtuple("ErrorPoint", ["errors_delta", "requests_delta", "timestamp"])
SelectionPoint = namedtuple("SelectionPoint", ["epoch_index", "selected", "timestamp"])


class SlidingWindow:
    """Time-ordered buffer pruned on every push, by age and/or by count.

    Entries must expose a ``timestamp`` attribute (ms epoch).
    """

    def __init__(self, span_ms=None, max_items=None):
        if span_ms is None and max_items is None:
            raise ValueError("SlidingWindow needs a span or a max size")
        self.span_ms = span_ms
        self.max_items = max_items
        self._items = deque()

    def push(self, item):
        self._prune(item.timestamp)
        self._items.append(item)
        if self.max_items is not None:
            while len(self._items) > self.max_items:
                self._items.popleft()

    def _prune(self, now):
        if self.span_ms is None:
            return
        cutoff = now - self.span_ms
        while self._items and self._items[0].timestamp < cutoff:
            self._items.popleft()

    def window_since(self, duration_ms, now):
        """Entries with timestamp >= now - duration_ms, oldest first."""
        cutoff = now - duration_ms
        return [item for item in self._items if item.timestamp >= cutoff]

    def last(self, n):
        if n <= 0:
            return []
        return list(self._items)[-n:]

    def clear(self):
        self._items.clear()

    def __len__(self):
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items))


class WindowAggregator:
    """Owns the three evaluator buffers. In-memory only; cold-started on restart."""

    def __init__(self):
        self.cpu = SlidingWindow(span_ms=RESOURCE_WINDOW_MS)
        self.error_rate = SlidingWindow(span_ms=ERROR_RATE_WINDOW_MS)
        self.observer_history = SlidingWindow(max_items=OBSERVER_HISTORY_MAX)

    def push_cpu(self, value, timestamp):
        self.cpu.push(CpuPoint(value, timestamp))

    def push_errors(self, errors_delta, requests_delta, timestamp):
        self.error_rate.push(ErrorPoint(errors_delta, requests_delta, timestamp))

    def push_selection(self, epoch_index, selected, timestamp):
        self.observer_history.push(SelectionPoint(epoch_index, selected, timestamp))

    def aggregate_errors(self):
        """(errors, requests) summed over the error-rate window."""
        errors = sum(p.errors_delta for p in self.error_rate)
        requests = sum(p.requests_delta for p in self.error_rate)
        return errors, requests

    def reset(self):
        self.cpu.clear()
        self.error_rate.clear()
        self.observer_history.clear()
